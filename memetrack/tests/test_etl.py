"""Orchestrator tests - pass sequencing, cursor persistence, archiving"""

import pytest
from sqlalchemy import select

from memetrack import etl_entrypoint
from memetrack.core.cursors import Cursor, CursorStore
from memetrack.core.errors import BitqueryAuthenticationError
from memetrack.ingestion.archive import ResultArchiver
from memetrack.ingestion.market_data import MarketDataSource
from memetrack.models.price import Price
from memetrack.services.etl_service import ETLService
from memetrack.services.market_data_service import MarketDataService
from memetrack.tests.factories import instructions_payload, make_trade, supply_payload, trades_payload, utc


@pytest.fixture
def etl_service(db, bitquery_client, tmp_path):
    """ETL service wired to the fake Bitquery transport and a temp results dir"""
    return ETLService(
        db,
        client=bitquery_client,
        archiver=ResultArchiver(tmp_path),
        cursor_store=CursorStore(tmp_path),
        market_data=MarketDataService(db, MarketDataSource(bitquery_client), call_delay=0, batch_delay=0),
    )


def _archived(tmp_path, feed):
    return sorted(p.name for p in (tmp_path / feed).glob(f"{feed}-*.json"))


class TestETLService:
    """Test one ingestion run"""

    @pytest.mark.asyncio
    async def test_run_all(self, etl_service, bitquery, make_token, db, tmp_path):
        """Runs memecoins, prices and market data in order"""
        make_token("uri-a", address="MintA")
        make_token("uri-b")
        bitquery.queue_json(instructions_payload(["2025-01-03T00:00:00Z"]))
        bitquery.queue_json(
            trades_payload(
                [
                    make_trade("uri-a", block_time="2025-01-03T00:10:00Z"),
                    make_trade("", block_time="2025-01-03T00:11:00Z"),
                    make_trade("uri-b", block_time="2025-01-03T00:12:00Z"),
                ]
            )
        )
        bitquery.queue_json(supply_payload(mint="MintA"))

        results = await etl_service.run_all()

        assert list(results) == ["memecoins", "prices", "market-data"]
        assert results["memecoins"]["records"] == 1
        assert results["prices"]["inserted"] == 2
        assert results["prices"]["skipped"] == 1
        assert results["market-data"] == {"success": True, "candidates": 1, "refreshed": 1}
        assert len(db.execute(select(Price)).scalars().all()) == 2

        store = CursorStore(tmp_path)
        assert store.load("memecoins").latest_fetch_timestamp == utc(2025, 1, 3)
        assert store.load("prices").latest_fetch_timestamp == utc(2025, 1, 3, 0, 12)
        assert len(_archived(tmp_path, "memecoins")) == 1
        assert len(_archived(tmp_path, "prices")) == 1

    @pytest.mark.asyncio
    async def test_second_run_resumes_from_cursor(self, etl_service, bitquery, tmp_path):
        CursorStore(tmp_path).save("prices", Cursor(latest_fetch_timestamp=utc(2025, 2, 1, 8, 0, 0)))
        bitquery.queue_json(trades_payload([]))

        await etl_service.run_prices()

        assert bitquery.requests[0]["body"]["variables"]["since"] == "2025-02-01T08:00:01Z"

    @pytest.mark.asyncio
    async def test_empty_price_window(self, etl_service, bitquery, tmp_path):
        """Zero trades: cursor advances to now, nothing archived or written"""
        bitquery.queue_json(trades_payload([]))

        result = await etl_service.run_prices()

        assert result == {"success": True, "records": 0}
        assert CursorStore(tmp_path).load("prices").latest_fetch_timestamp > utc(2025, 1, 1)
        assert _archived(tmp_path, "prices") == []

    @pytest.mark.asyncio
    async def test_malformed_trades_still_advance_cursor(self, etl_service, bitquery, db, tmp_path):
        """Trades that fail validation still count as observed and are archived"""
        bitquery.queue_json(
            trades_payload(
                [
                    {"Trade": None, "Block": {"Time": "2025-01-02T10:00:00Z"}},
                    {"Trade": {"Buy": None}, "Block": {"Time": "2025-01-02T11:00:00Z"}},
                ]
            )
        )

        result = await etl_service.run_prices()

        assert result["records"] == 0
        assert CursorStore(tmp_path).load("prices").latest_fetch_timestamp == utc(2025, 1, 2, 11)
        assert len(_archived(tmp_path, "prices")) == 1
        assert db.execute(select(Price)).scalars().all() == []

    @pytest.mark.asyncio
    async def test_cursor_uses_newest_time_even_if_that_trade_is_malformed(self, etl_service, bitquery, make_token, tmp_path):
        make_token("uri-a")
        bitquery.queue_json(
            trades_payload(
                [
                    {"Trade": {"Buy": None}, "Block": {"Time": "2025-01-02T12:00:00Z"}},
                    make_trade("uri-a", block_time="2025-01-02T09:00:00Z"),
                    {"Trade": None},
                ]
            )
        )

        result = await etl_service.run_prices()

        assert result["inserted"] == 1
        assert CursorStore(tmp_path).load("prices").latest_fetch_timestamp == utc(2025, 1, 2, 12)

    @pytest.mark.asyncio
    async def test_failing_pass_is_named_in_logs(self, etl_service, bitquery, log_messages):
        bitquery.queue_json(instructions_payload([]))
        bitquery.queue_json({"message": "unauthorized"}, status_code=401)

        with pytest.raises(BitqueryAuthenticationError):
            await etl_service.run_all()

        assert any(m.startswith("memecoins | Fetching new tokens") for m in log_messages)
        assert any(m.startswith("prices | Pass prices failed") for m in log_messages)
        assert all(m.startswith("- |") for m in log_messages if "Step " in m)

    @pytest.mark.asyncio
    async def test_failure_aborts_remaining_passes(self, etl_service, bitquery, tmp_path):
        """A pass that raises stops the run; later passes are not attempted"""
        bitquery.queue_json(instructions_payload([]))
        bitquery.queue_json({"message": "unauthorized"}, status_code=401)

        with pytest.raises(BitqueryAuthenticationError):
            await etl_service.run_all()

        assert len(bitquery.requests) == 2
        store = CursorStore(tmp_path)
        assert store.load("memecoins").latest_fetch_timestamp is not None
        assert store.load("prices") == Cursor()

    @pytest.mark.asyncio
    async def test_new_tokens_are_archived_only(self, etl_service, bitquery, db, tmp_path):
        bitquery.queue_json(instructions_payload(["2025-01-03T00:00:00Z", "2025-01-02T00:00:00Z"]))

        result = await etl_service.run_new_tokens()

        assert result["records"] == 2
        assert len(_archived(tmp_path, "memecoins")) == 1
        assert db.execute(select(Price)).scalars().all() == []

    @pytest.mark.asyncio
    async def test_unknown_pass(self, etl_service):
        with pytest.raises(ValueError):
            await etl_service.run("nope")  # type: ignore[arg-type]


class TestEntrypoint:
    """Test the command-line runner"""

    def test_invalid_pass_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            etl_entrypoint.main(["bogus"])
        assert exc_info.value.code == 2

    def test_failure_exits_nonzero(self, monkeypatch):
        async def failing_run():
            raise BitqueryAuthenticationError("denied", status_code=401)

        monkeypatch.setattr(etl_entrypoint, "run_all_passes", failing_run)

        with pytest.raises(SystemExit) as exc_info:
            etl_entrypoint.main([])
        assert exc_info.value.code == 1

    def test_single_pass(self, monkeypatch):
        seen = []

        async def fake_pass(name):
            seen.append(name)
            return {"success": True, "records": 0}

        monkeypatch.setattr(etl_entrypoint, "run_pass", fake_pass)

        etl_entrypoint.main(["prices"])
        assert seen == ["prices"]
