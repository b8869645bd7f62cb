"""Logging tests - pass context and Slack notices"""

import httpx
import pytest
from loguru import logger

from memetrack.core import logging as app_logging
from memetrack.core.config import settings


@pytest.fixture
def captured():
    messages = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{message}")
    yield messages
    logger.remove(handler_id)


class TestResolveLevel:
    def test_aliases(self):
        assert app_logging.resolve_level("warn") == "WARNING"
        assert app_logging.resolve_level(" fatal ") == "CRITICAL"

    def test_unknown_falls_back_to_info(self):
        assert app_logging.resolve_level("verbose") == "INFO"
        assert app_logging.resolve_level(None) == "INFO"


class TestSlackNotices:
    """Test the ERROR notice text and delivery"""

    def test_notice_names_failing_pass(self, captured):
        log = app_logging.get_logger("etl_service")
        with logger.contextualize(pass_="prices"):
            log.error("Pass prices failed")

        text = app_logging.slack_text(captured[0].record)

        assert text.startswith("[ERROR] pass=prices etl_service:test_notice_names_failing_pass:")
        assert text.endswith("\nPass prices failed")

    def test_notice_outside_a_pass(self, captured):
        app_logging.get_logger("etl_routes").error("ETL run failed")

        text = app_logging.slack_text(captured[0].record)

        assert text.startswith("[ERROR] etl_routes:")
        assert "pass=" not in text

    def test_sink_posts_to_webhook(self, captured, monkeypatch):
        posted = []
        monkeypatch.setattr(settings, "SLACK_WEBHOOK_URL", "https://hooks.slack.test/T000")
        monkeypatch.setattr(app_logging.httpx, "post", lambda url, json, timeout: posted.append((url, json)))

        with logger.contextualize(pass_="market-data"):
            app_logging.get_logger("market_data_service").error("Error processing token BONK")
        app_logging._slack_sink(captured[0])

        assert posted[0][0] == "https://hooks.slack.test/T000"
        assert "pass=market-data" in posted[0][1]["text"]

    def test_sink_ignores_webhook_failures(self, captured, monkeypatch):
        monkeypatch.setattr(settings, "SLACK_WEBHOOK_URL", "https://hooks.slack.test/T000")

        def failing_post(*args, **kwargs):
            raise httpx.ConnectError("refused")

        monkeypatch.setattr(app_logging.httpx, "post", failing_post)

        app_logging.get_logger("etl_service").error("boom")
        app_logging._slack_sink(captured[0])
