"""Shared fixtures: in-memory store and a fake Bitquery transport."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BITQUERY_API_KEY", "test-key")
os.environ.setdefault("ACCESS_TOKEN", "test-token")

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest
import pytest_asyncio
from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import memetrack.models  # noqa: F401 - register all models
from memetrack.ingestion.bitquery import BitqueryClient
from memetrack.models.base import Base
from memetrack.models.token import Token


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite needs explicit BEGIN for SAVEPOINT support
    @event.listens_for(eng, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture()
def log_messages():
    """Loguru output captured during the test, one "<pass> | <message>" line per record."""
    messages: List[str] = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{extra[pass_]} | {message}")
    yield messages
    logger.remove(handler_id)


@pytest.fixture()
def make_token(db):
    def _make(uri: str, **fields: Any) -> Token:
        token = Token(uri=uri, **fields)
        db.add(token)
        db.commit()
        return token

    return _make


class FakeBitquery:
    """Records GraphQL requests and answers them from a queue."""

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self.responses: List[Callable[[Dict[str, Any]], httpx.Response]] = []

    def queue_json(self, body: Any, status_code: int = 200) -> None:
        self.responses.append(lambda _payload: httpx.Response(status_code, json=body))

    def queue(self, handler: Callable[[Dict[str, Any]], httpx.Response]) -> None:
        self.responses.append(handler)

    def handle(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append({"headers": dict(request.headers), "body": payload})
        if not self.responses:
            raise AssertionError(f"Unexpected Bitquery request: {payload.get('variables')}")
        return self.responses.pop(0)(payload)


@pytest.fixture()
def bitquery():
    return FakeBitquery()


@pytest_asyncio.fixture()
async def bitquery_client(bitquery):
    async with httpx.AsyncClient(transport=httpx.MockTransport(bitquery.handle)) as http:
        yield BitqueryClient(
            api_key="test-key",
            access_token="test-token",
            url="https://bitquery.test/eap",
            http_client=http,
        )
