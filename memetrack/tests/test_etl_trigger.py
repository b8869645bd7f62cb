"""Scheduled trigger (AWS Lambda) tests"""

import importlib.util
import io
import json
import urllib.error
from pathlib import Path

import pytest

TRIGGER_PATH = Path(__file__).resolve().parents[2] / "lambda" / "etl_trigger.py"


@pytest.fixture
def trigger():
    spec = importlib.util.spec_from_file_location("etl_trigger", TRIGGER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class TestLambdaHandler:
    def test_missing_api_url(self, trigger, monkeypatch):
        monkeypatch.delenv("API_URL", raising=False)
        response = trigger.lambda_handler({}, None)
        assert response["statusCode"] == 500

    def test_unknown_pass(self, trigger, monkeypatch):
        monkeypatch.setenv("API_URL", "https://memetrack.test")
        response = trigger.lambda_handler({"pass": "bogus"}, None)
        assert response["statusCode"] == 400

    def test_runs_all_passes(self, trigger, monkeypatch):
        monkeypatch.setenv("API_URL", "https://memetrack.test/")
        seen = {}

        def fake_urlopen(request, timeout):
            seen["url"] = request.full_url
            seen["method"] = request.get_method()
            seen["timeout"] = timeout
            return FakeResponse(json.dumps({"success": True, "results": {}}).encode())

        monkeypatch.setattr(trigger.urllib.request, "urlopen", fake_urlopen)

        response = trigger.lambda_handler({}, None)

        assert response["statusCode"] == 200
        assert json.loads(response["body"])["etl_result"]["success"] is True
        assert seen == {"url": "https://memetrack.test/etl/run", "method": "POST", "timeout": 600}

    def test_single_pass(self, trigger, monkeypatch):
        monkeypatch.setenv("API_URL", "https://memetrack.test")
        monkeypatch.setenv("ETL_TIMEOUT", "30")
        seen = {}

        def fake_urlopen(request, timeout):
            seen["url"] = request.full_url
            seen["timeout"] = timeout
            return FakeResponse(b"{}")

        monkeypatch.setattr(trigger.urllib.request, "urlopen", fake_urlopen)

        assert trigger.lambda_handler({"pass": "prices"}, None)["statusCode"] == 200
        assert seen == {"url": "https://memetrack.test/etl/run/prices", "timeout": 30}

    def test_http_error_is_forwarded(self, trigger, monkeypatch):
        monkeypatch.setenv("API_URL", "https://memetrack.test")

        def fake_urlopen(request, timeout):
            raise urllib.error.HTTPError(request.full_url, 500, "Server Error", {}, io.BytesIO(b'{"success": false}'))

        monkeypatch.setattr(trigger.urllib.request, "urlopen", fake_urlopen)

        response = trigger.lambda_handler({}, None)

        assert response["statusCode"] == 500
        assert json.loads(response["body"])["success"] is False

    def test_connection_error(self, trigger, monkeypatch):
        monkeypatch.setenv("API_URL", "https://memetrack.test")

        def fake_urlopen(request, timeout):
            raise urllib.error.URLError("refused")

        monkeypatch.setattr(trigger.urllib.request, "urlopen", fake_urlopen)

        response = trigger.lambda_handler({}, None)

        assert response["statusCode"] == 500
        assert "Connection error" in json.loads(response["body"])["error"]
