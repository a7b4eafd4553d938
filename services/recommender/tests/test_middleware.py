"""Tests for middleware helpers — rate limit tiers/keys and Sentry scrubbing."""

import pytest
from starlette.requests import Request

from services.recommender.middleware.rate_limit import _get_client_key, _get_rate_limit
from services.recommender.middleware.sentry import FILTERED, _strip_sensitive_data


def _request(path: str, headers: dict[str, str] | None = None, client=("10.0.0.1", 5000)) -> Request:
    return Request({
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "server": ("test", 80),
        "path": path,
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    })


class TestRateLimitTiers:
    @pytest.mark.parametrize("path,tier", [
        ("/generate", "llm"),
        ("/sessions/abc/signals", "signals"),
        ("/sessions/abc/profile", "signals"),
        ("/health", "anon"),
        ("/docs", "anon"),
    ])
    def test_tier_for_path(self, path, tier):
        assert _get_rate_limit(path)[1] == tier


class TestClientKey:
    def test_session_paths_keyed_by_session(self):
        assert _get_client_key(_request("/sessions/abc/signals")) == "session:abc"

    def test_other_paths_keyed_by_ip(self):
        assert _get_client_key(_request("/generate")) == "ip:10.0.0.1"

    def test_forwarded_for_wins(self):
        request = _request("/generate", {"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
        assert _get_client_key(request) == "ip:203.0.113.9"

    def test_no_client(self):
        assert _get_client_key(_request("/generate", client=None)) == "ip:unknown"


class TestSentryScrubbing:
    def test_request_headers_and_cookies_filtered(self):
        event = {
            "request": {
                "headers": {"Authorization": "Bearer abc", "X-Api-Key": "k", "Accept": "json"},
                "cookies": {"session": "s"},
            },
        }
        result = _strip_sensitive_data(event, {})
        assert result["request"]["headers"]["Authorization"] == FILTERED
        assert result["request"]["headers"]["X-Api-Key"] == FILTERED
        assert result["request"]["headers"]["Accept"] == "json"
        assert result["request"]["cookies"] == FILTERED

    def test_breadcrumb_headers_filtered(self):
        event = {"breadcrumbs": {"values": [{"data": {"headers": {"cookie": "a=b"}}}]}}
        result = _strip_sensitive_data(event, {})
        assert result["breadcrumbs"]["values"][0]["data"]["headers"]["cookie"] == FILTERED

    def test_event_without_request(self):
        assert _strip_sensitive_data({"message": "hi"}, {}) == {"message": "hi"}
