"""End-to-end tests for the page route through the full middleware stack."""

import time

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from wcproxy.constants import UPSTREAM_BASE_URL
from wcproxy.interfaces.http.app import create_app


@pytest.fixture
def upstream():
    with respx.mock(assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def ok_route(upstream):
    return upstream.get(url__startswith=UPSTREAM_BASE_URL).mock(
        return_value=httpx.Response(200, text="<html>ok</html>")
    )


@pytest.fixture
def test_app(test_settings):
    return create_app(test_settings)


@pytest.fixture
def test_client(test_app):
    """Yield a TestClient and ensure proper cleanup after each test."""
    with TestClient(test_app) as client:
        yield client


class TestPageRoute:
    """Test GET /?q=..."""

    def test_example_page(self, test_client, ok_route):
        response = test_client.get("/?q=https%3A%2F%2Fexample.com")

        assert response.status_code == 200
        assert response.text == "<html>ok</html>"
        assert response.headers["Content-Type"] == "text/html; charset=UTF-8"
        assert response.headers["Cache-Control"] == "public, max-age=86400"
        assert ok_route.call_count == 1
        assert (
            ok_route.calls.last.request.url.params["q"]
            == "cache:https://example.com"
        )

    def test_second_request_served_from_cache(self, test_client, ok_route):
        first = test_client.get("/", params={"q": "https://example.com"})
        second = test_client.get("/", params={"q": "https://example.com"})

        assert first.text == second.text == "<html>ok</html>"
        assert second.headers["Content-Type"] == "text/html; charset=UTF-8"
        assert second.headers["Cache-Control"] == "public, max-age=86400"
        assert ok_route.call_count == 1

    def test_cache_prefix_treated_as_same_url(self, test_client, ok_route):
        first = test_client.get("/", params={"q": "cache:https://example.com"})
        second = test_client.get("/", params={"q": "https://example.com"})

        assert first.status_code == second.status_code == 200
        assert first.text == second.text
        assert ok_route.call_count == 1

    @pytest.mark.parametrize("query", ["not a url", "", "https://", "cache:"])
    def test_invalid_query_returns_400(self, test_client, ok_route, query):
        response = test_client.get("/", params={"q": query})

        assert response.status_code == 400
        assert response.text == "Invalid query url"
        assert ok_route.call_count == 0

    @pytest.mark.parametrize("query", ["a" * 1600 + " ", "https://example.com/" + "a" * 10_000])
    def test_long_query_rejected_quickly(self, test_client, ok_route, query):
        started = time.perf_counter()
        response = test_client.get("/", params={"q": query})

        assert response.status_code == 400
        assert response.text == "Invalid query url"
        assert time.perf_counter() - started < 2.0
        assert ok_route.call_count == 0

    def test_missing_query_returns_400(self, test_client, ok_route):
        response = test_client.get("/")

        assert response.status_code == 400
        assert response.text == "Invalid query url"
        assert ok_route.call_count == 0

    @pytest.mark.parametrize("status_code", [404, 500, 503])
    def test_upstream_error_status_returns_500(self, test_client, upstream, status_code):
        upstream.get(url__startswith=UPSTREAM_BASE_URL).mock(
            return_value=httpx.Response(status_code, text="error page")
        )

        response = test_client.get("/", params={"q": "https://example.com"})

        assert response.status_code == 500
        assert response.text == "Invalid response from google webcache"
        assert "Cache-Control" not in response.headers

    def test_upstream_connection_failure_returns_500(self, test_client, upstream):
        upstream.get(url__startswith=UPSTREAM_BASE_URL).mock(
            side_effect=httpx.ConnectError("Connection refused")
        )

        response = test_client.get("/", params={"q": "https://example.com"})

        assert response.status_code == 500
        assert response.text == "Failed to request google webcache"

    def test_failed_fetch_is_not_cached(self, test_client, upstream):
        route = upstream.get(url__startswith=UPSTREAM_BASE_URL).mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(200, text="<html>ok</html>"),
            ]
        )

        first = test_client.get("/", params={"q": "example.com"})
        second = test_client.get("/", params={"q": "example.com"})

        assert first.status_code == 500
        assert second.status_code == 200
        assert second.text == "<html>ok</html>"
        assert route.call_count == 2

    def test_request_id_and_timing_headers(self, test_client, ok_route):
        response = test_client.get("/", params={"q": "example.com"})

        assert response.headers["X-Request-ID"]
        assert float(response.headers["X-Response-Time-ms"]) >= 0

    def test_unknown_route_returns_404(self, test_client):
        response = test_client.get("/search")
        assert response.status_code == 404


class TestAppLifecycle:
    def test_state_built_on_startup(self, test_app, test_settings):
        with TestClient(test_app):
            assert test_app.state.page_cache.max_entries == test_settings.cache_max_entries
            assert test_app.state.page_cache.ttl_seconds == 3600
            assert test_app.state.page_service.cache is test_app.state.page_cache

    def test_cache_cleared_on_shutdown(self, test_app, ok_route):
        with TestClient(test_app) as client:
            client.get("/", params={"q": "example.com"})
            page_cache = test_app.state.page_cache
            assert len(page_cache) == 1

        assert len(page_cache) == 0


class TestRateLimiting:
    """Test the global request-rate limit."""

    @pytest.fixture
    def limited_client(self, test_settings):
        test_settings.qps_limit = 2
        test_settings.rate_limit_window_seconds = 60
        with TestClient(create_app(test_settings)) as client:
            yield client

    def test_excess_requests_rejected(self, limited_client, ok_route):
        responses = [
            limited_client.get("/", params={"q": "example.com"}) for _ in range(3)
        ]

        assert [r.status_code for r in responses] == [200, 200, 429]
        rejected = responses[-1]
        assert rejected.text == "rate-limit reached"
        assert int(rejected.headers["Retry-After"]) >= 1
        assert rejected.headers["RateLimit-Limit"] == "2"
        assert rejected.headers["RateLimit-Remaining"] == "0"
        assert rejected.headers["X-Request-ID"]
        assert ok_route.call_count == 1

    def test_limit_is_shared_across_urls(self, limited_client, ok_route):
        limited_client.get("/", params={"q": "a.com"})
        limited_client.get("/", params={"q": "b.com"})
        response = limited_client.get("/", params={"q": "c.com"})

        assert response.status_code == 429
        assert ok_route.call_count == 2

    def test_allowed_responses_carry_rate_limit_headers(self, limited_client, ok_route):
        response = limited_client.get("/", params={"q": "example.com"})

        assert response.headers["RateLimit-Limit"] == "2"
        assert response.headers["RateLimit-Remaining"] == "1"

    def test_rate_limit_disabled(self, test_settings, ok_route):
        test_settings.qps_limit = 1
        test_settings.rate_limit_enabled = False
        with TestClient(create_app(test_settings)) as client:
            responses = [client.get("/", params={"q": "example.com"}) for _ in range(3)]

        assert all(r.status_code == 200 for r in responses)
        assert "RateLimit-Limit" not in responses[0].headers
