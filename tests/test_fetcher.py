import httpx
import pytest

from ingestor.core.errors import ConfigurationError, SourceError, SourceRejectedError, SourceUnavailableError
from ingestor.core.fetcher import SourceFetcher
from conftest import make_raw_fund

API_URL = "https://api.example.com/v1/funds"


def make_fetcher(handler, **kwargs):
    calls = []
    sleeps = []

    def counting_handler(request):
        calls.append(request)
        return handler(request)

    async def fake_sleep(delay):
        sleeps.append(delay)

    kwargs.setdefault("api_key", "secret")
    fetcher = SourceFetcher(
        kwargs.pop("api_url", API_URL),
        kwargs.pop("api_key"),
        transport=httpx.MockTransport(counting_handler),
        sleep=fake_sleep,
        **kwargs,
    )
    return fetcher, calls, sleeps


async def test_fetch_returns_bare_array():
    funds = [make_raw_fund(1), make_raw_fund(2)]
    fetcher, calls, _ = make_fetcher(lambda request: httpx.Response(200, json=funds))

    async with fetcher:
        records = await fetcher.fetch_batch()

    assert records == funds
    assert len(calls) == 1
    assert calls[0].headers["X-API-Key"] == "secret"
    assert calls[0].headers["Authorization"] == "Bearer secret"


async def test_fetch_unwraps_envelope():
    funds = [make_raw_fund(1)]
    fetcher, _, _ = make_fetcher(lambda request: httpx.Response(200, json={"data": {"funds": funds}, "total": 1}))

    async with fetcher:
        assert await fetcher.fetch_batch() == funds


async def test_server_errors_retry_with_backoff_then_fail():
    fetcher, calls, sleeps = make_fetcher(lambda request: httpx.Response(503))

    async with fetcher:
        with pytest.raises(SourceUnavailableError) as excinfo:
            await fetcher.fetch_batch()

    assert len(calls) == 3
    assert sleeps == [1, 2]
    assert fetcher.last_attempts == 3
    assert excinfo.value.status_code == 503


async def test_client_error_fails_immediately():
    fetcher, calls, sleeps = make_fetcher(lambda request: httpx.Response(404))

    async with fetcher:
        with pytest.raises(SourceRejectedError) as excinfo:
            await fetcher.fetch_batch()

    assert len(calls) == 1
    assert sleeps == []
    assert excinfo.value.status_code == 404


async def test_transient_failure_recovers():
    responses = iter([httpx.Response(502), httpx.Response(200, json=[make_raw_fund(1)])])
    fetcher, calls, sleeps = make_fetcher(lambda request: next(responses))

    async with fetcher:
        records = await fetcher.fetch_batch()

    assert len(records) == 1
    assert len(calls) == 2
    assert sleeps == [1]


async def test_timeouts_are_retried():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    fetcher, calls, _ = make_fetcher(handler, max_attempts=2)

    async with fetcher:
        with pytest.raises(SourceUnavailableError) as excinfo:
            await fetcher.fetch_batch()

    assert len(calls) == 2
    assert isinstance(excinfo.value.cause, httpx.ConnectTimeout)


async def test_unexpected_body_is_not_retried():
    fetcher, calls, _ = make_fetcher(lambda request: httpx.Response(200, json={"message": "maintenance"}))

    async with fetcher:
        with pytest.raises(SourceError) as excinfo:
            await fetcher.fetch_batch()

    assert len(calls) == 1
    assert not isinstance(excinfo.value, SourceUnavailableError)


async def test_malformed_json_raises_source_error():
    fetcher, calls, _ = make_fetcher(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

    async with fetcher:
        with pytest.raises(SourceError):
            await fetcher.fetch_batch()

    assert len(calls) == 1


async def test_empty_batch_is_returned():
    fetcher, _, _ = make_fetcher(lambda request: httpx.Response(200, json=[]))

    async with fetcher:
        assert await fetcher.fetch_batch() == []


async def test_missing_credentials_raise_before_any_request():
    fetcher, calls, _ = make_fetcher(lambda request: httpx.Response(200, json=[]), api_key="")

    with pytest.raises(ConfigurationError) as excinfo:
        await fetcher.fetch_batch()

    assert calls == []
    assert excinfo.value.key == "MORNINGSTAR_API_KEY"


async def test_health_check_reports_reachable():
    fetcher, calls, _ = make_fetcher(
        lambda request: httpx.Response(200, json={"status": "ok"}),
        health_url="https://api.example.com/v1/health",
    )

    async with fetcher:
        status = await fetcher.health_check()

    assert status["reachable"] is True
    assert status["status_code"] == 200
    assert status["error"] is None
    assert calls[0].url.path == "/v1/health"


async def test_health_check_never_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    fetcher, calls, _ = make_fetcher(handler)

    async with fetcher:
        status = await fetcher.health_check()

    assert status["reachable"] is False
    assert "ConnectError" in status["error"]
    assert len(calls) == 1


async def test_health_check_reports_http_errors():
    fetcher, _, _ = make_fetcher(lambda request: httpx.Response(500))

    async with fetcher:
        status = await fetcher.health_check()

    assert status["reachable"] is False
    assert status["error"] == "HTTP 500"


def test_from_settings(settings):
    fetcher = SourceFetcher.from_settings(settings)

    assert fetcher.api_url == "https://api.example.com/v1/funds"
    assert fetcher.api_key == "test-key"
    assert fetcher.max_attempts == 3
    assert fetcher.base_delay == 1.0
