import pytest
from elasticsearch import ConnectionError as ElasticConnectionError
from elasticsearch import ConnectionTimeout

from core.retry import retry_async


@pytest.mark.asyncio
async def test_retry_async_retries_connection_errors_until_success() -> None:
    attempts = 0

    @retry_async(max_retries=2, retry_delay=0)
    async def flaky():
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise ElasticConnectionError("connection refused")
        return "ok"

    assert await flaky() == "ok"
    assert attempts == 3


@pytest.mark.asyncio
async def test_retry_async_raises_after_exhaustion() -> None:
    attempts = 0

    @retry_async(max_retries=1, retry_delay=0)
    async def always_fail():
        nonlocal attempts
        attempts += 1
        raise ElasticConnectionError("connection refused")

    with pytest.raises(ElasticConnectionError):
        await always_fail()

    assert attempts == 2


@pytest.mark.asyncio
async def test_retry_async_does_not_retry_timeouts() -> None:
    attempts = 0

    @retry_async(max_retries=3, retry_delay=0)
    async def slow():
        nonlocal attempts
        attempts += 1
        raise ConnectionTimeout("timed out")

    with pytest.raises(ConnectionTimeout):
        await slow()

    assert attempts == 1
