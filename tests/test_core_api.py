import logging

import pytest

from core.api import ServiceResult, service_result
from core.exceptions import (
    CacheCorruptionError,
    ExternalServiceException,
    InvalidRangeError,
    RangeTooLargeError,
    ResourceNotFoundException,
    RideInsightsException,
    SearchBackendError,
    SearchTimeoutError,
    ValidationException,
)

logger = logging.getLogger("tests.core_api")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("exc", "expected_status", "retryable"),
    [
        (ValidationException("bad input"), 400, False),
        (InvalidRangeError("bad range"), 400, False),
        (RangeTooLargeError("too long"), 400, False),
        (ResourceNotFoundException("missing"), 404, False),
        (SearchTimeoutError("slow"), 504, True),
        (SearchBackendError("shard failure"), 502, False),
        (ExternalServiceException("upstream down"), 502, False),
        (RideInsightsException("boom"), 500, False),
    ],
)
async def test_service_result_maps_domain_exceptions(
    exc: Exception,
    expected_status: int,
    retryable: bool,
) -> None:
    @service_result(logger)
    async def _handler():
        raise exc

    result = await _handler()

    assert isinstance(result, ServiceResult)
    assert result.success is False
    assert result.status_code == expected_status
    assert result.retryable is retryable
    assert result.error == exc.message
    assert result.error_type == type(exc).__name__


@pytest.mark.asyncio
async def test_service_result_wraps_unexpected_errors() -> None:
    @service_result(logger)
    async def _handler():
        msg = "kaboom"
        raise RuntimeError(msg)

    result = await _handler()

    assert result.success is False
    assert result.status_code == 500
    assert result.error == "kaboom"


@pytest.mark.asyncio
async def test_service_result_reraises_cache_corruption() -> None:
    @service_result(logger)
    async def _handler():
        msg = "bad entry"
        raise CacheCorruptionError(msg)

    with pytest.raises(CacheCorruptionError):
        await _handler()


@pytest.mark.asyncio
async def test_service_result_wraps_success() -> None:
    @service_result(logger)
    async def _handler(value: int):
        return {"value": value}

    result = await _handler(3)

    assert result.success is True
    assert result.data == {"value": 3}
    assert result.to_dict() == {"success": True, "data": {"value": 3}}


def test_failure_to_dict_shape() -> None:
    result = ServiceResult.fail(SearchTimeoutError("slow"), status_code=504, retryable=True)
    assert result.to_dict() == {
        "success": False,
        "error": "slow",
        "errorType": "SearchTimeoutError",
        "statusCode": 504,
        "retryable": True,
    }
