"""Boundary utilities shared by the analytics entry points."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from core.exceptions import (
    CacheCorruptionError,
    ExternalServiceException,
    ResourceNotFoundException,
    RideInsightsException,
    SearchTimeoutError,
    ValidationException,
)


class ServiceResult(BaseModel):
    """Discriminated result returned by every public entry point."""

    success: bool
    data: Any | None = None
    error: str | None = None
    error_type: str | None = None
    status_code: int = 200
    retryable: bool = False

    @classmethod
    def ok(cls, data: Any) -> ServiceResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        error: Exception,
        *,
        status_code: int,
        retryable: bool = False,
    ) -> ServiceResult:
        message = getattr(error, "message", None) or str(error)
        return cls(
            success=False,
            error=message,
            error_type=type(error).__name__,
            status_code=status_code,
            retryable=retryable,
        )

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "error": self.error,
            "errorType": self.error_type,
            "statusCode": self.status_code,
            "retryable": self.retryable,
        }


def service_result(logger: logging.Logger):
    """
    Decorator for async entry points that provides standardized error handling.

    Wraps the coroutine so callers always receive a ServiceResult:
    - Return values become ``ServiceResult.ok(value)``
    - Custom exceptions map to status codes (400, 404, 502, 504, 500)
    - CacheCorruptionError is re-raised; it is not a request-level failure
    - Other exceptions are logged and converted to a 500 result

    Usage:
        @service_result(logger)
        async def fetch_something(self, ...):
            # ... business logic ...
            return payload
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> ServiceResult:
            try:
                return ServiceResult.ok(await func(*args, **kwargs))
            except CacheCorruptionError:
                raise
            except ValidationException as e:
                logger.warning("Validation error in %s: %s", func.__name__, e.message)
                return ServiceResult.fail(e, status_code=400)
            except ResourceNotFoundException as e:
                logger.info("Resource not found in %s: %s", func.__name__, e.message)
                return ServiceResult.fail(e, status_code=404)
            except SearchTimeoutError as e:
                logger.warning("Search timed out in %s: %s", func.__name__, e.message)
                return ServiceResult.fail(e, status_code=504, retryable=True)
            except ExternalServiceException as e:
                logger.exception(
                    "Search backend error in %s: %s",
                    func.__name__,
                    e.message,
                )
                return ServiceResult.fail(e, status_code=502)
            except RideInsightsException as e:
                logger.exception(
                    "Application error in %s: %s",
                    func.__name__,
                    e.message,
                )
                return ServiceResult.fail(e, status_code=500)
            except Exception as e:
                logger.exception("Unexpected error in %s", func.__name__)
                return ServiceResult.fail(e, status_code=500)

        return wrapper

    return decorator
