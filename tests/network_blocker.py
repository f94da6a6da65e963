from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import pytest


def install_network_blocker(monkeypatch: pytest.MonkeyPatch) -> None:
    """Fail any real HTTP request made through aiohttp.

    The async Elasticsearch transport sends requests through aiohttp, so
    this also keeps tests from reaching a live cluster.
    """
    import aiohttp

    def _aiohttp_block(self, method: str, url: Any, *args: Any, **kwargs: Any) -> Any:
        msg = f"Blocked network access in tests: {method} {url}"
        raise RuntimeError(msg)

    monkeypatch.setattr(aiohttp.ClientSession, "_request", _aiohttp_block, raising=True)
