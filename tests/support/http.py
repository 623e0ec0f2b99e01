"""Helpers for routing resilient HTTP clients to in-process handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from workshopbot.adapters.http_resilience import ResilientClient

if TYPE_CHECKING:
    from collections.abc import Callable

    from workshopbot.config.http_resilience import ResilienceConfig


def make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


def recording_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> tuple[Callable[[ResilienceConfig], ResilientClient], list[ResilientClient]]:
    """Like ``make_client_factory`` but also returns every client it built."""

    built: list[ResilientClient] = []
    make = make_client_factory(handler)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = make(resilience)
        built.append(client)
        return client

    return factory, built
