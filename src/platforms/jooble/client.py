"""Jooble search client: one cancellable HTTP exchange per search.

Every network wait (send, body read) runs in its own task. A listener on
the cancellation signal cancels that task the moment the signal closes, so
a pending request is abandoned immediately rather than at a timeout.
Whether a failure was a cancellation is decided by the signal's state,
never by the text of the error.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable
from typing import Any, TypeVar

import httpx

from src.core.cancellation import CancellationSignal
from src.core.config import SearchApiConfig
from src.core.errors import (
    RequestBuildError,
    SearchCancelled,
    TransportFailure,
    UnexpectedStatusError,
)
from src.core.schemas import Vacancy
from src.platforms.base import SearchClient
from src.platforms.jooble.parser import map_jobs, parse_response

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Only the first page is ever requested.
_PAGE = 1

# Hostname, IPv4 or bare IPv6 literal (httpx strips the brackets).
_HOST_RE = re.compile(rb"[A-Za-z0-9._-]+|[0-9A-Fa-f:.]+")


class JoobleClient(SearchClient):
    """Jooble job-search API client.

    ``transport`` is injectable so tests can use ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: SearchApiConfig,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._api_key = api_key if api_key is not None else config.resolve_api_key()
        self._transport = transport

    @property
    def platform_id(self) -> str:
        return "jooble"

    async def search(self, term: str, signal: CancellationSignal) -> list[Vacancy]:
        """Search Jooble for ``term`` and return mapped vacancies in upstream order."""
        # No timeout: a hung request ends only when the signal closes.
        async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
            request = self._build_request(client, term)

            signal.raise_if_closed("before sending the request")
            logger.info("Searching Jooble for '%s'", term)
            try:
                response = await _bounded(client.send(request, stream=True), signal)
            except httpx.HTTPError as e:
                _raise_if_cancelled(signal)
                msg = f"HTTP request failed: {e!r}"
                raise TransportFailure(msg) from e

            try:
                signal.raise_if_closed("before reading the response")
                try:
                    body = await _bounded(response.aread(), signal)
                except httpx.HTTPError as e:
                    _raise_if_cancelled(signal)
                    msg = f"Failed to read response body: {e!r}"
                    raise TransportFailure(msg) from e
            finally:
                await response.aclose()

        signal.raise_if_closed("before processing the response")
        if response.status_code != httpx.codes.OK:
            raise UnexpectedStatusError(
                response.status_code, body.decode("utf-8", errors="replace"),
            )

        parsed = parse_response(body)
        signal.raise_if_closed("after decoding the response")
        vacancies = map_jobs(parsed.jobs, signal)
        logger.info(
            "Jooble returned %d jobs (%d total), %d usable",
            len(parsed.jobs), parsed.total_count, len(vacancies),
        )
        return vacancies

    def _build_request(self, client: httpx.AsyncClient, term: str) -> httpx.Request:
        payload: dict[str, Any] = {"keywords": term, "page": _PAGE}
        if self._config.location:
            payload["location"] = self._config.location
        try:
            url = httpx.URL(f"{self._config.endpoint}{self._api_key}")
            # httpx percent-encodes malformed hosts instead of rejecting them.
            if url.scheme not in ("http", "https") or not _HOST_RE.fullmatch(url.raw_host):
                msg = f"invalid API URL '{self._config.endpoint}'"
                raise RequestBuildError(msg)
            return client.build_request(
                "POST",
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            msg = f"Failed to build HTTP request: {e}"
            raise RequestBuildError(msg) from e


async def _bounded(awaitable: Awaitable[T], signal: CancellationSignal) -> T:
    """Await in a separate task that the signal cancels when it closes."""
    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(awaitable)
    unlink = signal.add_listener(lambda: loop.call_soon_threadsafe(task.cancel))
    try:
        return await task
    except asyncio.CancelledError:
        if signal.closed and not _current_task_cancelling():
            msg = "search cancelled by user while waiting for the network"
            raise SearchCancelled(msg) from None
        raise
    finally:
        unlink()


def _raise_if_cancelled(signal: CancellationSignal) -> None:
    if signal.closed:
        msg = "search cancelled by user"
        raise SearchCancelled(msg)


def _current_task_cancelling() -> bool:
    """True if the calling task itself (not the inner one) is being cancelled."""
    current = asyncio.current_task()
    return current is not None and current.cancelling() > 0
