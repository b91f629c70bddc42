from __future__ import annotations

import logging
import typing as tp

import httpx

from .._core._headers import Headers
from .._core._spec import should_revalidate
from .._core.models import AnyIterable, Request, Response, ResponseMetadata
from .._exceptions import BadResponseError, ResourceGoneError
from .._policies import CachePolicy, SpecificationPolicy
from .._utils import filter_mapping, get_safe_url
from ._revalidation import AsyncRevalidation
from ._storages import AsyncBaseStorage, AsyncInMemoryStorage

logger = logging.getLogger("revalidator.transports")

__all__ = ("AsyncCacheTransport",)

# Bodies are held decoded, so the framing headers of the wire message no longer apply.
WIRE_HEADERS = ["content-encoding", "content-length", "transfer-encoding"]


def _headers_from_httpx(headers: httpx.Headers) -> Headers:
    internal_headers = Headers()
    for key, value in headers.multi_items():
        internal_headers.add(key, value)
    return internal_headers


def _headers_to_httpx(headers: Headers) -> tp.List[tp.Tuple[str, str]]:
    return [(key, value) for key in headers for value in headers.get_list(key) or []]


async def _request_from_httpx(request: httpx.Request) -> Request:
    content = await request.aread()
    return Request(
        method=request.method,
        url=str(request.url),
        headers=_headers_from_httpx(request.headers),
        stream=AnyIterable(content),
        metadata=dict(request.extensions),
    )


async def _request_to_httpx(request: Request) -> httpx.Request:
    return httpx.Request(
        method=request.method,
        url=request.url,
        headers=_headers_to_httpx(request.headers),
        content=await request.aread(),
        extensions=dict(request.metadata),
    )


async def _response_from_httpx(response: httpx.Response) -> Response:
    try:
        content = await response.aread()
    finally:
        await response.aclose()
    return Response(
        status_code=response.status_code,
        headers=Headers(filter_mapping(_headers_from_httpx(response.headers)._headers, WIRE_HEADERS)),
        stream=AnyIterable(content),
    )


async def _response_to_httpx(response: Response) -> httpx.Response:
    return httpx.Response(
        status_code=response.status_code,
        headers=_headers_to_httpx(response.headers),
        content=await response.aread(),
        extensions=dict(response.metadata),
    )


class AsyncCacheTransport(httpx.AsyncBaseTransport):
    """
    An HTTPX Transport that serves GET requests from a cache and revalidates them when needed.

    Revalidation requests go to the wrapped transport directly, so they can never
    be looked up, stored or revalidated by this layer again.

    :param transport: `Transport` that our class wraps in order to add an HTTP Cache layer on top of
    :type transport: httpx.AsyncBaseTransport
    :param storage: Storage that handles how the responses should be saved, defaults to None
    :type storage: tp.Optional[AsyncBaseStorage], optional
    :param policy: Decides which responses may be stored, defaults to None
    :type policy: tp.Optional[CachePolicy], optional
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        storage: tp.Optional[AsyncBaseStorage] = None,
        policy: tp.Optional[CachePolicy] = None,
    ) -> None:
        self._transport = transport
        self._storage = storage if storage is not None else AsyncInMemoryStorage()
        self._policy = policy if policy is not None else SpecificationPolicy()
        self._revalidation = AsyncRevalidation(
            storage=self._storage,
            request_sender=self._send_revalidation_request,
            policy=self._policy,
        )

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """
        Handles HTTP requests while also implementing HTTP caching.

        :param request: An HTTP request
        :type request: httpx.Request
        :return: An HTTP response
        :rtype: httpx.Response
        """
        if request.extensions.get("revalidator_bypass_cache", False):
            logger.debug(f"Bypassing the cache for {get_safe_url(str(request.url))} as requested.")
            return await self._transport.handle_async_request(request)

        if request.method != "GET":
            return await self._transport.handle_async_request(request)

        internal_request = await _request_from_httpx(request)
        stored_response = await self._storage.retrieve(internal_request)

        if stored_response is None:
            return await self._fetch(internal_request)

        if not should_revalidate(internal_request, stored_response):
            return await self._serve(stored_response, from_cache=True, revalidated=False)

        try:
            still_valid = await self._revalidation.revalidate(internal_request, stored_response)
        except ResourceGoneError as exc:
            logger.debug(f"Forwarding the 404 received while revalidating {get_safe_url(internal_request.url)}.")
            return await self._serve(exc.response, from_cache=False, revalidated=True)

        if still_valid:
            return await self._serve(stored_response, from_cache=True, revalidated=True)

        if internal_request.response is not None:
            return await self._serve(internal_request.response, from_cache=False, revalidated=True)

        return await self._fetch(internal_request)

    async def _send(self, request: Request) -> Response:
        response = await self._transport.handle_async_request(await _request_to_httpx(request))
        return await _response_from_httpx(response)

    async def _send_revalidation_request(self, request: Request) -> Response:
        response = await self._send(request)
        if response.status_code >= 400:
            raise BadResponseError(
                f"The origin answered the revalidation request with {response.status_code}.",
                request=request,
                response=response,
            )
        return response

    async def _fetch(self, request: Request) -> httpx.Response:
        response = await self._send(request)
        stored = self._policy.is_cacheable(response)

        if stored:
            await self._storage.store(request, response)

        response.metadata.update(  # type: ignore[attr-defined]
            ResponseMetadata(
                revalidator_from_cache=False,
                revalidator_revalidated=False,
                revalidator_stored=stored,
            )
        )
        return await _response_to_httpx(response)

    async def _serve(self, response: Response, from_cache: bool, revalidated: bool) -> httpx.Response:
        # the engine marks what it wrote, stored entries never carry the flag
        response.metadata.update(  # type: ignore[attr-defined]
            ResponseMetadata(
                revalidator_from_cache=from_cache,
                revalidator_revalidated=revalidated,
                revalidator_stored=response.metadata.get("revalidator_stored", False),
            )
        )
        return await _response_to_httpx(response)

    async def aclose(self) -> None:
        await self._transport.aclose()
        await self._storage.close()
