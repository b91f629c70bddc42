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
from ._revalidation import Revalidation
from ._storages import BaseStorage, InMemoryStorage

logger = logging.getLogger("revalidator.transports")

__all__ = ("CacheTransport",)

# Bodies are held decoded, so the framing headers of the wire message no longer apply.
WIRE_HEADERS = ["content-encoding", "content-length", "transfer-encoding"]


def _headers_from_httpx(headers: httpx.Headers) -> Headers:
    internal_headers = Headers()
    for key, value in headers.multi_items():
        internal_headers.add(key, value)
    return internal_headers


def _headers_to_httpx(headers: Headers) -> tp.List[tp.Tuple[str, str]]:
    return [(key, value) for key in headers for value in headers.get_list(key) or []]


def _request_from_httpx(request: httpx.Request) -> Request:
    content = request.read()
    return Request(
        method=request.method,
        url=str(request.url),
        headers=_headers_from_httpx(request.headers),
        stream=AnyIterable(content),
        metadata=dict(request.extensions),
    )


def _request_to_httpx(request: Request) -> httpx.Request:
    return httpx.Request(
        method=request.method,
        url=request.url,
        headers=_headers_to_httpx(request.headers),
        content=request.read(),
        extensions=dict(request.metadata),
    )


def _response_from_httpx(response: httpx.Response) -> Response:
    try:
        content = response.read()
    finally:
        response.close()
    return Response(
        status_code=response.status_code,
        headers=Headers(filter_mapping(_headers_from_httpx(response.headers)._headers, WIRE_HEADERS)),
        stream=AnyIterable(content),
    )


def _response_to_httpx(response: Response) -> httpx.Response:
    return httpx.Response(
        status_code=response.status_code,
        headers=_headers_to_httpx(response.headers),
        content=response.read(),
        extensions=dict(response.metadata),
    )


class CacheTransport(httpx.BaseTransport):
    """
    An HTTPX Transport that serves GET requests from a cache and revalidates them when needed.

    Revalidation requests go to the wrapped transport directly, so they can never
    be looked up, stored or revalidated by this layer again.

    :param transport: `Transport` that our class wraps in order to add an HTTP Cache layer on top of
    :type transport: httpx.BaseTransport
    :param storage: Storage that handles how the responses should be saved, defaults to None
    :type storage: tp.Optional[BaseStorage], optional
    :param policy: Decides which responses may be stored, defaults to None
    :type policy: tp.Optional[CachePolicy], optional
    """

    def __init__(
        self,
        transport: httpx.BaseTransport,
        storage: tp.Optional[BaseStorage] = None,
        policy: tp.Optional[CachePolicy] = None,
    ) -> None:
        self._transport = transport
        self._storage = storage if storage is not None else InMemoryStorage()
        self._policy = policy if policy is not None else SpecificationPolicy()
        self._revalidation = Revalidation(
            storage=self._storage,
            request_sender=self._send_revalidation_request,
            policy=self._policy,
        )

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """
        Handles HTTP requests while also implementing HTTP caching.

        :param request: An HTTP request
        :type request: httpx.Request
        :return: An HTTP response
        :rtype: httpx.Response
        """
        if request.extensions.get("revalidator_bypass_cache", False):
            logger.debug(f"Bypassing the cache for {get_safe_url(str(request.url))} as requested.")
            return self._transport.handle_request(request)

        if request.method != "GET":
            return self._transport.handle_request(request)

        internal_request = _request_from_httpx(request)
        stored_response = self._storage.retrieve(internal_request)

        if stored_response is None:
            return self._fetch(internal_request)

        if not should_revalidate(internal_request, stored_response):
            return self._serve(stored_response, from_cache=True, revalidated=False)

        try:
            still_valid = self._revalidation.revalidate(internal_request, stored_response)
        except ResourceGoneError as exc:
            logger.debug(f"Forwarding the 404 received while revalidating {get_safe_url(internal_request.url)}.")
            return self._serve(exc.response, from_cache=False, revalidated=True)

        if still_valid:
            return self._serve(stored_response, from_cache=True, revalidated=True)

        if internal_request.response is not None:
            return self._serve(internal_request.response, from_cache=False, revalidated=True)

        return self._fetch(internal_request)

    def _send(self, request: Request) -> Response:
        response = self._transport.handle_request(_request_to_httpx(request))
        return _response_from_httpx(response)

    def _send_revalidation_request(self, request: Request) -> Response:
        response = self._send(request)
        if response.status_code >= 400:
            raise BadResponseError(
                f"The origin answered the revalidation request with {response.status_code}.",
                request=request,
                response=response,
            )
        return response

    def _fetch(self, request: Request) -> httpx.Response:
        response = self._send(request)
        stored = self._policy.is_cacheable(response)

        if stored:
            self._storage.store(request, response)

        response.metadata.update(  # type: ignore[attr-defined]
            ResponseMetadata(
                revalidator_from_cache=False,
                revalidator_revalidated=False,
                revalidator_stored=stored,
            )
        )
        return _response_to_httpx(response)

    def _serve(self, response: Response, from_cache: bool, revalidated: bool) -> httpx.Response:
        # the engine marks what it wrote, stored entries never carry the flag
        response.metadata.update(  # type: ignore[attr-defined]
            ResponseMetadata(
                revalidator_from_cache=from_cache,
                revalidator_revalidated=revalidated,
                revalidator_stored=response.metadata.get("revalidator_stored", False),
            )
        )
        return _response_to_httpx(response)

    def close(self) -> None:
        self._transport.close()
        self._storage.close()
