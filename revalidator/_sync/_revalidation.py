from __future__ import annotations

import logging
import typing as tp

import httpx

from .._core._spec import make_conditional_request, refresh_validated_headers
from .._core.models import Request, Response, ResponseMetadata
from .._exceptions import BadResponseError, ResourceGoneError, TransportFailure
from .._policies import CachePolicy, SpecificationPolicy
from .._utils import get_safe_url
from ._storages import BaseStorage

logger = logging.getLogger("revalidator.revalidation")

__all__ = ("Revalidation",)

RequestSender = tp.Callable[[Request], Response]


class Revalidation:
    """
    Confirms a stored response with the origin and reconciles the storage with the answer.

    The request sender must reach the network without going through the cache
    again; it raises `BadResponseError` for error statuses and
    `httpx.RequestError` (transport, protocol or decoding failures) or
    `TransportFailure` when no usable answer could be obtained.

    :param storage: Storage the revalidated responses are written to
    :type storage: BaseStorage
    :param request_sender: Callable that sends the conditional request
    :type request_sender: RequestSender
    :param policy: Decides whether a response may be stored, defaults to SpecificationPolicy()
    :type policy: tp.Optional[CachePolicy], optional
    """

    def __init__(
        self,
        storage: BaseStorage,
        request_sender: RequestSender,
        policy: tp.Optional[CachePolicy] = None,
    ) -> None:
        self._storage = storage
        self._send_request = request_sender
        self._policy = policy if policy is not None else SpecificationPolicy()

    def revalidate(self, request: Request, response: Response) -> bool:
        """
        Revalidates the stored `response` of `request`.

        :return: True when the stored response may be used as it is (its
            headers may have been refreshed in place). False when it must not
            be trusted; if the origin sent a replacement, it is attached as
            `request.response`.
            The response written to the storage, if any, is marked with
            `revalidator_stored`.
        :raises ResourceGoneError: The origin answered 404; the entry has been deleted.
        """
        url = get_safe_url(request.url)
        conditional_request = make_conditional_request(request, response)

        try:
            validation_response = self._send_request(conditional_request)
        except BadResponseError as exc:
            if exc.status_code == 404:
                logger.debug(f"Deleting the stored response for {url} since the origin answered 404.")
                self._storage.delete(request)
                raise ResourceGoneError(
                    f"The resource located at {url} no longer exists.",
                    request=exc.request,
                    response=exc.response,
                ) from exc
            logger.debug(f"Could not revalidate {url} since the origin answered {exc.status_code}.")
            return False
        except (httpx.RequestError, TransportFailure) as exc:
            logger.warning(f"Could not revalidate {url} due to a transport failure: {exc!r}")
            return False

        if validation_response.status_code == 200:
            return self._handle_200_response(request, validation_response)
        elif validation_response.status_code == 304:
            return self._handle_304_response(request, validation_response, response)

        logger.debug(
            f"Could not revalidate {url} since the origin answered "
            f"with an unexpected status code ({validation_response.status_code})."
        )
        return False

    def _handle_200_response(self, request: Request, validation_response: Response) -> bool:
        # The origin ignored the validators or the representation changed.
        request.response = validation_response

        stored = self._policy.is_cacheable(validation_response)
        if stored:
            logger.debug(f"Storing the new response for {get_safe_url(request.url)} received during revalidation.")
            self._storage.store(request, validation_response)
        validation_response.metadata.update(ResponseMetadata(revalidator_stored=stored))  # type: ignore[attr-defined]
        return False

    def _handle_304_response(
        self,
        request: Request,
        validation_response: Response,
        response: Response,
    ) -> bool:
        url = get_safe_url(request.url)

        if validation_response.etag != response.etag:
            logger.debug(f"Considering the stored response for {url} as invalid since the 304 has another ETag.")
            return False

        modified = refresh_validated_headers(response, validation_response)

        stored = modified and self._policy.is_cacheable(response)
        if stored:
            logger.debug(f"Storing the refreshed response for {url}.")
            self._storage.store(request, response)
        response.metadata.update(ResponseMetadata(revalidator_stored=stored))  # type: ignore[attr-defined]

        logger.debug(f"Considering the stored response for {url} as valid after revalidation.")
        return True
