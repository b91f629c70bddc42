from __future__ import annotations

import typing as tp

if tp.TYPE_CHECKING:  # pragma: no cover
    from ._core.models import Request, Response

__all__ = ("RevalidatorError", "BadResponseError", "ResourceGoneError", "TransportFailure")


class RevalidatorError(Exception): ...


class BadResponseError(RevalidatorError):
    """
    Raised by a transport when the origin answers with a status it treats as an error.

    :param request: The request that was sent
    :type request: Request
    :param response: The error response received from the origin
    :type response: Response
    """

    def __init__(self, message: str, *, request: "Request", response: "Response") -> None:
        super().__init__(message)
        self.request = request
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code


class ResourceGoneError(BadResponseError):
    """
    The origin confirmed during revalidation that the resource no longer exists.

    The stale entry has already been removed from the storage when this is raised.
    """


class TransportFailure(RevalidatorError):
    """Network level failure raised by request senders that are not backed by httpx."""
