from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterator,
    Iterator,
    Mapping,
    Optional,
    TypedDict,
    cast,
)

from revalidator._core._headers import Headers
from revalidator._utils import make_async_iterator, make_sync_iterator


class AnyIterable:
    """A body stream that can be consumed either synchronously or asynchronously."""

    def __init__(self, content: bytes | None = None) -> None:
        self.consumed = False
        self.content = content

    def __next__(self) -> bytes:
        if self.content is not None and not self.consumed:
            self.consumed = True
            return self.content
        raise StopIteration()

    def __iter__(self) -> Iterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        if self.content is not None and not self.consumed:
            self.consumed = True
            return self.content
        raise StopAsyncIteration()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    def __eq__(self, value: Any) -> bool:
        return isinstance(value, AnyIterable)


class RequestMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "revalidator_" to avoid collisions with user data
    revalidator_bypass_cache: bool
    """
    When True, caching layers hand the request straight to the network.
    Conditional requests are always created with this flag set.
    """


class ResponseMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "revalidator_" to avoid collisions with user data
    revalidator_from_cache: bool
    """Indicates whether the response was served from cache."""

    revalidator_revalidated: bool
    """Indicates whether the response was revalidated with the origin server."""

    revalidator_stored: bool
    """Indicates whether the response was stored in cache."""


class _Message:
    stream: Iterator[bytes] | AsyncIterator[bytes]

    def read(self) -> bytes:
        """
        Synchronously reads the entire body without consuming the stream.
        """
        if hasattr(self, "collected_body"):
            return cast(bytes, getattr(self, "collected_body"))

        if not isinstance(self.stream, Iterator):
            raise TypeError("Stream is not an Iterator")

        collected = b"".join([chunk for chunk in self.stream])
        setattr(self, "collected_body", collected)
        self.stream = make_sync_iterator([collected])
        return collected

    async def aread(self) -> bytes:
        """
        Asynchronously reads the entire body without consuming the stream.
        """
        if hasattr(self, "collected_body"):
            return cast(bytes, getattr(self, "collected_body"))

        if not isinstance(self.stream, AsyncIterator):
            raise TypeError("Stream is not an AsyncIterator")

        collected = b"".join([chunk async for chunk in self.stream])
        setattr(self, "collected_body", collected)
        self.stream = make_async_iterator([collected])
        return collected


@dataclass
class Request(_Message):
    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    stream: Iterator[bytes] | AsyncIterator[bytes] = field(default_factory=AnyIterable)
    metadata: RequestMetadata | Mapping[str, Any] = field(default_factory=dict)
    response: Optional["Response"] = field(default=None, repr=False, compare=False)
    """The effective response, attached when revalidation produced a replacement."""


@dataclass
class Response(_Message):
    status_code: int
    headers: Headers = field(default_factory=Headers)
    stream: Iterator[bytes] | AsyncIterator[bytes] = field(default_factory=AnyIterable)
    metadata: ResponseMetadata | Mapping[str, Any] = field(default_factory=dict)

    @property
    def date(self) -> Optional[str]:
        return self.headers.get("date")

    @property
    def last_modified(self) -> Optional[str]:
        return self.headers.get("last-modified")

    @property
    def etag(self) -> Optional[str]:
        return self.headers.get("etag")
