from __future__ import annotations

import calendar
import hashlib
import typing as tp
from email.utils import parsedate_tz
from typing import AsyncIterator, Iterable, Iterator
from urllib.parse import urlsplit, urlunsplit

T = tp.TypeVar("T")

if tp.TYPE_CHECKING:  # pragma: no cover
    from ._core.models import Request


def parse_date(date: str) -> tp.Optional[int]:
    expires = parsedate_tz(date)
    if expires is None:
        return None
    timestamp = calendar.timegm(expires[:6])
    return timestamp


def generate_key(request: "Request") -> str:
    """
    Compute the storage key of a request.

    Two requests share a key when they share the method and the URL, so a
    conditional request built for revalidation maps onto the same entry as
    the request it was derived from.
    """
    encoded_url = str(request.url).encode("ascii", errors="replace")
    key_parts = [request.method.encode("ascii"), encoded_url]
    return hashlib.blake2b(b"|".join(key_parts), digest_size=16).hexdigest()


def get_safe_url(url: str) -> str:
    """Strip userinfo from a URL so it can be written to the logs."""
    parts = urlsplit(url)
    netloc = parts.hostname or ""
    if parts.port is not None:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


async def make_async_iterator(
    iterable: Iterable[bytes],
) -> AsyncIterator[bytes]:
    for item in iterable:
        yield item


def make_sync_iterator(iterable: Iterable[bytes]) -> Iterator[bytes]:
    for item in iterable:
        yield item


def filter_mapping(mapping: tp.Mapping[str, T], keys_to_exclude: tp.Iterable[str]) -> tp.Dict[str, T]:
    """
        Filter out specified keys from a string-keyed mapping using case-insensitive comparison.

        Args:
            mapping: The input mapping with string keys to filter.
            keys_to_exclude: An iterable of string keys to exclude (case-insensitive).

        Returns:
            A new dictionary with the specified keys excluded.

        Example:
    ```python
            original = {'a': 1, 'B': 2, 'c': 3}
            filtered = filter_mapping(original, ['b'])
            # filtered will be {'a': 1, 'c': 3}
    ```
    """
    exclude_set = {k.lower() for k in keys_to_exclude}
    return {k: v for k, v in mapping.items() if k.lower() not in exclude_set}

