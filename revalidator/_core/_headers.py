from __future__ import annotations

import string
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Union,
)

__all__ = (
    "CacheControl",
    "Headers",
    "parse_cache_control",
)

# RFC 9110 Section 5.6.2
TCHAR = frozenset("!#$%&'*+-.^_`|~" + string.digits + string.ascii_letters)

# Cap for delta-seconds values, RFC 9111 Section 1.2.2
MAX_DELTA_SECONDS = 2147483648


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive, multi-valued header mapping.

    Item assignment replaces every value stored under the name; use `add`
    to append another field line instead.
    """

    def __init__(self, headers: Optional[Mapping[str, Union[str, List[str]]]] = None) -> None:
        self._headers: Dict[str, List[str]] = {}
        for key, value in (headers or {}).items():
            self._headers[key.lower()] = [value] if isinstance(value, str) else value[:]

    def get_list(self, key: str) -> Optional[List[str]]:
        return self._headers.get(key.lower(), None)

    def add(self, key: str, value: str) -> None:
        self._headers.setdefault(key.lower(), []).append(value)

    def copy(self) -> "Headers":
        return Headers(self._headers)

    def __getitem__(self, key: str) -> str:
        return ", ".join(self._headers[key.lower()])

    def __setitem__(self, key: str, value: str) -> None:
        self._headers[key.lower()] = [value]

    def __delitem__(self, key: str) -> None:
        del self._headers[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return repr(self._headers)

    def __eq__(self, other_headers: Any) -> bool:
        return isinstance(other_headers, Headers) and self._headers == other_headers._headers


class CacheControl:
    """
    Directive set of a single `Cache-Control` header.

    Directive names are stored lowercased. A directive without an argument
    maps to `None`; `has_directive` is the only question the revalidation
    logic asks, the typed accessors serve the cacheability policy.

    >>> cc = parse_cache_control('no-cache, max-age=0, private="Set-Cookie"')
    >>> cc.has_directive("no-cache")
    True
    >>> cc.max_age
    0
    >>> cc.get("private")
    'Set-Cookie'
    """

    def __init__(self, directives: Optional[Dict[str, Optional[str]]] = None) -> None:
        self.directives: Dict[str, Optional[str]] = directives or {}

    def has_directive(self, name: str) -> bool:
        return name.lower() in self.directives

    def get(self, name: str) -> Optional[str]:
        return self.directives.get(name.lower())

    def get_delta_seconds(self, name: str) -> Optional[int]:
        value = self.get(name)
        if value is None:
            return None
        try:
            seconds = int(value)
        except ValueError:
            return None
        if seconds < 0:
            return None
        return min(seconds, MAX_DELTA_SECONDS)

    @property
    def no_cache(self) -> bool:
        return self.has_directive("no-cache")

    @property
    def no_store(self) -> bool:
        return self.has_directive("no-store")

    @property
    def must_revalidate(self) -> bool:
        return self.has_directive("must-revalidate")

    @property
    def public(self) -> bool:
        return self.has_directive("public")

    @property
    def private(self) -> bool:
        return self.has_directive("private")

    @property
    def max_age(self) -> Optional[int]:
        return self.get_delta_seconds("max-age")

    @property
    def s_maxage(self) -> Optional[int]:
        return self.get_delta_seconds("s-maxage")

    def __bool__(self) -> bool:
        return bool(self.directives)

    def __repr__(self) -> str:
        fields = ", ".join(name if value is None else f"{name}={value}" for name, value in self.directives.items())
        return f"<{type(self).__name__} {fields}>"


def _unquote(value: str, start: int) -> tuple[str, int]:
    """
    Read a quoted-string starting at `value[start]` (the opening quote).

    Returns the unescaped content and the index just past the closing quote.
    An unterminated string swallows the rest of the header.
    """
    buf: List[str] = []
    i = start + 1
    while i < len(value):
        char = value[i]
        if char == '"':
            return "".join(buf), i + 1
        if char == "\\" and i + 1 < len(value):
            buf.append(value[i + 1])
            i += 2
            continue
        buf.append(char)
        i += 1
    return "".join(buf), i


def parse_cache_control(value: Union[str, List[str], None]) -> CacheControl:
    """
    Parse `Cache-Control` field values into a `CacheControl`.

    Parsing is lenient: malformed members are skipped rather than rejected,
    and when a directive repeats the first occurrence wins.
    """
    if value is None:
        return CacheControl()
    if isinstance(value, list):
        value = ", ".join(value)

    directives: Dict[str, Optional[str]] = {}
    i = 0
    length = len(value)

    while i < length:
        while i < length and value[i] in " \t,":
            i += 1
        start = i
        while i < length and value[i] in TCHAR:
            i += 1
        name = value[start:i].lower()

        argument: Optional[str] = None
        while i < length and value[i] in " \t":
            i += 1
        if i < length and value[i] == "=":
            i += 1
            while i < length and value[i] in " \t":
                i += 1
            if i < length and value[i] == '"':
                argument, i = _unquote(value, i)
            else:
                arg_start = i
                while i < length and value[i] in TCHAR:
                    i += 1
                argument = value[arg_start:i]

        # skip whatever is left of a malformed member
        while i < length and value[i] != ",":
            i += 1

        if name and name not in directives:
            directives[name] = argument

    return CacheControl(directives)
