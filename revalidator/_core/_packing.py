from __future__ import annotations

from typing import Any, Mapping, Optional

import msgpack
from typing_extensions import cast

from revalidator._core._headers import Headers
from revalidator._core.models import AnyIterable, Response

__all__ = ("pack", "unpack")


def filter_out_revalidator_metadata(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if not k.startswith("revalidator_")}


def pack(response: Response, content: bytes) -> bytes:
    """
    Serializes a response and its already collected body with msgpack.

    Per-delivery metadata (``revalidator_*`` keys) is dropped, it describes
    how a response was served rather than the response itself.
    """
    return cast(
        bytes,
        msgpack.packb(
            {
                "status_code": response.status_code,
                "headers": response.headers._headers,
                "content": content,
                "extra": filter_out_revalidator_metadata(response.metadata),
            }
        ),
    )


def unpack(value: Optional[bytes]) -> Optional[Response]:
    if value is None:
        return None

    data = msgpack.unpackb(value)
    return Response(
        status_code=data["status_code"],
        headers=Headers(data["headers"]),
        stream=AnyIterable(data["content"]),
        metadata=data["extra"],
    )
