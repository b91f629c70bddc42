from __future__ import annotations

import abc
import logging
import time
import typing as tp
from pathlib import Path

try:
    import anysqlite
except ImportError:  # pragma: no cover
    anysqlite = None  # type: ignore

from .._core._packing import pack, unpack
from .._core.models import Request, Response
from .._lfu_cache import LFUCache
from .._synchronization import AsyncLock
from .._utils import generate_key, get_safe_url

logger = logging.getLogger("revalidator.storages")

__all__ = (
    "AsyncBaseStorage",
    "AsyncInMemoryStorage",
    "AsyncSQLiteStorage",
)


class AsyncBaseStorage(abc.ABC):
    """
    Response storage keyed by request identity.

    Implementations must tolerate concurrent `store` and `delete` calls.
    """

    @abc.abstractmethod
    async def store(self, request: Request, response: Response) -> None:
        raise NotImplementedError()

    @abc.abstractmethod
    async def delete(self, request: Request) -> None:
        raise NotImplementedError()

    @abc.abstractmethod
    async def retrieve(self, request: Request) -> tp.Optional[Response]:
        raise NotImplementedError()

    async def close(self) -> None:
        pass


class AsyncInMemoryStorage(AsyncBaseStorage):
    """
    A simple in-memory storage.

    Responses are kept packed, so later changes to a response object never
    leak into the stored copy.

    :param capacity: The maximum number of responses that can be cached, defaults to 128
    :type capacity: int, optional
    """

    def __init__(self, capacity: int = 128) -> None:
        self._cache: LFUCache[str, bytes] = LFUCache(capacity=capacity)
        self._lock = AsyncLock()

    async def store(self, request: Request, response: Response) -> None:
        """
        Stores the response in the cache, replacing any previous one for the same request.

        :param request: An HTTP request
        :type request: Request
        :param response: An HTTP response
        :type response: Response
        """
        content = await response.aread()
        packed = pack(response, content)

        async with self._lock:
            self._cache.put(generate_key(request), packed)
        logger.debug(f"Stored the response for {get_safe_url(request.url)} in memory.")

    async def delete(self, request: Request) -> None:
        """
        Removes the response stored for the request, if there is one.

        :param request: An HTTP request
        :type request: Request
        """
        async with self._lock:
            self._cache.remove_key(generate_key(request))
        logger.debug(f"Removed the response for {get_safe_url(request.url)} from memory.")

    async def retrieve(self, request: Request) -> tp.Optional[Response]:
        """
        Retrieves the response stored for the request.

        :param request: An HTTP request
        :type request: Request
        :return: A fresh copy of the stored response, or None
        :rtype: tp.Optional[Response]
        """
        async with self._lock:
            try:
                packed = self._cache.get(generate_key(request))
            except KeyError:
                return None
        return unpack(packed)


class AsyncSQLiteStorage(AsyncBaseStorage):
    """
    A simple sqlite storage.

    :param connection: A connection for sqlite, defaults to None
    :type connection: tp.Optional[anysqlite.Connection], optional
    :param database_path: Where the database is created when no connection is passed,
        defaults to "revalidator_cache.db"
    :type database_path: tp.Union[str, Path], optional
    """

    def __init__(
        self,
        connection: tp.Optional["anysqlite.Connection"] = None,
        database_path: tp.Union[str, Path] = "revalidator_cache.db",
    ) -> None:
        if anysqlite is None:  # pragma: no cover
            raise RuntimeError(
                f"The `{type(self).__name__}` was used, but the required packages were not found. "
                "Check that you have `Revalidator` installed with the `sqlite` extension as shown.\n"
                "```pip install revalidator[sqlite]```"
            )

        self._connection = connection
        self._database_path = Path(database_path)
        self._setup_completed = False
        self._lock = AsyncLock()

    async def _setup(self) -> "anysqlite.Connection":
        if self._connection is None:
            self._connection = await anysqlite.connect(str(self._database_path), check_same_thread=False)
        if not self._setup_completed:
            await self._connection.execute(
                "CREATE TABLE IF NOT EXISTS responses "
                "(cache_key TEXT PRIMARY KEY, data BLOB NOT NULL, created_at REAL NOT NULL)"
            )
            await self._connection.commit()
            self._setup_completed = True
        return self._connection

    async def store(self, request: Request, response: Response) -> None:
        """
        Stores the response in the cache, replacing any previous one for the same request.

        :param request: An HTTP request
        :type request: Request
        :param response: An HTTP response
        :type response: Response
        """
        content = await response.aread()
        packed = pack(response, content)

        async with self._lock:
            connection = await self._setup()
            await connection.execute(
                "INSERT OR REPLACE INTO responses (cache_key, data, created_at) VALUES (?, ?, ?)",
                [generate_key(request), packed, time.time()],
            )
            await connection.commit()
        logger.debug(f"Stored the response for {get_safe_url(request.url)} in sqlite.")

    async def delete(self, request: Request) -> None:
        """
        Removes the response stored for the request, if there is one.

        :param request: An HTTP request
        :type request: Request
        """
        async with self._lock:
            connection = await self._setup()
            await connection.execute("DELETE FROM responses WHERE cache_key = ?", [generate_key(request)])
            await connection.commit()
        logger.debug(f"Removed the response for {get_safe_url(request.url)} from sqlite.")

    async def retrieve(self, request: Request) -> tp.Optional[Response]:
        """
        Retrieves the response stored for the request.

        :param request: An HTTP request
        :type request: Request
        :return: The stored response, or None
        :rtype: tp.Optional[Response]
        """
        async with self._lock:
            connection = await self._setup()
            cursor = await connection.execute("SELECT data FROM responses WHERE cache_key = ?", [generate_key(request)])
            row = await cursor.fetchone()
        if row is None:
            return None
        return unpack(row[0])

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
