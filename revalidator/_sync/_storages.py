from __future__ import annotations

import abc
import logging
import time
import typing as tp
from pathlib import Path

try:
    import sqlite3
except ImportError:  # pragma: no cover
    sqlite3 = None  # type: ignore

from .._core._packing import pack, unpack
from .._core.models import Request, Response
from .._lfu_cache import LFUCache
from .._synchronization import Lock
from .._utils import generate_key, get_safe_url

logger = logging.getLogger("revalidator.storages")

__all__ = (
    "BaseStorage",
    "InMemoryStorage",
    "SQLiteStorage",
)


class BaseStorage(abc.ABC):
    """
    Response storage keyed by request identity.

    Implementations must tolerate concurrent `store` and `delete` calls.
    """

    @abc.abstractmethod
    def store(self, request: Request, response: Response) -> None:
        raise NotImplementedError()

    @abc.abstractmethod
    def delete(self, request: Request) -> None:
        raise NotImplementedError()

    @abc.abstractmethod
    def retrieve(self, request: Request) -> tp.Optional[Response]:
        raise NotImplementedError()

    def close(self) -> None:
        pass


class InMemoryStorage(BaseStorage):
    """
    A simple in-memory storage.

    Responses are kept packed, so later changes to a response object never
    leak into the stored copy.

    :param capacity: The maximum number of responses that can be cached, defaults to 128
    :type capacity: int, optional
    """

    def __init__(self, capacity: int = 128) -> None:
        self._cache: LFUCache[str, bytes] = LFUCache(capacity=capacity)
        self._lock = Lock()

    def store(self, request: Request, response: Response) -> None:
        """
        Stores the response in the cache, replacing any previous one for the same request.

        :param request: An HTTP request
        :type request: Request
        :param response: An HTTP response
        :type response: Response
        """
        content = response.read()
        packed = pack(response, content)

        with self._lock:
            self._cache.put(generate_key(request), packed)
        logger.debug(f"Stored the response for {get_safe_url(request.url)} in memory.")

    def delete(self, request: Request) -> None:
        """
        Removes the response stored for the request, if there is one.

        :param request: An HTTP request
        :type request: Request
        """
        with self._lock:
            self._cache.remove_key(generate_key(request))
        logger.debug(f"Removed the response for {get_safe_url(request.url)} from memory.")

    def retrieve(self, request: Request) -> tp.Optional[Response]:
        """
        Retrieves the response stored for the request.

        :param request: An HTTP request
        :type request: Request
        :return: A fresh copy of the stored response, or None
        :rtype: tp.Optional[Response]
        """
        with self._lock:
            try:
                packed = self._cache.get(generate_key(request))
            except KeyError:
                return None
        return unpack(packed)


class SQLiteStorage(BaseStorage):
    """
    A simple sqlite storage.

    :param connection: A connection for sqlite, defaults to None
    :type connection: tp.Optional[sqlite3.Connection], optional
    :param database_path: Where the database is created when no connection is passed,
        defaults to "revalidator_cache.db"
    :type database_path: tp.Union[str, Path], optional
    """

    def __init__(
        self,
        connection: tp.Optional["sqlite3.Connection"] = None,
        database_path: tp.Union[str, Path] = "revalidator_cache.db",
    ) -> None:
        if sqlite3 is None:  # pragma: no cover
            raise RuntimeError(
                f"The `{type(self).__name__}` was used, but the required packages were not found. "
                "Check that you have `Revalidator` installed with the `sqlite` extension as shown.\n"
                "```pip install revalidator[sqlite]```"
            )

        self._connection = connection
        self._database_path = Path(database_path)
        self._setup_completed = False
        self._lock = Lock()

    def _setup(self) -> "sqlite3.Connection":
        if self._connection is None:
            self._connection = sqlite3.connect(str(self._database_path), check_same_thread=False)
        if not self._setup_completed:
            self._connection.execute(
                "CREATE TABLE IF NOT EXISTS responses "
                "(cache_key TEXT PRIMARY KEY, data BLOB NOT NULL, created_at REAL NOT NULL)"
            )
            self._connection.commit()
            self._setup_completed = True
        return self._connection

    def store(self, request: Request, response: Response) -> None:
        """
        Stores the response in the cache, replacing any previous one for the same request.

        :param request: An HTTP request
        :type request: Request
        :param response: An HTTP response
        :type response: Response
        """
        content = response.read()
        packed = pack(response, content)

        with self._lock:
            connection = self._setup()
            connection.execute(
                "INSERT OR REPLACE INTO responses (cache_key, data, created_at) VALUES (?, ?, ?)",
                [generate_key(request), packed, time.time()],
            )
            connection.commit()
        logger.debug(f"Stored the response for {get_safe_url(request.url)} in sqlite.")

    def delete(self, request: Request) -> None:
        """
        Removes the response stored for the request, if there is one.

        :param request: An HTTP request
        :type request: Request
        """
        with self._lock:
            connection = self._setup()
            connection.execute("DELETE FROM responses WHERE cache_key = ?", [generate_key(request)])
            connection.commit()
        logger.debug(f"Removed the response for {get_safe_url(request.url)} from sqlite.")

    def retrieve(self, request: Request) -> tp.Optional[Response]:
        """
        Retrieves the response stored for the request.

        :param request: An HTTP request
        :type request: Request
        :return: The stored response, or None
        :rtype: tp.Optional[Response]
        """
        with self._lock:
            connection = self._setup()
            cursor = connection.execute("SELECT data FROM responses WHERE cache_key = ?", [generate_key(request)])
            row = cursor.fetchone()
        if row is None:
            return None
        return unpack(row[0])

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
