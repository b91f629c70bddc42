import typing as tp

import httpx

from revalidator._async._storages import AsyncBaseStorage
from revalidator._async._transports import AsyncCacheTransport
from revalidator._policies import CachePolicy

__all__ = ("AsyncCacheClient",)


class AsyncCacheClient(httpx.AsyncClient):
    def __init__(
        self,
        *args: tp.Any,
        storage: tp.Optional[AsyncBaseStorage] = None,
        policy: tp.Optional[CachePolicy] = None,
        **kwargs: tp.Any,
    ):
        self._storage = storage
        self._policy = policy
        super().__init__(*args, **kwargs)

    def _init_transport(self, *args, **kwargs) -> AsyncCacheTransport:  # type: ignore
        _transport = super()._init_transport(*args, **kwargs)
        return AsyncCacheTransport(
            transport=_transport,
            storage=self._storage,
            policy=self._policy,
        )

    def _init_proxy_transport(self, *args, **kwargs) -> AsyncCacheTransport:  # type: ignore
        _transport = super()._init_proxy_transport(*args, **kwargs)  # pragma: no cover
        return AsyncCacheTransport(  # pragma: no cover
            transport=_transport,
            storage=self._storage,
            policy=self._policy,
        )
