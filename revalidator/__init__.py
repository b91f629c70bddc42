from revalidator._async._client import AsyncCacheClient as AsyncCacheClient
from revalidator._async._mock import MockAsyncTransport as MockAsyncTransport
from revalidator._async._revalidation import AsyncRevalidation as AsyncRevalidation
from revalidator._async._storages import (
    AsyncBaseStorage as AsyncBaseStorage,
    AsyncInMemoryStorage as AsyncInMemoryStorage,
    AsyncSQLiteStorage as AsyncSQLiteStorage,
)
from revalidator._async._transports import AsyncCacheTransport as AsyncCacheTransport
from revalidator._core._headers import (
    CacheControl as CacheControl,
    Headers as Headers,
    parse_cache_control as parse_cache_control,
)
from revalidator._core._spec import (
    REFRESHABLE_HEADERS as REFRESHABLE_HEADERS,
    make_conditional_request as make_conditional_request,
    refresh_validated_headers as refresh_validated_headers,
    should_revalidate as should_revalidate,
)
from revalidator._core.models import (
    Request as Request,
    RequestMetadata as RequestMetadata,
    Response as Response,
    ResponseMetadata as ResponseMetadata,
)
from revalidator._exceptions import (
    BadResponseError as BadResponseError,
    ResourceGoneError as ResourceGoneError,
    RevalidatorError as RevalidatorError,
    TransportFailure as TransportFailure,
)
from revalidator._policies import (
    BaseFilter as BaseFilter,
    CacheOptions as CacheOptions,
    CachePolicy as CachePolicy,
    FilterPolicy as FilterPolicy,
    SpecificationPolicy as SpecificationPolicy,
)
from revalidator._sync._client import CacheClient as CacheClient
from revalidator._sync._mock import MockTransport as MockTransport
from revalidator._sync._revalidation import Revalidation as Revalidation
from revalidator._sync._storages import (
    BaseStorage as BaseStorage,
    InMemoryStorage as InMemoryStorage,
    SQLiteStorage as SQLiteStorage,
)
from revalidator._sync._transports import CacheTransport as CacheTransport

__all__ = (
    # Decision and request building
    "should_revalidate",
    "make_conditional_request",
    "refresh_validated_headers",
    "REFRESHABLE_HEADERS",
    # Engines
    "AsyncRevalidation",
    "Revalidation",
    ## Models
    "Request",
    "Response",
    "RequestMetadata",
    "ResponseMetadata",
    ## Headers
    "Headers",
    "CacheControl",
    "parse_cache_control",
    ## Storages
    "AsyncBaseStorage",
    "AsyncInMemoryStorage",
    "AsyncSQLiteStorage",
    "BaseStorage",
    "InMemoryStorage",
    "SQLiteStorage",
    # Policies
    "BaseFilter",
    "CacheOptions",
    "CachePolicy",
    "SpecificationPolicy",
    "FilterPolicy",
    # Errors
    "RevalidatorError",
    "BadResponseError",
    "ResourceGoneError",
    "TransportFailure",
    # httpx
    "AsyncCacheClient",
    "AsyncCacheTransport",
    "CacheClient",
    "CacheTransport",
    "MockAsyncTransport",
    "MockTransport",
)
