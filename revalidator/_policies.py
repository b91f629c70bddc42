from __future__ import annotations

import abc
import logging
import typing as t
from dataclasses import dataclass, field

from revalidator._core._headers import parse_cache_control
from revalidator._core.models import Response
from revalidator._utils import parse_date

logger = logging.getLogger("revalidator.policies")

__all__ = ("CacheOptions", "CachePolicy", "SpecificationPolicy", "FilterPolicy", "BaseFilter")


@dataclass
class CacheOptions:
    """
    Configuration options for the default cacheability policy.

    Attributes:
    ----------
    shared : bool
        Whether the cache is shared between users (proxy, CDN) or private
        to one user agent. A shared cache refuses responses marked
        ``private`` and honours ``s-maxage``.

        RFC 9111 Section 3.5: https://www.rfc-editor.org/rfc/rfc9111.html#section-3.5

    cacheable_status_codes : list[int]
        Status codes a response must have to be stored.
    """

    shared: bool = True
    cacheable_status_codes: list[int] = field(default_factory=lambda: [200, 203, 300, 301, 308, 410])


class CachePolicy(abc.ABC):
    """Decides whether a response may be written to the storage."""

    @abc.abstractmethod
    def is_cacheable(self, response: Response) -> bool:
        raise NotImplementedError()


class BaseFilter(abc.ABC):
    @abc.abstractmethod
    def apply(self, response: Response) -> bool:
        pass


@dataclass
class SpecificationPolicy(CachePolicy):
    """
    Caching policy that follows the storage rules of RFC 9111 Section 3.

    A response is cacheable when its status code is allowed, neither
    ``no-store`` nor (for shared caches) ``private`` forbids it, and it is
    either explicitly fresh or can be revalidated later.
    """

    cache_options: CacheOptions = field(default_factory=CacheOptions)

    def is_cacheable(self, response: Response) -> bool:
        if response.status_code not in self.cache_options.cacheable_status_codes:
            logger.debug(
                f"Considering the response as not cacheable since its status code ({response.status_code})"
                " is not in the list of cacheable status codes."
            )
            return False

        cache_control = parse_cache_control(response.headers.get_list("cache-control"))

        if cache_control.no_store:
            logger.debug("Considering the response as not cacheable since it contains the no-store directive.")
            return False

        if self.cache_options.shared and cache_control.private:
            logger.debug(
                "Considering the response as not cacheable since it contains "
                "the private directive and the cache is shared."
            )
            return False

        expires = response.headers.get("expires")
        explicitly_fresh = any(
            [
                cache_control.public,
                cache_control.max_age is not None,
                self.cache_options.shared and cache_control.s_maxage is not None,
                expires is not None and parse_date(expires) is not None,
            ]
        )
        if explicitly_fresh:
            logger.debug("Considering the response as cacheable since it has explicit freshness information.")
            return True

        if response.etag is not None or response.last_modified is not None:
            logger.debug("Considering the response as cacheable since it can be revalidated.")
            return True

        logger.debug(
            "Considering the response as not cacheable since it has "
            "neither freshness information nor validators."
        )
        return False


@dataclass
class FilterPolicy(CachePolicy):
    """
    Caching policy that stores a response only when every user-defined filter accepts it.
    """

    response_filters: t.List[BaseFilter] = field(default_factory=list)

    def is_cacheable(self, response: Response) -> bool:
        for response_filter in self.response_filters:
            if not response_filter.apply(response):
                logger.debug(f"Response filtered out by {type(response_filter).__name__}")
                return False
        return True
