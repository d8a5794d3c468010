"""Request-scoped cache for task views."""

from __future__ import annotations

from typing import Any, Callable, Hashable, NamedTuple, TypeVar

import structlog

from task_triage.models import Page

logger = structlog.get_logger()

V = TypeVar("V")


class PageUserKey(NamedTuple):
    """Cache key of a view: root page (by identity) and optional viewer."""

    page: Page
    user: str | None


class RequestCache:
    """Key/value cache owned by a single request.

    Never share an instance between requests: entries are not invalidated
    and are only correct while the page tree is unchanged.
    """

    def __init__(self) -> None:
        self._attributes: dict[Hashable, Any] = {}

    def get_or_create(self, key: Hashable, factory: Callable[[], V]) -> V:
        """Return the value for ``key``, creating it with ``factory`` if absent."""
        try:
            return self._attributes[key]
        except KeyError:
            value = factory()
            self._attributes[key] = value
            return value

    def page_user_cache(self, name: str) -> dict[PageUserKey, Any]:
        """Return the named (page, user) keyspace, creating it on first use."""
        return self.get_or_create(name, dict)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._attributes

    def __len__(self) -> int:
        return len(self._attributes)


def cached_view(cache: RequestCache, name: str, page: Page, user: str | None, build: Callable[[], V]) -> V:
    """Return the cached view ``name`` for (page, user), building it at most once."""
    views = cache.page_user_cache(name)
    key = PageUserKey(page, user)
    if key in views:
        logger.debug("view_cache_hit", view=name, page=str(page.page_ref), user=user)
        return views[key]
    result = build()
    views[key] = result
    return result
