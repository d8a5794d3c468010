"""In-memory content tree and its traversal primitive."""

from __future__ import annotations

from collections import deque
from typing import Callable, Iterable, Optional, TypeVar

from task_triage.errors import ResolutionError
from task_triage.models import Page, PageRef, Task

T = TypeVar("T")

# Returns a non-None value to stop the traversal early
PageHandler = Callable[[Page], Optional[T]]
TraversalEdges = Callable[[Page], Iterable[PageRef]]
EdgeFilter = Callable[[PageRef], bool]


class ContentTree:
    """A rooted tree of pages across one or more books."""

    def __init__(self, pages: Iterable[Page], root: PageRef) -> None:
        self._pages: dict[PageRef, Page] = {}
        for page in pages:
            self._pages[page.page_ref] = page
        self._books = {ref.book for ref in self._pages if ref.book is not None}
        self._root_ref = root
        if root not in self._pages:
            raise ResolutionError(f"Root page not found: {root}")

    @property
    def root(self) -> Page:
        """The content root of the root book."""
        return self._pages[self._root_ref]

    @property
    def books(self) -> frozenset[str]:
        return frozenset(self._books)

    def __len__(self) -> int:
        return len(self._pages)

    def has_book(self, book: str | None) -> bool:
        return book is not None and book in self._books

    def get_page(self, page_ref: PageRef) -> Page:
        """Resolve a page reference.

        Raises:
            ResolutionError: If the page is not in this tree.
        """
        try:
            return self._pages[page_ref]
        except KeyError as e:
            raise ResolutionError(f"Page not found: {page_ref}") from e

    def get_task(self, page_ref: PageRef, task_id: str) -> Task:
        """Resolve a task by page and id.

        Raises:
            ResolutionError: If either the page or the task cannot be found.
        """
        page = self.get_page(page_ref)
        for task in page.iter_tasks():
            if task.id == task_id:
                return task
        raise ResolutionError(f"Task not found: page={page_ref}, id={task_id}")

    def child_edges(self, page: Page) -> Iterable[PageRef]:
        return page.child_pages

    def in_loaded_book(self, page_ref: PageRef) -> bool:
        """Edge filter that prunes children in books that are not loaded."""
        return self.has_book(page_ref.book)

    def traverse_depth_first(
        self,
        root: Page,
        handler: PageHandler,
        edges: TraversalEdges | None = None,
        edge_filter: EdgeFilter | None = None,
        after: Callable[[Page], Optional[T]] | None = None,
    ) -> Optional[T]:
        """Visit pages depth-first, pre-order, children in declared order.

        Each page is visited at most once. If ``handler`` (or ``after``,
        called once a page's children are finished) returns a non-None value
        the traversal stops and that value is returned.
        """
        edges = edges or self.child_edges
        edge_filter = edge_filter or self.in_loaded_book
        visited = {root.page_ref}
        result = handler(root)
        if result is not None:
            return result
        # (page, remaining children); iterative so depth is not bounded by recursion
        stack = [(root, iter(edges(root)))]
        while stack:
            page, children = stack[-1]
            for child_ref in children:
                if child_ref in visited or not edge_filter(child_ref):
                    continue
                child = self.get_page(child_ref)
                visited.add(child_ref)
                result = handler(child)
                if result is not None:
                    return result
                stack.append((child, iter(edges(child))))
                break
            else:
                stack.pop()
                if after is not None:
                    result = after(page)
                    if result is not None:
                        return result
        return None

    def traverse_any_order(
        self,
        root: Page,
        handler: PageHandler,
        edges: TraversalEdges | None = None,
        edge_filter: EdgeFilter | None = None,
    ) -> Optional[T]:
        """Visit every reachable page once, in no particular order.

        Stops at, and returns, the first non-None handler result.
        """
        edges = edges or self.child_edges
        edge_filter = edge_filter or self.in_loaded_book
        visited = {root.page_ref}
        queue = deque([root])
        while queue:
            page = queue.popleft()
            result = handler(page)
            if result is not None:
                return result
            for child_ref in edges(page):
                if child_ref in visited or not edge_filter(child_ref):
                    continue
                visited.add(child_ref)
                queue.append(self.get_page(child_ref))
        return None

