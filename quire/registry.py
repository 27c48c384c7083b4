"""
The page registry: every Page of the build, keyed by URL, with the indices
template queries are answered from.

A registry is built once from the complete page list and never changes
afterwards, so it can be shared across render threads. The only lazily
built structure, the per-field sort cache, is guarded by a lock.
"""

import threading
from datetime import date
from numbers import Real
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .dates import parse_date
from .errors import CollisionError
from .models import Expression, Page

DEFAULT_ORDER_FIELD = 'order'


def canonical_url(url: str) -> str:
    """URL used for uniqueness checks: trailing slash does not make a new page."""
    return url.rstrip('/') or '/'


def normalize_prefix(prefix: Optional[str]) -> str:
    if not prefix:
        return ''
    stripped = prefix.strip('/')
    return '/' + stripped if stripped else ''


def url_segments(url: str) -> List[str]:
    return [segment for segment in url.strip('/').split('/') if segment]


def ancestor_prefixes(url: str) -> List[str]:
    """Every directory prefix strictly above ``url``.

    ``/blog/post-a`` has ancestors ``''`` and ``/blog``; the section index
    ``/blog/`` only has ``''``, so it is never listed within its own section.
    """
    segments = url_segments(url)
    return ['/'.join([''] + segments[:depth]) if depth else '' for depth in range(len(segments))]


def parent_prefix(url: str) -> str:
    segments = url_segments(url)
    return '/'.join([''] + segments[:-1]) if len(segments) > 1 else ''


def _display(value: Any) -> Any:
    if isinstance(value, Expression):
        return value.text
    if isinstance(value, list):
        return [_display(item) for item in value]
    if isinstance(value, dict):
        return {key: _display(item) for key, item in value.items()}
    return value


def page_view(page: Page) -> Dict[str, Any]:
    """The mapping templates see for a page.

    Unresolved expressions appear as their source text.
    """
    view = {key: _display(value) for key, value in page.frontmatter.items()}
    view['url'] = page.url
    view['file_path'] = page.source_path
    return view


class PageRegistry:
    """Frozen collection of every Page in a build."""

    def __init__(self, pages: Iterable[Page]):
        ordered = sorted(pages, key=lambda page: page.order_key)

        self._by_url: Dict[str, Page] = {}
        self._canonical: Dict[str, Page] = {}
        for page in ordered:
            key = canonical_url(page.url)
            existing = self._canonical.get(key)
            if existing is not None:
                raise CollisionError(page.url, existing.source_path, page.source_path)
            self._canonical[key] = page
            self._by_url[page.url] = page

        self._pages: Tuple[Page, ...] = tuple(page for page in ordered if not page.is_not_found)
        self._not_found: Optional[Page] = next((page for page in ordered if page.is_not_found), None)
        self._views: Dict[str, Dict[str, Any]] = {page.url: page_view(page) for page in ordered}

        self._within: Dict[str, List[Page]] = {}
        self._siblings: Dict[str, List[Page]] = {}
        self._tags: Dict[str, List[Page]] = {}
        for page in self._pages:
            for prefix in ancestor_prefixes(page.url):
                self._within.setdefault(prefix, []).append(page)
            self._siblings.setdefault(parent_prefix(page.url), []).append(page)
            tags = page.get('tags')
            if isinstance(tags, list):
                for tag in tags:
                    if isinstance(tag, str):
                        bucket = self._tags.setdefault(tag, [])
                        if page not in bucket:
                            bucket.append(page)

        self._sort_lock = threading.Lock()
        self._sorted: Dict[str, Tuple[Page, ...]] = {}

    def __len__(self):
        return len(self._by_url)

    def __iter__(self) -> Iterator[Page]:
        return iter(self._pages)

    def __contains__(self, url: str) -> bool:
        return canonical_url(url) in self._canonical

    def get(self, url: str) -> Optional[Page]:
        return self._canonical.get(canonical_url(url))

    @property
    def pages(self) -> Tuple[Page, ...]:
        """Every queryable page, in registry order (the 404 page excluded)."""
        return self._pages

    @property
    def all_pages(self) -> Tuple[Page, ...]:
        """Every page, including the not-found page."""
        if self._not_found is None:
            return self._pages
        return tuple(sorted(self._pages + (self._not_found,), key=lambda page: page.order_key))

    @property
    def not_found(self) -> Optional[Page]:
        return self._not_found

    def view(self, page: Page) -> Dict[str, Any]:
        return self._views[page.url]

    def within(self, prefix: Optional[str]) -> List[Page]:
        """Pages below ``prefix`` on a path-segment boundary."""
        return list(self._within.get(normalize_prefix(prefix), ()))

    def tagged(self, tag: str) -> List[Page]:
        return list(self._tags.get(tag, ()))

    def tag_names(self) -> List[str]:
        """Every tag in use, in order of first appearance."""
        return list(self._tags)

    def sort_by(self, field: str, reverse: bool = False, pages: Optional[Iterable[Page]] = None) -> List[Page]:
        """Stable sort on a frontmatter field; pages lacking it come last.

        ``reverse`` only flips the pages that have the field.
        """
        ordered = self._sorted_by(field)
        if pages is not None:
            wanted = {page.url for page in pages}
            ordered = tuple(page for page in ordered if page.url in wanted)

        present = [page for page in ordered if page.get(field) is not None]
        missing = [page for page in ordered if page.get(field) is None]
        if reverse:
            present = _reverse_stable(present, field)
        return present + missing

    def _sorted_by(self, field: str) -> Tuple[Page, ...]:
        with self._sort_lock:
            cached = self._sorted.get(field)
            if cached is None:
                present = [page for page in self._pages if page.get(field) is not None]
                missing = [page for page in self._pages if page.get(field) is None]
                present.sort(key=lambda page: sort_key(page.get(field)))
                cached = tuple(present + missing)
                self._sorted[field] = cached
            return cached

    def query(self, within: Optional[str] = None, tag: Optional[str] = None,
              sort_by: Optional[str] = None, reverse: bool = False) -> List[Dict[str, Any]]:
        """The ``pages()`` template function."""
        selected = self.within(within) if within is not None else list(self._pages)
        if tag is not None:
            tagged = {page.url for page in self.tagged(tag)}
            selected = [page for page in selected if page.url in tagged]
        if sort_by:
            selected = self.sort_by(sort_by, reverse=reverse, pages=selected)
        elif reverse:
            selected = list(reversed(selected))
        return [self.view(page) for page in selected]

    def neighbour(self, page: Page, step: int, by: str = DEFAULT_ORDER_FIELD) -> Optional[Page]:
        """The unique page whose ``by`` value is ``page``'s plus ``step``.

        Only pages in the same directory are considered, not pages in its
        subdirectories. Gaps, ties and non-numeric values give no neighbour.
        """
        value = page.get(by)
        if not _is_number(value):
            return None
        target = value + step
        scope = self._siblings.get(parent_prefix(page.url), ())
        matches = [other for other in scope
                   if other.url != page.url and _is_number(other.get(by)) and other.get(by) == target]
        if len(matches) != 1:
            return None
        return matches[0]

    def previous_view(self, page: Page, by: str = DEFAULT_ORDER_FIELD) -> Optional[Dict[str, Any]]:
        found = self.neighbour(page, -1, by)
        return self.view(found) if found else None

    def next_view(self, page: Page, by: str = DEFAULT_ORDER_FIELD) -> Optional[Dict[str, Any]]:
        found = self.neighbour(page, 1, by)
        return self.view(found) if found else None

    def with_frontmatter(self, resolved: Mapping[str, Page]) -> 'PageRegistry':
        """A new registry where pages are swapped for their resolved versions by URL."""
        pages = [resolved.get(page.url, page) for page in self.all_pages]
        return PageRegistry(pages)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def sort_key(value: Any) -> Tuple[int, Any]:
    """A key that orders any mix of frontmatter values without TypeError.

    Numbers sort before dates, dates before other strings, anything else
    last. Date values and strings that parse as dates compare as aware
    datetimes, so ``2024-01-01``, ``2024-01-02 10:00:00`` and ``"2024-01-03"``
    sort together.
    """
    if isinstance(value, Expression):
        value = value.text
    if isinstance(value, Real):
        return (0, value)
    if isinstance(value, (date, str)):
        parsed = parse_date(value)
        if parsed is not None:
            return (1, parsed)
        if isinstance(value, str):
            return (2, value)
    return (3, repr(value))


def _reverse_stable(pages: List[Page], field: str) -> List[Page]:
    """Descending order that keeps equal values in registry order."""
    groups: List[List[Page]] = []
    for page in pages:
        if groups and sort_key(groups[-1][0].get(field)) == sort_key(page.get(field)):
            groups[-1].append(page)
        else:
            groups.append([page])
    return [page for group in reversed(groups) for page in group]
