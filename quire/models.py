"""
Core data types shared by the pipeline stages.

Everything here is immutable once constructed: discovery produces
SourceEntry values, the frontmatter parser produces PageTemplate values, and
the expander turns those into Page values that the registry then owns.
"""

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union


class SourceKind(enum.Enum):
    CONTENT = 'content'
    STRUCTURAL = 'structural'
    ASSET = 'asset'
    DIRECTORY = 'directory'


@dataclass(frozen=True)
class SourceEntry:
    """A file or directory found while walking the site tree."""
    path: str
    rel_path: str
    kind: SourceKind


@dataclass(frozen=True)
class Expression:
    """A frontmatter value that still has to be evaluated.

    ``needs_registry`` is set when the text queries the page graph; such
    values can only be resolved once every page is known.
    """
    text: str
    needs_registry: bool = False

    def __str__(self):
        return self.text


@dataclass(frozen=True)
class Ordinary:
    pass


@dataclass(frozen=True)
class Expanded:
    param: str
    value: Any
    index: int = 0


@dataclass(frozen=True)
class NotFound:
    pass


PageKind = Union[Ordinary, Expanded, NotFound]

NOT_FOUND_URL = '/404'
NOT_FOUND_FILENAME = '404.html'


@dataclass(frozen=True)
class PageTemplate:
    """A parsed content file, before dynamic expansion."""
    source: SourceEntry
    url_stem: str
    frontmatter: Mapping[str, Any]
    body: str
    body_line: int = 1
    param: Optional[str] = None
    is_not_found: bool = False

    @property
    def is_dynamic(self) -> bool:
        return self.param is not None

    @property
    def rel_path(self) -> str:
        return self.source.rel_path


def freeze_mapping(values: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class Page:
    """A single output unit with a site-unique URL."""
    url: str
    frontmatter: Mapping[str, Any]
    kind: PageKind
    template: PageTemplate = field(repr=False)

    @property
    def source_path(self) -> str:
        return self.template.rel_path

    @property
    def order_key(self) -> Tuple[str, int]:
        index = self.kind.index if isinstance(self.kind, Expanded) else 0
        return (self.template.rel_path, index)

    @property
    def is_not_found(self) -> bool:
        return isinstance(self.kind, NotFound)

    def get(self, key: str, default: Any = None) -> Any:
        return self.frontmatter.get(key, default)


@dataclass(frozen=True)
class RenderedPage:
    """A page with every field resolved and its final HTML document."""
    page: Page
    html: str
