"""
Validated, immutable site configuration.

QuireSettings (settings.py) deals with finding and reading configuration
files; this module turns the resulting plain dictionary into typed values.
"""

import posixpath
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigurationError

DEFAULT_FEED_LIMIT = 20
DEFAULT_READING_SPEED = 200
DEFAULT_HIGHLIGHT_THEME = 'one-dark'


@dataclass(frozen=True)
class SiteMetadata:
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    author: Optional[str] = None
    language: str = 'en-us'
    twitter_handle: Optional[str] = None
    default_image: Optional[str] = None
    title_template: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BuildConfig:
    minify: bool = True
    highlighting: bool = True
    highlight_theme: str = DEFAULT_HIGHLIGHT_THEME
    reading_speed: int = DEFAULT_READING_SPEED
    workers: Optional[int] = None


@dataclass(frozen=True)
class FeedSpec:
    name: str
    source: str
    output_rss: Optional[str] = None
    output_atom: Optional[str] = None
    limit: int = DEFAULT_FEED_LIMIT
    title: Optional[str] = None
    description: Optional[str] = None

    @property
    def outputs(self) -> Tuple[str, ...]:
        return tuple(name for name in (self.output_rss, self.output_atom) if name)


@dataclass(frozen=True)
class SiteConfig:
    site: SiteMetadata = field(default_factory=SiteMetadata)
    build: BuildConfig = field(default_factory=BuildConfig)
    feeds: Tuple[FeedSpec, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'SiteConfig':
        """Validate a raw configuration mapping."""
        data = data or {}
        if not isinstance(data, Mapping):
            raise ConfigurationError("configuration must be a mapping")

        site = _section(data, 'site')
        build = _section(data, 'build')
        feeds = data.get('feeds') or []
        if not isinstance(feeds, list):
            raise ConfigurationError("'feeds' must be a list of tables")

        return cls(
            site=_site_metadata(site),
            build=_build_config(build),
            feeds=tuple(_feed_spec(entry, index) for index, entry in enumerate(feeds)),
        )

    def require_site_url_for_feeds(self) -> None:
        """Fail early when feeds are configured but cannot be built."""
        if self.feeds and not self.site.url:
            names = ', '.join(feed.name for feed in self.feeds)
            raise ConfigurationError(
                f"site.url is required to generate feeds ({names}); "
                "set it in the config file or pass --site-url"
            )
        for feed in self.feeds:
            if not (feed.title or self.site.title):
                raise ConfigurationError(
                    f"feed '{feed.name}' has no title and site.title is not set"
                )


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"'{name}' must be a table")
    return section


def _optional_str(section: Mapping[str, Any], key: str, where: str) -> Optional[str]:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"'{where}.{key}' must be a string")
    return value


def _site_metadata(section: Mapping[str, Any]) -> SiteMetadata:
    url = _optional_str(section, 'url', 'site')
    if url is not None:
        url = url.rstrip('/') or None
    return SiteMetadata(
        title=_optional_str(section, 'title', 'site'),
        description=_optional_str(section, 'description', 'site'),
        url=url,
        author=_optional_str(section, 'author', 'site'),
        language=_optional_str(section, 'language', 'site') or 'en-us',
        twitter_handle=_optional_str(section, 'twitter_handle', 'site'),
        default_image=_optional_str(section, 'default_image', 'site'),
        title_template=_optional_str(section, 'title_template', 'site'),
    )


def _positive_int(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"'{where}' must be a positive integer")
    return value


def _build_config(section: Mapping[str, Any]) -> BuildConfig:
    highlighting = section.get('syntax_highlighting') or {}
    if not isinstance(highlighting, Mapping):
        raise ConfigurationError("'build.syntax_highlighting' must be a table")

    minify = section.get('minify', True)
    enabled = highlighting.get('enabled', True)
    if not isinstance(minify, bool):
        raise ConfigurationError("'build.minify' must be true or false")
    if not isinstance(enabled, bool):
        raise ConfigurationError("'build.syntax_highlighting.enabled' must be true or false")

    workers = section.get('workers')
    if workers is not None:
        workers = _positive_int(workers, 'build.workers')

    return BuildConfig(
        minify=minify,
        highlighting=enabled,
        highlight_theme=(_optional_str(highlighting, 'theme', 'build.syntax_highlighting')
                         or DEFAULT_HIGHLIGHT_THEME),
        reading_speed=_positive_int(section.get('reading_speed', DEFAULT_READING_SPEED),
                                    'build.reading_speed'),
        workers=workers,
    )


def _feed_output(value: Any, where: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"'{where}' must be a file name")
    normalized = posixpath.normpath(value.strip().lstrip('/'))
    if normalized.startswith('..') or normalized == '.':
        raise ConfigurationError(f"'{where}' must stay inside the output directory")
    return normalized


def _feed_spec(entry: Any, index: int) -> FeedSpec:
    where = f"feeds[{index}]"
    if not isinstance(entry, Mapping):
        raise ConfigurationError(f"'{where}' must be a table")

    name = entry.get('name')
    source = entry.get('source')
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"'{where}.name' is required")
    if not isinstance(source, str) or not source:
        raise ConfigurationError(f"'{where}.source' is required")

    output_rss = _feed_output(entry.get('output_rss'), f"{where}.output_rss")
    output_atom = _feed_output(entry.get('output_atom'), f"{where}.output_atom")
    if not (output_rss or output_atom):
        raise ConfigurationError(f"feed '{name}' needs output_rss and/or output_atom")

    return FeedSpec(
        name=name,
        source='/' + source.strip('/'),
        output_rss=output_rss,
        output_atom=output_atom,
        limit=_positive_int(entry.get('limit', DEFAULT_FEED_LIMIT), f"{where}.limit"),
        title=_optional_str(entry, 'title', where),
        description=_optional_str(entry, 'description', where),
    )
