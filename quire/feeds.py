"""
RSS 2.0 and Atom 1.0 feed generation.

Feeds never use the current time: the channel date is the newest item's date,
or the Unix epoch when no item is dated, so repeated builds are identical.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from email.utils import format_datetime
from typing import Dict, List, Optional
from xml.sax.saxutils import escape, quoteattr

from .config import FeedSpec, SiteConfig, SiteMetadata
from .dates import EPOCH, find_date, parse_date
from .diagnostics import Diagnostics
from .errors import ConfigurationError
from .registry import PageRegistry

logger = logging.getLogger('Quire.feeds')

SUMMARY_FIELDS = ('description', 'summary', 'excerpt')


@dataclass(frozen=True)
class FeedItem:
    title: str
    url: str
    date: Optional[datetime]
    description: Optional[str]
    author: Optional[str]


def page_date(page, diagnostics: Optional[Diagnostics] = None) -> Optional[datetime]:
    """Date of a page from its first present date field, warning if unparseable."""
    field, raw = find_date(page.frontmatter)
    if field is None:
        return None
    parsed = parse_date(raw)
    if parsed is None and diagnostics is not None:
        diagnostics.warn(f"can't parse '{field}' value {str(raw)!r} as a date", page.source_path)
    return parsed


def collect_items(registry: PageRegistry, feed: FeedSpec, site: SiteMetadata,
                  diagnostics: Optional[Diagnostics] = None) -> List[FeedItem]:
    """The newest ``feed.limit`` pages under ``feed.source``; undated pages last."""
    if not site.url:
        raise ConfigurationError(f"site.url is required to generate feed '{feed.name}'")

    dated, undated = [], []
    for page in registry.within(feed.source):
        when = page_date(page, diagnostics)
        (dated if when is not None else undated).append((page, when))
    dated.sort(key=lambda pair: pair[1], reverse=True)

    items = []
    for page, when in (dated + undated)[:feed.limit]:
        summary = next((page.get(name) for name in SUMMARY_FIELDS if page.get(name)), None)
        author = page.get('author') or site.author
        items.append(FeedItem(
            title=str(page.get('title') or 'Untitled'),
            url=f"{site.url.rstrip('/')}{page.url}",
            date=when,
            description=str(summary) if summary is not None else None,
            author=str(author) if author else None,
        ))
    return items


def _feed_date(items: List[FeedItem]) -> datetime:
    dates = [item.date for item in items if item.date is not None]
    return max(dates) if dates else EPOCH


def _feed_title(feed: FeedSpec, site: SiteMetadata) -> str:
    title = feed.title or site.title
    if not title:
        raise ConfigurationError(f"feed '{feed.name}' has no title and site.title is not set")
    return title


def generate_rss(items: List[FeedItem], feed: FeedSpec, site: SiteMetadata) -> str:
    """Generate an RSS 2.0 document."""
    title = _feed_title(feed, site)
    description = feed.description or site.description or f"Latest from {title}"
    site_url = site.url.rstrip('/')
    self_url = f"{site_url}/{feed.output_rss}"

    rss_content = f'''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom" xmlns:dc="http://purl.org/dc/elements/1.1/">
<channel>
<title>{escape(title)}</title>
<link>{escape(site_url)}/</link>
<description>{escape(description)}</description>
<language>{escape(site.language)}</language>
<lastBuildDate>{format_datetime(_feed_date(items), usegmt=True)}</lastBuildDate>
<atom:link href={quoteattr(self_url)} rel="self" type="application/rss+xml"/>
'''

    for item in items:
        rss_content += f'''<item>
<title>{escape(item.title)}</title>
<link>{escape(item.url)}</link>
<guid isPermaLink="true">{escape(item.url)}</guid>
'''
        if item.date is not None:
            rss_content += f"<pubDate>{format_datetime(item.date, usegmt=True)}</pubDate>\n"
        if item.description:
            rss_content += f"<description>{escape(item.description)}</description>\n"
        if item.author:
            rss_content += f"<dc:creator>{escape(item.author)}</dc:creator>\n"
        rss_content += "</item>\n"

    rss_content += '''</channel>
</rss>
'''
    return rss_content


def generate_atom(items: List[FeedItem], feed: FeedSpec, site: SiteMetadata) -> str:
    """Generate an Atom 1.0 document."""
    title = _feed_title(feed, site)
    subtitle = feed.description or site.description
    site_url = site.url.rstrip('/')
    self_url = f"{site_url}/{feed.output_atom}"
    updated = _feed_date(items)

    atom_content = f'''<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom" xml:lang={quoteattr(site.language)}>
<title>{escape(title)}</title>
'''
    if subtitle:
        atom_content += f"<subtitle>{escape(subtitle)}</subtitle>\n"
    atom_content += f'''<link href={quoteattr(site_url + "/")}/>
<link rel="self" href={quoteattr(self_url)}/>
<id>{escape(site_url)}/</id>
<updated>{updated.isoformat()}</updated>
'''
    if site.author:
        atom_content += f"<author><name>{escape(site.author)}</name></author>\n"

    for item in items:
        entry_updated = item.date or updated
        atom_content += f'''<entry>
<title>{escape(item.title)}</title>
<link href={quoteattr(item.url)}/>
<id>{escape(item.url)}</id>
<updated>{entry_updated.isoformat()}</updated>
'''
        if item.description:
            atom_content += f"<summary>{escape(item.description)}</summary>\n"
        if item.author:
            atom_content += f"<author><name>{escape(item.author)}</name></author>\n"
        atom_content += "</entry>\n"

    atom_content += "</feed>\n"
    return atom_content


def generate_feeds(registry: PageRegistry, config: SiteConfig,
                   diagnostics: Optional[Diagnostics] = None) -> Dict[str, str]:
    """Every configured feed document, keyed by output file name."""
    documents: Dict[str, str] = {}
    for feed in config.feeds:
        for output in feed.outputs:
            if output in documents:
                raise ConfigurationError(f"feed '{feed.name}' writes '{output}', which another feed already writes")
        items = collect_items(registry, feed, config.site, diagnostics)
        if feed.output_rss:
            documents[feed.output_rss] = generate_rss(items, feed, config.site)
        if feed.output_atom:
            documents[feed.output_atom] = generate_atom(items, feed, config.site)
        logger.info(f"Generating feed '{feed.name}' with {len(items)} item(s)")
    return documents
