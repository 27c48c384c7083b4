"""XML sitemap generation."""

import logging
from typing import Optional
from xml.sax.saxutils import escape

from .config import SiteMetadata
from .diagnostics import Diagnostics
from .feeds import page_date
from .registry import PageRegistry

logger = logging.getLogger('Quire.sitemap')


def format_xml_sitemap_entry(url: str, lastmod=None) -> str:
    """Format a single sitemap entry."""
    entry = f"<url>\n<loc>{escape(url)}</loc>\n"
    if lastmod is not None:
        entry += f"<lastmod>{lastmod.strftime('%Y-%m-%d')}</lastmod>\n"
    return entry + "</url>\n"


def sitemap_url(site_url: str, page_url: str) -> str:
    """Absolute URL of a page as listed in the sitemap, always with a trailing slash."""
    path = page_url if page_url.endswith('/') else page_url + '/'
    return f"{site_url.rstrip('/')}{path}"


def generate_sitemap(registry: PageRegistry, site: SiteMetadata,
                     diagnostics: Optional[Diagnostics] = None) -> Optional[str]:
    """Generate sitemap.xml, or None when the site has no URL."""
    if not site.url:
        logger.info("Skipping XML sitemap (no site.url)")
        return None

    sitemap_content = '''<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
'''
    for page in registry.pages:
        sitemap_content += format_xml_sitemap_entry(
            sitemap_url(site.url, page.url), page_date(page, diagnostics)
        )
    sitemap_content += '</urlset>\n'

    logger.info("Generating XML sitemap")
    return sitemap_content
