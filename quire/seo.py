"""
Per-page SEO values and URL-derived layout helpers.
"""

import functools
import posixpath
from typing import Any, Dict, Mapping, Optional

from jinja2 import Environment, TemplateError

from .config import SiteMetadata
from .diagnostics import Diagnostics

MISSING_IMAGE_WARNING = "no social image (set 'image' in frontmatter or site.default_image)"


@functools.lru_cache(maxsize=8)
def _title_template(source: str):
    return Environment(autoescape=False).from_string(source)


def render_title(title: Any, site: SiteMetadata, diagnostics: Optional[Diagnostics] = None,
                 path: Optional[str] = None) -> str:
    """Apply ``site.title_template`` to a page title.

    Falls back to the plain title, with a warning, if the template fails.
    """
    title = '' if title is None else str(title)
    if not site.title_template:
        return title
    try:
        return _title_template(site.title_template).render(title=title, site={'title': site.title or ''})
    except TemplateError as e:
        if diagnostics is not None:
            diagnostics.warn(f"site.title_template failed ({e}); using the plain title", path)
        return title


def absolute_url(site: SiteMetadata, url: str) -> str:
    if url.startswith(('http://', 'https://')):
        return url
    return f"{(site.url or '').rstrip('/')}{url}"


def canonical_url(site: SiteMetadata, page_url: str) -> str:
    base = (site.url or '').rstrip('/')
    cleaned = page_url.rstrip('/')
    return f"{base}/" if not cleaned else f"{base}{cleaned}"


def build_seo_context(fields: Mapping[str, Any], page_url: str, site: SiteMetadata,
                      diagnostics: Optional[Diagnostics] = None,
                      path: Optional[str] = None) -> Dict[str, Any]:
    canonical = canonical_url(site, page_url)
    description = fields.get('description') or site.description
    author = fields.get('author') or site.author

    image = fields.get('image') or site.default_image
    if image:
        image = absolute_url(site, str(image))
    elif diagnostics is not None:
        diagnostics.warn(MISSING_IMAGE_WARNING, path)

    title = render_title(fields.get('title'), site, diagnostics, path)

    return {
        'description': description,
        'author': author,
        'canonical_url': canonical,
        'og_title': title,
        'og_description': description,
        'og_url': canonical,
        'og_type': 'website',
        'og_image': image,
        'og_site_name': site.title,
        'twitter_card': 'summary_large_image' if image else 'summary',
        'twitter_title': title,
        'twitter_description': description,
        'twitter_image': image,
        'twitter_handle': site.twitter_handle,
    }


def path_class(url: str, not_found: bool = False) -> str:
    """CSS class string for a page: its URL segments separated by spaces."""
    if not_found:
        return 'notfound'
    cleaned = url.strip('/')
    return cleaned.replace('/', ' ') if cleaned else 'index'


def base_url(url: str) -> str:
    """URL of the directory containing the page."""
    parent = posixpath.dirname(url.strip('/'))
    return f"/{parent}/" if parent else '/'
