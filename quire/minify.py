"""HTML and CSS minification."""

import logging
from typing import Optional

import csscompressor
import minify_html

from .diagnostics import Diagnostics

logger = logging.getLogger('Quire.minify')


def minify_html_content(html_content: str, diagnostics: Optional[Diagnostics] = None,
                        path: Optional[str] = None) -> str:
    """Minify an HTML document, returning it unchanged if minification fails."""
    try:
        return minify_html.minify(html_content, minify_css=True, minify_js=True)
    except Exception as e:
        logger.error(f"Failed to minify HTML {path or ''}: {e}")
        if diagnostics is not None:
            diagnostics.warn(f"HTML minification failed, writing unminified output: {e}", path)
        return html_content


def minify_css_content(css_content: str, diagnostics: Optional[Diagnostics] = None,
                       path: Optional[str] = None) -> str:
    """Minify a stylesheet, returning it unchanged if minification fails."""
    try:
        return csscompressor.compress(css_content)
    except Exception as e:
        logger.error(f"Failed to minify CSS {path or ''}: {e}")
        if diagnostics is not None:
            diagnostics.warn(f"CSS minification failed, writing unminified output: {e}", path)
        return css_content
