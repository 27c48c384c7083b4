"""Syntax highlighting for fenced code blocks, backed by pygments."""

import html
import logging
from typing import Optional

from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .diagnostics import Diagnostics

logger = logging.getLogger('Quire.highlight')

CSS_CLASS = 'highlight'
FALLBACK_THEME = 'default'


class CodeHighlighter:
    """Highlights code by language name and produces the matching stylesheet."""

    def __init__(self, theme: str, diagnostics: Optional[Diagnostics] = None):
        self.diagnostics = diagnostics or Diagnostics()
        try:
            get_style_by_name(theme)
        except ClassNotFound:
            self.diagnostics.warn(
                f"unknown syntax highlighting theme '{theme}', using '{FALLBACK_THEME}'"
            )
            theme = FALLBACK_THEME
        self.theme = theme
        # nowrap: highlight() writes the <pre> wrapper itself
        self._formatter = HtmlFormatter(style=theme, nowrap=True)

    def stylesheet(self) -> str:
        return self._formatter.get_style_defs(f'.{CSS_CLASS}')

    def highlight(self, code: str, language: str, path: Optional[str] = None) -> Optional[str]:
        """Highlighted HTML for ``code``, or None when the language is unknown."""
        try:
            lexer = get_lexer_by_name(language)
        except ClassNotFound:
            self.diagnostics.warn(f"unknown code block language '{language}'", path)
            return None
        spans = highlight(code, lexer, self._formatter)
        return (f'<pre class="{CSS_CLASS}"><code class="language-{html.escape(language)}">'
                f'{spans}</code></pre>\n')
