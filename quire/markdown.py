"""Markdown to HTML conversion with mistune."""

import html
import threading
from typing import Optional

import mistune

from .highlight import CodeHighlighter

PLUGINS = ['table', 'task_lists', 'strikethrough']


class MarkdownRenderer:
    """Converts markdown to HTML; one mistune parser per thread."""

    def __init__(self, highlighter: Optional[CodeHighlighter] = None):
        self.highlighter = highlighter
        self._local = threading.local()

    def create_markdown_parser(self):
        """Create a Mistune markdown parser with a custom renderer."""
        highlighter = self.highlighter

        class CustomRenderer(mistune.HTMLRenderer):
            def __init__(self):
                super().__init__(escape=False)
                self.source_path = None

            def block_code(self, code, info=None):
                language = info.strip().split()[0] if info and info.strip() else None
                if language and highlighter is not None:
                    highlighted = highlighter.highlight(code, language, self.source_path)
                    if highlighted is not None:
                        return highlighted
                escaped_code = mistune.escape(code)
                if language:
                    return '<pre><code class="language-{}">{}</code></pre>\n'.format(
                        html.escape(language), escaped_code)
                return '<pre><code>{}</code></pre>\n'.format(escaped_code)

        renderer = CustomRenderer()
        return renderer, mistune.create_markdown(renderer=renderer, plugins=PLUGINS)

    def _parser(self):
        if not hasattr(self._local, 'parser'):
            self._local.renderer, self._local.parser = self.create_markdown_parser()
        return self._local.renderer, self._local.parser

    def render(self, text: str, path: Optional[str] = None) -> str:
        """Convert markdown text to HTML.

        ``path`` names the source file in warnings about code blocks.
        """
        renderer, parser = self._parser()
        renderer.source_path = path
        return parser(text)
