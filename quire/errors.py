"""
Error taxonomy for the Quire build pipeline.

Every fatal condition raised during a build is a QuireError subclass. The
build stops at the first one and nothing is written to the output directory.
"""

from typing import Optional


class QuireError(Exception):
    """Base class for all fatal build errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(self.__str__())

    def __str__(self):
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class ConfigurationError(QuireError):
    """Invalid site configuration, structure or dynamic page definition."""


class FrontmatterError(ConfigurationError):
    """Malformed frontmatter header or missing required field."""


class CollisionError(QuireError):
    """Two sources resolve to the same output URL."""

    def __init__(self, url: str, first_source: str, second_source: str):
        self.url = url
        self.first_source = first_source
        self.second_source = second_source
        super().__init__(
            f"URL '{url}' is produced by both '{first_source}' and '{second_source}'"
        )


class RenderError(QuireError):
    """A template failed to evaluate for a page or structural file."""

    def __init__(self, message: str, path: Optional[str] = None,
                 line: Optional[int] = None, expression: Optional[str] = None):
        self.line = line
        self.expression = expression
        super().__init__(message, path)

    def __str__(self):
        location = self.path or '<unknown>'
        if self.line:
            location = f"{location}:{self.line}"
        text = f"{location}: {self.message}"
        if self.expression:
            text += f" (in expression: {self.expression.strip()})"
        return text


class OutputError(QuireError):
    """Reading an asset or writing the output tree failed."""
