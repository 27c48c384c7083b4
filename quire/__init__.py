"""
Quire - a file-based static site generator.

Quire turns a tree of Markdown files into a static site. Any content file can
query every other page through template functions, and a single
``[param].md`` file can expand into many pages.
"""

__version__ = "1.0.0"

from .core import Quire
from .errors import (CollisionError, ConfigurationError, FrontmatterError, OutputError,
                     QuireError, RenderError)

__all__ = [
    'Quire',
    'QuireError',
    'ConfigurationError',
    'FrontmatterError',
    'CollisionError',
    'RenderError',
    'OutputError',
]
