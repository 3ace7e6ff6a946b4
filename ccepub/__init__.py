"""
ccepub - Course content to e-book document models

Decodes a course, orders its content by module or by content type, and
assembles the templates (plus table of contents) an e-book renderer
needs, with item lookup and patching for later rendering steps.
"""

__version__ = "1.0.0"
__author__ = "Dale Chapman"
__license__ = "MIT"

from .errors import EpubExportError, UnknownResourceTypeError
from .exporter import Exporter
from .template import Template

__all__ = [
    "__version__",
    "Exporter",
    "Template",
    "EpubExportError",
    "UnknownResourceTypeError",
]
