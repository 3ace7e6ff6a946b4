"""
# ccepub
# Copyright (c) 2026 Dale Chapman
# Licensed under the MIT License. See LICENSE in the project root.

template.py

Document model handed to the renderer: the content of one resource group,
the template descriptor that renders it, and the exporter it came from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, TYPE_CHECKING

from ccepub.resources import RESOURCE_TITLES

if TYPE_CHECKING:
    from ccepub.exporter import Exporter


@dataclass(frozen=True)
class Template:
    """Render-ready pairing of content and template descriptor"""
    content: Any
    reference: str
    template: str
    exporter: "Exporter" = field(repr=False, compare=False)

    @property
    def title(self) -> str:
        if self.reference in RESOURCE_TITLES:
            return RESOURCE_TITLES[self.reference]
        if isinstance(self.content, dict):
            return self.content.get("title") or ""
        return ""

    @property
    def document_path(self) -> str:
        """Path of the rendered document inside the publication."""
        return f"{self.reference}.xhtml"

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view, without the exporter back-reference."""
        return {
            "reference": self.reference,
            "title": self.title,
            "template": self.template,
            "document_path": self.document_path,
            "content": self.content,
        }
