#!/usr/bin/env python3
"""
# ccepub
# Copyright (c) 2026 Dale Chapman
# Licensed under the MIT License. See LICENSE in the project root.

exporter.py

Assemble the document models for one e-book export of a course.

One Exporter serves exactly one export:

  1. The course is decoded once (on construction) and the resulting
     content graph is kept for the life of the exporter. Everything else
     reads and patches that same graph.
  2. The ordering strategy is fixed at construction: by module, or by
     content type when asked to or when the course has no modules.
  3. templates() builds one Template per resource group, appending a
     table-of-contents entry for each, and caches the result.
  4. Later steps (link rewriting, rendering) look items up and patch them
     with get_item()/update_item(); patches are visible through the
     cached templates because both share the graph's records.
  5. cleanup() releases whatever the decoder unpacked. Use the exporter
     as a context manager to make sure that happens.

Usage:
    with Exporter(Path("my-course.zip")) as exporter:
        templates = exporter.templates()
        ...
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ccepub.course_loader import CartridgeDecoder, CourseDirectoryDecoder
from ccepub.module_sorter import (
    base_template,
    filter_content_to_module,
    remove_hidden_content_from_syllabus,
    resource_groups,
    should_sort_by_content,
)
from ccepub.resources import LINKED_RESOURCE_KEY, RESOURCE_TITLES, resource_template
from ccepub.security_utils import path_safe, truncate_text
from ccepub.template import Template


FILENAME_TITLE_MAX_LENGTH = 200
TIMESTAMP_FORMAT = "%Y-%b-%d_%H-%M-%S"


def _now() -> datetime:
    return datetime.now()


class Exporter:
    """Template assembly for a single course export"""

    def __init__(
        self,
        cartridge: Optional[Path] = None,
        sort_by_content: bool = False,
        export_type: str = "epub",
        decoder: Optional[CartridgeDecoder] = None,
        title: Optional[str] = None,
    ):
        if cartridge is None and decoder is None:
            raise ValueError("Exporter needs a cartridge path or a decoder")

        self.cartridge = Path(cartridge) if cartridge is not None else None
        self.export_type = export_type
        self.title = title

        self._decoder = decoder
        self._cartridge_json: Optional[Dict[str, Any]] = None
        self._templates: Optional[Dict[str, Any]] = None
        self._toc: Optional[Template] = None
        self._item_ids: Optional[List[str]] = None
        self._filename_prefix: Optional[str] = None
        self._syllabus_filtered = False

        try:
            cartridge_json = self.cartridge_json()
        except Exception:
            # Nobody can call cleanup() on an exporter that failed to build
            try:
                self.cleanup()
            except Exception as e:
                print(f"[epub:warn] Cleanup after failed decode also failed: {e}")
            raise

        self.sort_by_content = should_sort_by_content(sort_by_content, cartridge_json)

    def __enter__(self) -> "Exporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    # ========================================================================
    # Content source
    # ========================================================================

    def cartridge_json(self) -> Dict[str, Any]:
        """The decoded content graph (decoded on first call only)."""
        if self._cartridge_json is None:
            self._cartridge_json = self._cartridge_converter().decode(self.export_type)
        return self._cartridge_json

    def unsupported_files(self) -> Optional[List[Dict[str, Any]]]:
        if self._decoder is None:
            return None
        return getattr(self._decoder, "unsupported_files", None)

    def cleanup(self) -> None:
        """Release files the decoder unpacked. No-op if it never ran."""
        if self._decoder is None:
            return
        self._decoder.teardown()

    def _cartridge_converter(self) -> CartridgeDecoder:
        if self._decoder is None:
            self._decoder = CourseDirectoryDecoder(self.cartridge, title=self.title)
        return self._decoder

    # ========================================================================
    # Template assembly
    # ========================================================================

    def templates(self) -> Dict[str, Any]:
        """
        Build (once) and return every document model for the export.

        Keys: title, files, toc, syllabus, announcements, plus one entry per
        resource group (the content type keys when sorting by content, the
        module identifiers otherwise). Only the resource groups are listed in
        the table of contents.
        """
        if self._templates is not None:
            return self._templates

        cartridge_json = self.cartridge_json()
        toc = self.create_universal_template("toc", content=[])
        templates: Dict[str, Any] = {
            "title": cartridge_json.get("title"),
            "files": cartridge_json.get("files"),
            "toc": toc,
            "syllabus": self.create_universal_template("syllabus"),
            "announcements": self.create_universal_template("announcements"),
        }

        self.remove_hidden_content_from_syllabus()
        for resource in resource_groups(self.sort_by_content, cartridge_json):
            templates[resource] = self.create_content_template(resource, toc)

        self._toc = toc
        self._templates = templates
        return templates

    def toc(self) -> Template:
        """The finished table of contents."""
        self.templates()
        return self._toc

    def create_universal_template(self, resource: str, content: Optional[list] = None) -> Template:
        if content is None:
            content = self.cartridge_json().get(resource)
            if content is None:
                content = []
        return Template(
            content=content,
            reference=resource,
            template=resource_template(resource),
            exporter=self,
        )

    def create_content_template(self, resource: str, toc: Template) -> Template:
        if self.sort_by_content:
            resource_content = self.cartridge_json().get(resource)
            if resource_content is None:
                resource_content = []
        else:
            resource_content = filter_content_to_module(self.cartridge_json(), resource, self.get_item)

        self.update_table_of_contents(toc, resource, resource_content)
        return Template(
            content=resource_content,
            reference=resource,
            template=base_template(self.sort_by_content),
            exporter=self,
        )

    def update_table_of_contents(self, toc: Template, resource: str, resource_content: Any) -> None:
        if self.sort_by_content:
            title = RESOURCE_TITLES.get(resource, "")
            entry_content = resource_content
        else:
            title = RESOURCE_TITLES.get(resource) or resource_content.get("title") or ""
            entry_content = resource_content["items"]

        toc.content.append({
            "reference": resource,
            "title": title,
            "resource_content": entry_content,
        })

    def remove_hidden_content_from_syllabus(self) -> None:
        if self._syllabus_filtered:
            return
        removed = remove_hidden_content_from_syllabus(self.cartridge_json())
        self._syllabus_filtered = True
        if removed:
            print(f"[epub] Left {removed} hidden items out of the syllabus")

    # ========================================================================
    # Item lookup
    # ========================================================================

    def get_item(self, resource_type: str, identifier: str) -> Dict[str, Any]:
        """
        Find a record by identifier.

        Returns a new empty dict when the group is missing, empty, or has no
        record with that identifier.
        """
        group = self.cartridge_json().get(resource_type)
        if not group:
            return {}

        for resource in group:
            if resource.get("identifier") == identifier:
                return resource
        return {}

    def update_item(self, resource_type: str, identifier: str, updated_item: Dict[str, Any]) -> bool:
        """
        Merge updated_item into the stored record.

        Returns:
            True if the record was found and updated, False if there was no
            such record (the update is dropped).
        """
        item = self.get_item(resource_type, identifier)
        if not item:
            print(f"[epub:warn] No {resource_type} item {identifier}; update dropped")
            return False
        item.update(updated_item)
        return True

    def get_syllabus_item(self, identifier: str) -> Dict[str, Any]:
        return self.get_item("syllabus", identifier)

    def update_syllabus_item(self, identifier: str, updated_item: Dict[str, Any]) -> bool:
        return self.update_item("syllabus", identifier, updated_item)

    def item_ids(self) -> List[str]:
        """Identifiers of every linkable item, in graph order."""
        if self._item_ids is None:
            cartridge_json = self.cartridge_json()
            self._item_ids = [
                resource.get("identifier")
                for key in LINKED_RESOURCE_KEY.values()
                for resource in cartridge_json.get(key) or []
            ]
        return self._item_ids

    # ========================================================================
    # Export metadata
    # ========================================================================

    def filename_prefix(self) -> str:
        """Prefix of names of all files generated by this export."""
        if self._filename_prefix is None:
            title = self.cartridge_json().get("title") or ""
            name = truncate_text(path_safe(title), max_length=FILENAME_TITLE_MAX_LENGTH, ellipsis="")
            timestamp = _now().strftime(TIMESTAMP_FORMAT)
            self._filename_prefix = f"{name}-{timestamp}"
        return self._filename_prefix
