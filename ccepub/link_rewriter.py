#!/usr/bin/env python3
"""
# ccepub
# Copyright (c) 2026 Dale Chapman
# Licensed under the MIT License. See LICENSE in the project root.

link_rewriter.py

Point links between course items at their place in the exported book.

Runs after templates are assembled, because only then is it known which
document each item ends up in:

  1. assign_export_paths() records an ``href`` on every exported item
     ("<document>.xhtml#<identifier>")
  2. rewrite_links() replaces cartridge placeholders in item bodies:
       $CANVAS_OBJECT_REFERENCE$/<type>/<id>  -> the target item's href
       $WIKI_REFERENCE$/pages/<id>            -> the target page's href
       $IMS-CC-FILEBASE$/<path>               -> media/<path> (exported files only)
     Links to items that are not part of the export are unwrapped so the
     reader keeps the text but gets no dead link.

Both steps patch items through the exporter (update_item), so the
cached templates see the changes.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional
from urllib.parse import unquote

from bs4 import BeautifulSoup

from ccepub.course_loader import FILE_BASE, OBJECT_REFERENCE, WIKI_REFERENCE
from ccepub.exporter import Exporter
from ccepub.module_sorter import resource_groups
from ccepub.resources import linked_resource_key


MEDIA_DIR = "media"

# Placeholder path segment -> content graph key
REFERENCE_TYPES = {
    "assignments": "assignments",
    "discussion_topics": "topics",
    "quizzes": "quizzes",
    "announcements": "announcements",
    "pages": "pages",
    "files": "files",
}

REFERENCE_RE = re.compile(
    rf"^(?:{re.escape(OBJECT_REFERENCE)}|{re.escape(WIKI_REFERENCE)})/(?P<type>[a-z_]+)/(?P<id>[^/?#]+)(?P<fragment>#.*)?$"
)

# Item groups whose bodies may contain links
BODY_KEYS = ("assignments", "topics", "quizzes", "pages", "announcements")

LINK_ATTRS = (("a", "href"), ("img", "src"), ("audio", "src"),
              ("video", "src"), ("source", "src"))


def assign_export_paths(exporter: Exporter) -> int:
    """
    Record where each exported item lives.

    Items reachable from more than one module keep the first location.

    Returns:
        Number of items given a path
    """
    templates = exporter.templates()
    cartridge_json = exporter.cartridge_json()
    assigned = set()

    def assign(resource_type: str, identifier: str, document_path: str) -> None:
        if (resource_type, identifier) in assigned:
            return
        if exporter.update_item(resource_type, identifier, {"href": f"{document_path}#{identifier}"}):
            assigned.add((resource_type, identifier))

    if exporter.sort_by_content:
        for resource in resource_groups(True, cartridge_json):
            template = templates[resource]
            for item in template.content:
                assign(resource, item.get("identifier"), template.document_path)
    else:
        for module in cartridge_json.get("modules") or []:
            template = templates[module["identifier"]]
            for module_item in module.get("items") or []:
                resource_type = linked_resource_key(module_item.get("linked_resource_type"))
                if resource_type is None or resource_type == "files":
                    continue
                assign(resource_type, module_item.get("linked_resource_id"), template.document_path)

    announcements = templates["announcements"]
    for item in announcements.content:
        assign("announcements", item.get("identifier"), announcements.document_path)

    for item in cartridge_json.get("files") or []:
        if exporter.update_item("files", item["identifier"], {"href": f"{MEDIA_DIR}/{item['path']}"}):
            assigned.add(("files", item["identifier"]))

    return len(assigned)


def resolve_reference(exporter: Exporter, value: str) -> Optional[str]:
    """
    Final href for a placeholder link.

    Returns:
        The rewritten href, "" when the target is not exported, or None when
        value is not a placeholder at all.
    """
    if value.startswith(f"{FILE_BASE}/"):
        path = unquote(value[len(FILE_BASE) + 1:].split("#", 1)[0])
        target = next(
            (item for item in exporter.cartridge_json().get("files") or [] if item.get("path") == path),
            {},
        )
        return target.get("href") or ""

    match = REFERENCE_RE.match(value)
    if not match:
        return None

    resource_type = REFERENCE_TYPES.get(match.group("type"))
    if resource_type is None:
        return ""

    target = exporter.get_item(resource_type, unquote(match.group("id")))
    return target.get("href") or ""


def rewrite_html(exporter: Exporter, html: str) -> tuple[str, int]:
    """Rewrite placeholders in one HTML fragment. Returns (html, count)."""
    if not html or "$" not in html:
        return html, 0

    soup = BeautifulSoup(html, "lxml")
    count = 0

    for tag, attr in LINK_ATTRS:
        for node in soup.find_all(tag):
            value = node.get(attr)
            if not value:
                continue
            new_value = resolve_reference(exporter, value)
            if new_value is None:
                continue
            if new_value:
                node[attr] = new_value
            elif tag == "a":
                node.unwrap()
            else:
                del node[attr]
            count += 1

    body = soup.body
    return (body.decode_contents() if body is not None else str(soup)), count


def rewrite_links(exporter: Exporter) -> int:
    """
    Rewrite placeholder links in every item body.

    Call assign_export_paths() first so targets have an href.

    Returns:
        Number of links rewritten
    """
    cartridge_json = exporter.cartridge_json()
    total = 0

    for resource_type in BODY_KEYS:
        for item in list(cartridge_json.get(resource_type) or []):
            html, count = rewrite_html(exporter, item.get("text") or "")
            if count:
                exporter.update_item(resource_type, item["identifier"], {"text": html})
                total += count

    for entry in list(cartridge_json.get("syllabus") or []):
        html, count = rewrite_html(exporter, entry.get("text") or "")
        if count:
            exporter.update_syllabus_item(entry["identifier"], {"text": html})
            total += count

    print(f"[epub] Rewrote {total} links")
    return total


def export_paths(exporter: Exporter) -> Dict[str, Any]:
    """Identifier -> href for every item that has one."""
    cartridge_json = exporter.cartridge_json()
    return {
        item["identifier"]: item["href"]
        for key in BODY_KEYS + ("files",)
        for item in cartridge_json.get(key) or []
        if item.get("href")
    }
