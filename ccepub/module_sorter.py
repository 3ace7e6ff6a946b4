"""
# ccepub
# Copyright (c) 2026 Dale Chapman
# Licensed under the MIT License. See LICENSE in the project root.

module_sorter.py

Ordering helpers for the two ways an export can be organized:

  - by content type: one group per resource type (assignments, topics,
    quizzes, pages), in that fixed order
  - by module: one group per course module, in module-definition order,
    each holding the content its module items link to

All functions take the decoded content graph and never cache anything
themselves; the exporter decides once which strategy applies.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

from ccepub.resources import (
    CONTENT_GROUP_KEYS,
    CONTENT_SORTING_TEMPLATE,
    MODULE_SORTING_TEMPLATE,
    linked_resource_key,
)

ItemLookup = Callable[[str, str], Dict[str, Any]]


def should_sort_by_content(sort_by_content: bool, cartridge_json: Dict[str, Any]) -> bool:
    """Courses without modules always fall back to content-type ordering."""
    return bool(sort_by_content) or not cartridge_json.get("modules")


def module_ids(cartridge_json: Dict[str, Any]) -> List[str]:
    return [mod["identifier"] for mod in cartridge_json.get("modules") or []]


def resource_groups(sort_by_content: bool, cartridge_json: Dict[str, Any]) -> List[str]:
    """Keys of the groups to assemble, in table-of-contents order."""
    if sort_by_content:
        return list(CONTENT_GROUP_KEYS)
    return module_ids(cartridge_json)


def base_template(sort_by_content: bool) -> str:
    if sort_by_content:
        return CONTENT_SORTING_TEMPLATE
    return MODULE_SORTING_TEMPLATE


def filter_content_to_module(
    cartridge_json: Dict[str, Any],
    module_id: str,
    get_item: ItemLookup,
) -> Dict[str, Any]:
    """
    Build the content view of one module.

    Returns a copy of the module record whose ``items`` are the content
    records its module items link to. Module items with an unknown content
    type, or whose content is not in the cartridge, are left out. The
    returned records are the cartridge's own dicts, so later updates to
    them show through the view.
    """
    module = next(
        (mod for mod in cartridge_json.get("modules") or [] if mod.get("identifier") == module_id),
        None,
    )
    if module is None:
        return {"identifier": module_id, "title": "", "items": []}

    items = []
    for module_item in module.get("items") or []:
        resource_type = linked_resource_key(module_item.get("linked_resource_type"))
        if resource_type is None:
            continue
        content = get_item(resource_type, module_item.get("linked_resource_id"))
        if content:
            items.append(content)

    view = dict(module)
    view["items"] = items
    return view


def remove_hidden_content_from_syllabus(cartridge_json: Dict[str, Any]) -> int:
    """
    Drop syllabus entries flagged hidden, in place.

    Returns:
        Number of entries removed
    """
    syllabus = cartridge_json.get("syllabus")
    if not syllabus:
        return 0

    before = len(syllabus)
    syllabus[:] = [item for item in syllabus if not item.get("hidden")]
    return before - len(syllabus)
