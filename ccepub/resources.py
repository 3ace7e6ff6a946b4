"""
# ccepub
# Copyright (c) 2026 Dale Chapman
# Licensed under the MIT License. See LICENSE in the project root.

resources.py

Resource-type keys, their display titles, and the mapping from module
item content types to the content graph groups that hold them.
"""

from __future__ import annotations

from ccepub.errors import unknown_resource_type_error


RESOURCE_TITLES = {
    "toc": "Table Of Contents",
    "syllabus": "Syllabus",
    "modules": "Modules",
    "assignments": "Assignments",
    "announcements": "Announcements",
    "topics": "Discussion Topics",
    "quizzes": "Quizzes",
    "pages": "Pages",
    "files": "Files",
}

RESOURCE_KEYS = tuple(RESOURCE_TITLES)

# Module item content type -> content graph key
LINKED_RESOURCE_KEY = {
    "Assignment": "assignments",
    "Attachment": "files",
    "DiscussionTopic": "topics",
    "Quizzes::Quiz": "quizzes",
    "WikiPage": "pages",
}

# Groups assembled when sorting by content type (attachments are not a group)
CONTENT_GROUP_KEYS = tuple(
    key for linked_type, key in LINKED_RESOURCE_KEY.items() if linked_type != "Attachment"
)

CONTENT_SORTING_TEMPLATE = "../templates/content_sorting_template.html.erb"
MODULE_SORTING_TEMPLATE = "../templates/module_sorting_template.html.erb"


def resource_template(resource: str) -> str:
    """Template descriptor for a single resource type."""
    if resource not in RESOURCE_TITLES:
        raise unknown_resource_type_error(resource, list(RESOURCE_KEYS))
    return f"../templates/{resource}_template.html.erb"


def linked_resource_key(linked_type: str | None) -> str | None:
    """Content graph key for a module item's content type, or None."""
    return LINKED_RESOURCE_KEY.get(linked_type or "")
