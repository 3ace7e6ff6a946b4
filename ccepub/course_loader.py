#!/usr/bin/env python3
"""
# ccepub
# Copyright (c) 2026 Dale Chapman
# Licensed under the MIT License. See LICENSE in the project root.

course_loader.py

Decode a plain-text course folder (or a .zip of one) into the content
graph the exporter assembles templates from.

Course layout:

    ccepub.yaml                 optional, may set title / course_name
    content/ (or pages/)
        welcome.page/index.md
        essay-1.assignment/index.md
        week-1.discussion/index.md
        midterm.quiz/index.md
        hello.announcement/index.md
    modules/module_order.yaml   optional module ordering
    assets/                     images, audio, handouts, ...

Each index.md carries YAML frontmatter (name, modules, published,
due_at, ...) followed by a Markdown body. meta.json + source.md is
accepted as a fallback.

Links between content are written as relative links to the target folder
(``[Essay](essay-1.assignment)``) and assets as paths under assets/.
They are stored in the decoded HTML as cartridge placeholders
(``$CANVAS_OBJECT_REFERENCE$/assignments/<id>``, ``$IMS-CC-FILEBASE$/<path>``)
for the link rewriter to resolve once export paths are known.
"""

from __future__ import annotations

import hashlib
import json
import mimetypes
import re
import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import unquote, urlparse

import frontmatter
import markdown
import yaml
from bs4 import BeautifulSoup

from ccepub.config_utils import EXPORT_TYPES
from ccepub.errors import (
    bad_archive_error,
    course_not_found_error,
    invalid_export_type_error,
    unsafe_archive_member_error,
)
from ccepub.security_utils import is_safe_path


class CartridgeDecoder(Protocol):
    """What the exporter needs from a content decoder"""

    unsupported_files: Optional[List[Dict[str, Any]]]

    def decode(self, export_type: str) -> Dict[str, Any]: ...

    def teardown(self) -> None: ...


# ============================================================================
# Constants
# ============================================================================

# Folder extension -> (content graph key, module item content type)
CONTENT_TYPES = {
    ".page": ("pages", "WikiPage"),
    ".assignment": ("assignments", "Assignment"),
    ".discussion": ("topics", "DiscussionTopic"),
    ".quiz": ("quizzes", "Quizzes::Quiz"),
    ".announcement": ("announcements", None),
}

# Content graph key -> placeholder path segment
REFERENCE_SEGMENTS = {
    "assignments": "assignments",
    "topics": "discussion_topics",
    "quizzes": "quizzes",
    "announcements": "announcements",
}

OBJECT_REFERENCE = "$CANVAS_OBJECT_REFERENCE$"
WIKI_REFERENCE = "$WIKI_REFERENCE$"
FILE_BASE = "$IMS-CC-FILEBASE$"

SYLLABUS_KEYS = ("assignments", "topics", "quizzes")

# Media types an EPUB 3 reading system is required (or widely expected) to support
EPUB_MEDIA_TYPES = {
    "image/gif",
    "image/jpeg",
    "image/png",
    "image/svg+xml",
    "image/webp",
    "audio/mpeg",
    "audio/mp4",
    "audio/ogg",
    "video/mp4",
    "text/css",
    "font/ttf",
    "font/otf",
    "font/woff",
    "font/woff2",
    "application/font-woff",
    "application/xhtml+xml",
}

# Files to exclude (Windows metadata, macOS, etc.)
EXCLUDE_PATTERNS = {
    ':Zone.Identifier',
    '.DS_Store',
    'Thumbs.db',
    '.gitkeep',
    'desktop.ini',
}

MARKDOWN_EXTENSIONS = ['tables', 'fenced_code']


# ============================================================================
# ID Generation
# ============================================================================

def generate_content_id(relative_path: str, prefix: str = "i") -> str:
    """Generate a deterministic ID based on a course-relative path."""
    return f"{prefix}{hashlib.md5(relative_path.encode()).hexdigest()[:16]}"


@dataclass
class _SourceItem:
    """A content folder read from disk, before its HTML is rendered"""
    folder: Path
    resource_type: str
    linked_type: Optional[str]
    identifier: str
    meta: Dict[str, Any]
    source: str


# ============================================================================
# Decoder
# ============================================================================

class CourseDirectoryDecoder:
    """
    Decoder for plain-text course folders.

    A directory source is read in place. A .zip source is extracted to a
    temporary directory on first decode; teardown() removes it.
    """

    def __init__(self, source: Path, title: Optional[str] = None):
        self.source = Path(source)
        self.title = title
        self.unsupported_files: Optional[List[Dict[str, Any]]] = None
        self._extract_dir: Optional[Path] = None

    # ---------- protocol ----------

    def decode(self, export_type: str = "epub") -> Dict[str, Any]:
        if export_type not in EXPORT_TYPES:
            raise invalid_export_type_error(export_type, EXPORT_TYPES)

        root = self._course_root()
        print(f"[epub] Loading course from {root}")

        items = load_source_items(root)
        index = {item.folder.resolve(): item for item in items}

        cartridge: Dict[str, Any] = {
            "title": self.title or load_course_title(root),
            "syllabus": [],
            "modules": [],
            "assignments": [],
            "announcements": [],
            "topics": [],
            "quizzes": [],
            "pages": [],
            "files": [],
        }

        for item in items:
            cartridge[item.resource_type].append(build_record(item, index, root))

        files, unsupported = collect_files(root, export_type)
        cartridge["files"] = files
        self.unsupported_files = unsupported

        cartridge["modules"] = load_module_structure(root, items)
        cartridge["syllabus"] = build_syllabus(cartridge)

        print(
            f"[epub]   {sum(len(cartridge[k]) for k in CONTENT_TYPE_KEYS)} content items, "
            f"{len(cartridge['modules'])} modules, {len(files)} files"
        )
        if unsupported:
            print(f"[epub:warn] {len(unsupported)} files cannot be included in an {export_type} export")
        return cartridge

    def teardown(self) -> None:
        """Remove the temporary extraction directory, if any."""
        if self._extract_dir is None:
            return
        if self._extract_dir.exists():
            shutil.rmtree(self._extract_dir)
        self._extract_dir = None

    # ---------- helpers ----------

    def _course_root(self) -> Path:
        if not self.source.exists():
            raise course_not_found_error(self.source)
        if self.source.is_dir():
            return self.source
        return self._extract_archive()

    def _extract_archive(self) -> Path:
        if self._extract_dir is None:
            self._extract_dir = Path(tempfile.mkdtemp(prefix="ccepub_"))
            try:
                with zipfile.ZipFile(self.source) as zf:
                    for member in zf.namelist():
                        if not is_safe_path(self._extract_dir, self._extract_dir / member):
                            raise unsafe_archive_member_error(self.source, member)
                    zf.extractall(self._extract_dir)
            except zipfile.BadZipFile as e:
                raise bad_archive_error(self.source, cause=e) from e

        root = self._extract_dir
        # Archives of a course folder usually wrap everything in one directory
        children = [p for p in root.iterdir() if not p.name.startswith(".")]
        if len(children) == 1 and children[0].is_dir() and not _has_content_dir(root):
            return children[0]
        return root


CONTENT_TYPE_KEYS = tuple(sorted({key for key, _ in CONTENT_TYPES.values()}))


def _has_content_dir(root: Path) -> bool:
    return (root / "content").is_dir() or (root / "pages").is_dir()


def get_content_dir(root: Path) -> Path:
    """Prefer content/, fall back to pages/."""
    content_dir = root / "content"
    if content_dir.exists():
        return content_dir
    return root / "pages"


def load_course_title(root: Path) -> Optional[str]:
    """Title from ccepub.yaml (title or course_name), if any."""
    config_file = root / "ccepub.yaml"
    if not config_file.is_file():
        return None
    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        print(f"[epub:warn] Failed to parse {config_file}: {e}")
        return None
    if not isinstance(data, dict):
        return None
    title = data.get("title") or data.get("course_name")
    return str(title) if title else None


# ============================================================================
# Content Loaders
# ============================================================================

def folder_sort_key(folder: Path, meta: Dict[str, Any]) -> tuple:
    """
    Sort key for content folders.

    Priority:
    1. Explicit 'position' in frontmatter
    2. Numeric prefix from folder name (e.g., 01-intro -> 1)
    3. No prefix - sorts last, alphabetically by folder name
    """
    position = meta.get("position")
    if position is not None:
        try:
            return (0, int(position), folder.name.lower())
        except (ValueError, TypeError):
            pass

    match = re.match(r'^(\d+)-', folder.name)
    if match:
        return (1, int(match.group(1)), folder.name.lower())

    return (2, 0, folder.name.lower())


def load_source_items(root: Path) -> List[_SourceItem]:
    """Load every content folder under the content directory."""
    content_dir = get_content_dir(root)
    items: List[_SourceItem] = []

    if not content_dir.exists():
        print("[epub:warn] No content directory found")
        return items

    for ext, (resource_type, linked_type) in CONTENT_TYPES.items():
        for folder in sorted(content_dir.rglob(f"*{ext}")):
            if not folder.is_dir():
                continue
            loaded = load_folder(folder)
            if loaded is None:
                continue
            meta, source = loaded
            items.append(_SourceItem(
                folder=folder,
                resource_type=resource_type,
                linked_type=linked_type,
                identifier=generate_content_id(folder.relative_to(root).as_posix()),
                meta=meta,
                source=source,
            ))

    items.sort(key=lambda item: folder_sort_key(item.folder, item.meta))
    return items


def load_folder(folder: Path) -> Optional[tuple[Dict[str, Any], str]]:
    """Read metadata and Markdown source from a content folder."""
    index_path = folder / "index.md"
    meta_path = folder / "meta.json"
    source_path = folder / "source.md"

    meta: Dict[str, Any] = {}
    source = ""

    if index_path.is_file():
        try:
            post = frontmatter.load(index_path)
            meta = dict(post.metadata)
            source = post.content
        except (OSError, ValueError, yaml.YAMLError) as e:
            print(f"[epub:warn] Failed to parse {index_path}: {e}")

    if not meta and meta_path.is_file():
        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            print(f"[epub:warn] Failed to load {meta_path}: {e}")

    if source_path.is_file() and not source:
        source = source_path.read_text(encoding="utf-8")

    if not meta.get("name"):
        print(f"[epub:warn] Skipping {folder.name}: no name in metadata")
        return None

    return meta, source


def module_names(meta: Dict[str, Any]) -> List[str]:
    """Module names from frontmatter; a single name may be given as a string."""
    modules = meta.get("modules") or []
    if isinstance(modules, str):
        modules = [modules]
    return [str(name) for name in modules]


def _isoformat(value: Any) -> Optional[str]:
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def build_record(item: _SourceItem, index: Dict[Path, _SourceItem], root: Path) -> Dict[str, Any]:
    """Turn a loaded folder into a content graph record."""
    meta = item.meta
    html = markdown.markdown(item.source, extensions=MARKDOWN_EXTENSIONS)

    record: Dict[str, Any] = {
        "identifier": item.identifier,
        "title": str(meta["name"]),
        "text": insert_placeholders(html, item.folder, index, root),
        "published": bool(meta.get("published", True)),
        "modules": module_names(meta),
    }

    for key in ("points_possible", "submission_types", "time_limit"):
        if meta.get(key) is not None:
            record[key] = meta[key]

    if meta.get("syllabus") is False:
        record["hide_from_syllabus"] = True

    if meta.get("due_at") is not None:
        record["due_at"] = _isoformat(meta["due_at"])
    if item.resource_type == "announcements" and meta.get("posted_at") is not None:
        record["posted_at"] = _isoformat(meta["posted_at"])

    return record


def insert_placeholders(
    html: str,
    folder: Path,
    index: Dict[Path, _SourceItem],
    root: Path,
) -> str:
    """
    Replace relative links to other content folders and to assets with
    cartridge placeholders.
    """
    if not html:
        return html

    soup = BeautifulSoup(html, "lxml")
    assets_dir = root / "assets"

    for tag, attr in (("a", "href"), ("img", "src"), ("audio", "src"),
                      ("video", "src"), ("source", "src")):
        for node in soup.find_all(tag):
            value = node.get(attr)
            if not value or urlparse(value).scheme or value.startswith(("#", "$")):
                continue

            target = unquote(value.split("#", 1)[0]).rstrip("/")

            linked = find_linked_item(folder, target, index)
            if linked is not None:
                node[attr] = reference_placeholder(linked.resource_type, linked.identifier)
                continue

            asset = (folder / target).resolve()
            if is_safe_path(assets_dir, asset):
                node[attr] = f"{FILE_BASE}/{asset.relative_to(assets_dir.resolve()).as_posix()}"

    body = soup.body
    return body.decode_contents() if body is not None else str(soup)


def find_linked_item(
    folder: Path,
    target: str,
    index: Dict[Path, _SourceItem],
) -> Optional[_SourceItem]:
    """
    Content folder a relative link points at.

    The link is resolved against the linking folder, then against its
    parent (sibling links written as a bare folder name). A bare name that
    matches neither falls back to the one folder anywhere in the course
    with that name; an ambiguous name links nowhere.
    """
    if not target:
        return None

    for base in (folder, folder.parent):
        linked = index.get((base / target).resolve())
        if linked is not None:
            return linked

    if "/" in target:
        return None

    matches = [item for path, item in index.items() if path.name == target]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        print(f"[epub:warn] Link to {target} from {folder.name} is ambiguous; left as is")
    return None


def reference_placeholder(resource_type: str, identifier: str) -> str:
    if resource_type == "pages":
        return f"{WIKI_REFERENCE}/pages/{identifier}"
    return f"{OBJECT_REFERENCE}/{REFERENCE_SEGMENTS[resource_type]}/{identifier}"


# ============================================================================
# Asset Collection
# ============================================================================

def collect_files(root: Path, export_type: str) -> tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Collect asset files.

    Returns:
        (files, unsupported_files); for epub exports, files whose media
        type an EPUB reader cannot display land in unsupported_files.
    """
    files: List[Dict[str, Any]] = []
    unsupported: List[Dict[str, Any]] = []
    assets_dir = root / "assets"

    if not assets_dir.exists():
        return files, unsupported

    for file_path in sorted(assets_dir.rglob("*")):
        if not file_path.is_file():
            continue
        if file_path.name.startswith("."):
            continue
        if any(pattern in file_path.name for pattern in EXCLUDE_PATTERNS):
            continue

        rel_path = file_path.relative_to(assets_dir).as_posix()
        media_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
        record = {
            "identifier": generate_content_id(f"assets/{rel_path}", prefix="f"),
            "title": file_path.name,
            "path": rel_path,
            "media_type": media_type,
        }

        if export_type == "epub" and media_type not in EPUB_MEDIA_TYPES:
            unsupported.append(record)
        else:
            files.append(record)

    return files, unsupported


# ============================================================================
# Module Structure Loader
# ============================================================================

def load_module_order(root: Path) -> List[str]:
    """Module names from modules/module_order.yaml (list or {modules: [...]})."""
    order_file = root / "modules" / "module_order.yaml"
    if not order_file.is_file():
        return []
    try:
        data = yaml.safe_load(order_file.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        print(f"[epub:warn] Failed to parse {order_file}: {e}")
        return []
    if isinstance(data, dict):
        data = data.get("modules", [])
    if not isinstance(data, list):
        return []
    return [str(name) for name in data]


def load_module_structure(root: Path, items: List[_SourceItem]) -> List[Dict[str, Any]]:
    """Build module records from module_order.yaml and item frontmatter."""
    module_map: Dict[str, Dict[str, Any]] = {}

    def ensure(name: str) -> Dict[str, Any]:
        if name not in module_map:
            module_map[name] = {
                "identifier": generate_content_id(f"modules/{name}", prefix="m"),
                "title": name,
                "position": len(module_map),
                "items": [],
            }
        return module_map[name]

    for name in load_module_order(root):
        ensure(name)

    for item in items:
        if item.linked_type is None:
            continue
        for module_name in module_names(item.meta):
            module = ensure(module_name)
            module["items"].append({
                "identifier": generate_content_id(f"{module['identifier']}/{item.identifier}", prefix="mi"),
                "title": str(item.meta["name"]),
                "linked_resource_type": item.linked_type,
                "linked_resource_id": item.identifier,
            })

    return sorted(module_map.values(), key=lambda m: m["position"])


# ============================================================================
# Syllabus
# ============================================================================

def build_syllabus(cartridge: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Dated assignments, discussions and quizzes, earliest first."""
    entries = []
    for resource_type in SYLLABUS_KEYS:
        for record in cartridge[resource_type]:
            if not record.get("due_at"):
                continue
            entries.append({
                "identifier": record["identifier"],
                "title": record["title"],
                "due_at": record["due_at"],
                "resource_type": resource_type,
                "hidden": not record.get("published", True) or bool(record.get("hide_from_syllabus")),
            })
    entries.sort(key=lambda entry: entry["due_at"])
    return entries
