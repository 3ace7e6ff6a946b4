# tests/conftest.py
"""
Pytest configuration and shared fixtures for ccepub tests
"""
import pytest
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator

sys.path.insert(0, str(Path(__file__).parent.parent))


class FakeDecoder:
    """In-memory decoder that records how it was used"""

    def __init__(self, cartridge: Dict[str, Any], unsupported_files=None, error: Exception = None):
        self.cartridge = cartridge
        self.unsupported_files = unsupported_files
        self.error = error
        self.decode_calls = []
        self.teardown_calls = 0

    def decode(self, export_type: str) -> Dict[str, Any]:
        self.decode_calls.append(export_type)
        if self.error is not None:
            raise self.error
        return self.cartridge

    def teardown(self) -> None:
        self.teardown_calls += 1


def _module_structure():
    return [
        {
            "identifier": "m1",
            "title": "Week 1: Cells",
            "position": 0,
            "items": [
                {"identifier": "mi1", "title": "Course Overview",
                 "linked_resource_type": "WikiPage", "linked_resource_id": "p1"},
                {"identifier": "mi2", "title": "Lab Report",
                 "linked_resource_type": "Assignment", "linked_resource_id": "a1"},
                {"identifier": "mi3", "title": "Khan Academy",
                 "linked_resource_type": "ExternalUrl", "linked_resource_id": "x1"},
            ],
        },
        {
            "identifier": "m2",
            "title": "Week 2: Genetics",
            "position": 1,
            "items": [
                {"identifier": "mi4", "title": "Cells Quiz",
                 "linked_resource_type": "Quizzes::Quiz", "linked_resource_id": "q1"},
                {"identifier": "mi5", "title": "Deleted Assignment",
                 "linked_resource_type": "Assignment", "linked_resource_id": "gone"},
                {"identifier": "mi6", "title": "Introductions",
                 "linked_resource_type": "DiscussionTopic", "linked_resource_id": "t1"},
            ],
        },
    ]


def _cartridge(with_modules: bool) -> Dict[str, Any]:
    return {
        "title": "Intro to Biology",
        "syllabus": [
            {"identifier": "a1", "title": "Lab Report", "due_at": "2026-01-10",
             "resource_type": "assignments", "hidden": False},
            {"identifier": "a2", "title": "Draft Essay", "due_at": "2026-01-12",
             "resource_type": "assignments", "hidden": True},
            {"identifier": "q1", "title": "Cells Quiz", "due_at": "2026-01-15",
             "resource_type": "quizzes", "hidden": False},
        ],
        "modules": _module_structure() if with_modules else [],
        "assignments": [
            {"identifier": "a1", "title": "Lab Report", "text": "<p>Write it up.</p>"},
            {"identifier": "a2", "title": "Draft Essay", "text": ""},
        ],
        "announcements": [
            {"identifier": "n1", "title": "Welcome!",
             "text": '<p>Start with <a href="$WIKI_REFERENCE$/pages/p1">the overview</a>.</p>'},
        ],
        "topics": [
            {"identifier": "t1", "title": "Introductions", "text": "<p>Say hi.</p>"},
        ],
        "quizzes": [
            {"identifier": "q1", "title": "Cells Quiz", "text": ""},
        ],
        "pages": [
            {"identifier": "p1", "title": "Course Overview",
             "text": '<p>See <a href="$CANVAS_OBJECT_REFERENCE$/assignments/a1">the lab</a> '
                     'and <a href="$CANVAS_OBJECT_REFERENCE$/assignments/nope">an old one</a>.</p>'
                     '<img src="$IMS-CC-FILEBASE$/images/cell.png" alt="cell">'},
        ],
        "files": [
            {"identifier": "f1", "title": "cell.png", "path": "images/cell.png", "media_type": "image/png"},
        ],
    }


@pytest.fixture
def cartridge() -> Dict[str, Any]:
    """Decoded course with two modules"""
    return _cartridge(with_modules=True)


@pytest.fixture
def flat_cartridge() -> Dict[str, Any]:
    """Decoded course without modules"""
    return _cartridge(with_modules=False)


@pytest.fixture
def make_decoder():
    """Factory for FakeDecoder instances"""
    return FakeDecoder


@pytest.fixture
def temp_course_dir() -> Generator[Path, None, None]:
    """Create a temporary course directory structure"""
    tmpdir = Path(tempfile.mkdtemp())

    (tmpdir / "content").mkdir()
    (tmpdir / "assets").mkdir()
    (tmpdir / "modules").mkdir()

    yield tmpdir

    shutil.rmtree(tmpdir)


def write_item(root: Path, folder_name: str, frontmatter_text: str, body: str = "") -> Path:
    """Write a content folder with an index.md"""
    folder = root / "content" / folder_name
    folder.mkdir(parents=True)
    (folder / "index.md").write_text(f"---\n{frontmatter_text.strip()}\n---\n\n{body}")
    return folder


@pytest.fixture
def sample_course(temp_course_dir: Path) -> Path:
    """A small course folder on disk"""
    root = temp_course_dir
    (root / "ccepub.yaml").write_text('title: "Intro to Biology"\n')
    (root / "modules" / "module_order.yaml").write_text(
        "modules:\n  - \"Week 1: Cells\"\n  - \"Week 2: Genetics\"\n"
    )

    write_item(root, "01-overview.page", """
name: "Course Overview"
modules:
  - "Week 1: Cells"
""", "# Overview\n\nStart with the [lab report](lab-report.assignment).\n\n![Cell](../../assets/images/cell.png)\n")

    write_item(root, "lab-report.assignment", """
name: "Lab Report"
modules:
  - "Week 1: Cells"
points_possible: 20
due_at: "2026-01-10"
""", "Write up your observations.\n")

    write_item(root, "draft.assignment", """
name: "Draft Essay"
published: false
due_at: "2026-01-12"
""", "Not ready yet.\n")

    write_item(root, "intros.discussion", """
name: "Introductions"
modules:
  - "Week 2: Genetics"
due_at: "2026-01-08"
syllabus: false
""", "Say hi.\n")

    write_item(root, "cells.quiz", """
name: "Cells Quiz"
modules:
  - "Week 2: Genetics"
due_at: "2026-01-15"
""", "Ten questions on cells.\n")

    write_item(root, "welcome.announcement", """
name: "Welcome!"
posted_at: "2026-01-01"
""", "Glad you're here.\n")

    # Folder without a name is skipped
    write_item(root, "broken.page", "published: true\n")

    images = root / "assets" / "images"
    images.mkdir(parents=True)
    (images / "cell.png").write_bytes(b"\x89PNG\r\n")
    (root / "assets" / "lecture.docx").write_bytes(b"PK")
    (root / "assets" / ".DS_Store").write_bytes(b"")

    return root
