# tests/test_course_loader.py
"""
Tests for course_loader.py - decoding course folders into a content graph
"""
import zipfile
from pathlib import Path

import pytest

from ccepub.course_loader import (
    CourseDirectoryDecoder,
    folder_sort_key,
    generate_content_id,
    load_module_order,
)
from ccepub.errors import ConfigurationError, CourseLoadError
from ccepub.exporter import Exporter
from conftest import write_item


def _by_title(records):
    return {record["title"]: record for record in records}


class TestIdGeneration:
    """Tests for ID generation"""

    def test_deterministic(self):
        assert generate_content_id("content/a.page") == generate_content_id("content/a.page")

    def test_prefix_and_uniqueness(self):
        first = generate_content_id("content/a.page", prefix="f")
        assert first.startswith("f")
        assert first != generate_content_id("content/b.page", prefix="f")


class TestFolderSortKey:
    """Tests for content ordering"""

    def test_position_first(self):
        assert folder_sort_key(Path("z.page"), {"position": -1}) < folder_sort_key(Path("01-a.page"), {})

    def test_numeric_prefix_before_plain(self):
        assert folder_sort_key(Path("02-b.page"), {}) < folder_sort_key(Path("a.page"), {})

    def test_invalid_position_ignored(self):
        assert folder_sort_key(Path("a.page"), {"position": "soon"}) == (2, 0, "a.page")


class TestDecodeDirectory:
    """Tests for decoding a course folder"""

    def test_title_from_config(self, sample_course):
        cartridge = CourseDirectoryDecoder(sample_course).decode("epub")
        assert cartridge["title"] == "Intro to Biology"

    def test_title_override(self, sample_course):
        cartridge = CourseDirectoryDecoder(sample_course, title="Biology 101").decode("epub")
        assert cartridge["title"] == "Biology 101"

    def test_title_optional(self, temp_course_dir):
        cartridge = CourseDirectoryDecoder(temp_course_dir).decode("epub")
        assert cartridge["title"] is None
        assert cartridge["modules"] == []

    def test_groups(self, sample_course):
        cartridge = CourseDirectoryDecoder(sample_course).decode("epub")

        assert set(_by_title(cartridge["pages"])) == {"Course Overview"}
        assert set(_by_title(cartridge["assignments"])) == {"Lab Report", "Draft Essay"}
        assert set(_by_title(cartridge["topics"])) == {"Introductions"}
        assert set(_by_title(cartridge["quizzes"])) == {"Cells Quiz"}
        assert set(_by_title(cartridge["announcements"])) == {"Welcome!"}

    def test_record_fields(self, sample_course):
        cartridge = CourseDirectoryDecoder(sample_course).decode("epub")
        lab = _by_title(cartridge["assignments"])["Lab Report"]

        assert lab["identifier"].startswith("i")
        assert lab["points_possible"] == 20
        assert lab["due_at"] == "2026-01-10"
        assert lab["published"] is True
        assert "<p>Write up your observations.</p>" in lab["text"]

    def test_links_become_placeholders(self, sample_course):
        cartridge = CourseDirectoryDecoder(sample_course).decode("epub")
        lab = _by_title(cartridge["assignments"])["Lab Report"]
        overview = cartridge["pages"][0]

        assert f'href="$CANVAS_OBJECT_REFERENCE$/assignments/{lab["identifier"]}"' in overview["text"]
        assert 'src="$IMS-CC-FILEBASE$/images/cell.png"' in overview["text"]

    def test_files_and_unsupported(self, sample_course):
        decoder = CourseDirectoryDecoder(sample_course)
        cartridge = decoder.decode("epub")

        assert [f["path"] for f in cartridge["files"]] == ["images/cell.png"]
        assert cartridge["files"][0]["media_type"] == "image/png"
        assert [f["path"] for f in decoder.unsupported_files] == ["lecture.docx"]

    def test_html_keeps_all_files(self, sample_course):
        decoder = CourseDirectoryDecoder(sample_course)
        cartridge = decoder.decode("html")

        assert {f["path"] for f in cartridge["files"]} == {"images/cell.png", "lecture.docx"}
        assert decoder.unsupported_files == []

    def test_unsupported_files_before_decode(self, sample_course):
        assert CourseDirectoryDecoder(sample_course).unsupported_files is None

    def test_modules(self, sample_course):
        cartridge = CourseDirectoryDecoder(sample_course).decode("epub")
        modules = cartridge["modules"]

        assert [m["title"] for m in modules] == ["Week 1: Cells", "Week 2: Genetics"]
        week1 = [item["title"] for item in modules[0]["items"]]
        assert week1 == ["Course Overview", "Lab Report"]
        assert modules[1]["items"][0]["linked_resource_type"] in ("Quizzes::Quiz", "DiscussionTopic")

    def test_syllabus(self, sample_course):
        cartridge = CourseDirectoryDecoder(sample_course).decode("epub")
        syllabus = cartridge["syllabus"]

        assert [entry["title"] for entry in syllabus] == [
            "Introductions", "Lab Report", "Draft Essay", "Cells Quiz",
        ]
        hidden = {entry["title"] for entry in syllabus if entry["hidden"]}
        assert hidden == {"Introductions", "Draft Essay"}

    def test_invalid_export_type(self, sample_course):
        with pytest.raises(ConfigurationError):
            CourseDirectoryDecoder(sample_course).decode("pdf")

    def test_missing_source(self, tmp_path):
        with pytest.raises(CourseLoadError):
            CourseDirectoryDecoder(tmp_path / "nope").decode("epub")

    def test_legacy_pages_dir(self, tmp_path):
        folder = tmp_path / "pages" / "hello.page"
        folder.mkdir(parents=True)
        (folder / "index.md").write_text('---\nname: "Hello"\n---\n\nHi.\n')

        cartridge = CourseDirectoryDecoder(tmp_path).decode("epub")

        assert cartridge["pages"][0]["title"] == "Hello"

    def test_meta_json_fallback(self, tmp_path):
        folder = tmp_path / "content" / "legacy.page"
        folder.mkdir(parents=True)
        (folder / "meta.json").write_text('{"name": "Legacy Page"}')
        (folder / "source.md").write_text("Old **content**.")

        cartridge = CourseDirectoryDecoder(tmp_path).decode("epub")

        assert "<strong>content</strong>" in cartridge["pages"][0]["text"]

    def test_links_between_same_named_folders(self, temp_course_dir):
        root = temp_course_dir
        write_item(root, "week1/intro.page", 'name: "Week 1 intro"')
        write_item(root, "week2/intro.page", 'name: "Week 2 intro"')
        write_item(root, "week1/task.assignment", 'name: "Task"',
                   "Read the [intro](../intro.page) first.\n")
        write_item(root, "week2/reading.page", 'name: "Reading"',
                   "Back to the [intro](intro.page).\n")
        write_item(root, "overview.page", 'name: "Overview"',
                   "See [an intro](intro.page).\n")

        cartridge = CourseDirectoryDecoder(root).decode("epub")
        pages = _by_title(cartridge["pages"])
        task = _by_title(cartridge["assignments"])["Task"]

        week1_id = pages["Week 1 intro"]["identifier"]
        week2_id = pages["Week 2 intro"]["identifier"]
        assert f'href="$WIKI_REFERENCE$/pages/{week1_id}"' in task["text"]
        assert f'href="$WIKI_REFERENCE$/pages/{week2_id}"' in pages["Reading"]["text"]
        # Two folders share the name, so a bare link from elsewhere is left alone
        assert 'href="intro.page"' in pages["Overview"]["text"]

    def test_single_module_name(self, temp_course_dir):
        write_item(temp_course_dir, "notes.page", 'name: "Notes"\nmodules: "Week 1"')

        cartridge = CourseDirectoryDecoder(temp_course_dir).decode("epub")

        assert cartridge["pages"][0]["modules"] == ["Week 1"]
        assert [m["title"] for m in cartridge["modules"]] == ["Week 1"]
        assert len(cartridge["modules"][0]["items"]) == 1


class TestModuleOrder:
    """Tests for module_order.yaml parsing"""

    def test_dict_format(self, temp_course_dir):
        (temp_course_dir / "modules" / "module_order.yaml").write_text("modules:\n  - A\n  - B\n")
        assert load_module_order(temp_course_dir) == ["A", "B"]

    def test_list_format(self, temp_course_dir):
        (temp_course_dir / "modules" / "module_order.yaml").write_text("- A\n")
        assert load_module_order(temp_course_dir) == ["A"]

    def test_missing(self, temp_course_dir):
        assert load_module_order(temp_course_dir) == []


class TestDecodeArchive:
    """Tests for zipped courses"""

    def _zip(self, course: Path, target: Path, prefix: str = "bio-101/") -> Path:
        with zipfile.ZipFile(target, "w") as zf:
            for path in course.rglob("*"):
                if path.is_file():
                    zf.write(path, prefix + path.relative_to(course).as_posix())
        return target

    def test_extract_and_teardown(self, sample_course, tmp_path):
        archive = self._zip(sample_course, tmp_path / "bio-101.zip")
        decoder = CourseDirectoryDecoder(archive)

        cartridge = decoder.decode("epub")
        extract_dir = decoder._extract_dir

        assert cartridge["title"] == "Intro to Biology"
        assert len(cartridge["assignments"]) == 2
        assert extract_dir.exists()

        decoder.teardown()
        assert not extract_dir.exists()
        decoder.teardown()

    def test_unsafe_member(self, tmp_path):
        archive = tmp_path / "evil.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("../escape.txt", "nope")

        decoder = CourseDirectoryDecoder(archive)
        with pytest.raises(CourseLoadError):
            decoder.decode("epub")
        decoder.teardown()

    def test_bad_archive(self, tmp_path):
        archive = tmp_path / "broken.zip"
        archive.write_bytes(b"not a zip")

        with pytest.raises(CourseLoadError):
            CourseDirectoryDecoder(archive).decode("epub")

    def test_exporter_cleans_up_archive(self, sample_course, tmp_path):
        archive = self._zip(sample_course, tmp_path / "bio-101.zip")

        with Exporter(archive) as exporter:
            exporter.templates()
            extract_dir = exporter._decoder._extract_dir
            assert extract_dir.exists()

        assert not extract_dir.exists()
