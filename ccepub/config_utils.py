# config_utils.py - YAML Configuration System for ccepub
"""
ccepub configuration utilities with YAML file support.

Configuration Resolution Order (highest to lowest priority):
1. Environment variables (CCEPUB_SORT_BY_CONTENT, CCEPUB_EXPORT_TYPE, etc.)
2. ccepub.yaml in course root
3. ~/.ccepub/config.yaml (global defaults)

Usage:
    from ccepub.config_utils import get_config

    config = get_config()
    print(config.export_type)
    print(config.sort_by_content)
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

import yaml

from ccepub.errors import invalid_export_type_error


EXPORT_TYPES = ["epub", "html"]

TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class EpubConfig:
    """Complete export configuration"""
    # Course title override (decoded title is used when unset)
    title: Optional[str] = None

    # Organize content by type instead of by module
    sort_by_content: bool = False

    # epub | html
    export_type: str = "epub"

    # Where `ccepub export` writes its output
    output_dir: Optional[Path] = None

    # Paths (resolved at load time)
    course_root: Optional[Path] = None

    # Extra settings from config file
    extra: Dict[str, Any] = field(default_factory=dict)

    # Track where values came from (for debugging)
    _sources: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> list[str]:
        """Return a list of configuration problems (empty when valid)"""
        issues = []
        if self.export_type not in EXPORT_TYPES:
            issues.append(f"export_type must be one of {EXPORT_TYPES}, got {self.export_type!r}")
        return issues


class ConfigLoader:
    """Load configuration from multiple sources"""

    def __init__(self, course_dir: Optional[Path] = None):
        self.course_dir = Path(course_dir) if course_dir else Path.cwd()
        self.config = EpubConfig(course_root=self.course_dir)

    def load(self) -> EpubConfig:
        """Load configuration from all sources in priority order"""
        # Lowest priority first, later sources overwrite
        self._load_global_config()
        self._load_yaml_config()
        self._load_env_vars()

        if self.config.validate():
            raise invalid_export_type_error(self.config.export_type, EXPORT_TYPES)

        return self.config

    def _load_global_config(self):
        """Load ~/.ccepub/config.yaml if it exists"""
        global_config = Path.home() / ".ccepub" / "config.yaml"
        if global_config.exists():
            self._load_yaml_file(global_config, "global")

    def _load_yaml_config(self):
        """Load ccepub.yaml from course root"""
        yaml_path = self.course_dir / "ccepub.yaml"
        if yaml_path.exists():
            self._load_yaml_file(yaml_path, "ccepub.yaml")

    def _load_yaml_file(self, path: Path, source_name: str):
        """Load settings from a YAML file"""
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            print(f"[config:warn] Failed to parse {path}: {e}")
            return

        if not isinstance(data, dict):
            print(f"[config:warn] Ignoring {path}: expected a mapping at top level")
            return

        if data.get("title") or data.get("course_name"):
            self.config.title = str(data.get("title") or data.get("course_name"))
            self.config._sources["title"] = source_name

        if "sort_by_content" in data:
            self.config.sort_by_content = bool(data["sort_by_content"])
            self.config._sources["sort_by_content"] = source_name

        if data.get("export_type"):
            self.config.export_type = str(data["export_type"]).lower()
            self.config._sources["export_type"] = source_name

        if data.get("output_dir"):
            self.config.output_dir = Path(data["output_dir"]).expanduser()
            self.config._sources["output_dir"] = source_name

        known_keys = {"title", "course_name", "sort_by_content", "export_type", "output_dir"}
        for key, value in data.items():
            if key not in known_keys:
                self.config.extra[key] = value

    def _load_env_vars(self):
        """Load from environment variables (highest priority)"""
        if os.environ.get("CCEPUB_TITLE"):
            self.config.title = os.environ["CCEPUB_TITLE"]
            self.config._sources["title"] = "env:CCEPUB_TITLE"

        sort_by_content = os.environ.get("CCEPUB_SORT_BY_CONTENT")
        if sort_by_content is not None:
            self.config.sort_by_content = sort_by_content.lower() in TRUTHY
            self.config._sources["sort_by_content"] = "env:CCEPUB_SORT_BY_CONTENT"

        if os.environ.get("CCEPUB_EXPORT_TYPE"):
            self.config.export_type = os.environ["CCEPUB_EXPORT_TYPE"].lower()
            self.config._sources["export_type"] = "env:CCEPUB_EXPORT_TYPE"

        if os.environ.get("CCEPUB_OUTPUT_DIR"):
            self.config.output_dir = Path(os.environ["CCEPUB_OUTPUT_DIR"]).expanduser()
            self.config._sources["output_dir"] = "env:CCEPUB_OUTPUT_DIR"


# ============================================================================
# Public API
# ============================================================================

def get_config(course_dir: Optional[Path] = None) -> EpubConfig:
    """
    Get complete export configuration.

    Args:
        course_dir: Course directory (defaults to cwd)

    Returns:
        EpubConfig with all settings resolved

    Raises:
        ConfigurationError: If the configured export type is unknown
    """
    loader = ConfigLoader(course_dir)
    return loader.load()


def create_config_template(include_comments: bool = True) -> str:
    """
    Generate a ccepub.yaml template.

    Args:
        include_comments: Whether to include explanatory comments

    Returns:
        YAML string ready to write to file
    """
    if include_comments:
        return '''# ccepub Configuration File

# Course title (defaults to the title found in the course content)
# title: Intro to Biology

# Group content by type (assignments, discussions, quizzes, pages)
# instead of by module. Courses without modules always group by type.
sort_by_content: false

# epub drops files an EPUB reader cannot display; html keeps everything
export_type: epub

# Where exported documents are written
output_dir: exports
'''
    else:
        return '''sort_by_content: false
export_type: epub
output_dir: exports
'''
