# errors.py
"""
# ccepub
# Copyright (c) 2026 Dale Chapman
# Licensed under the MIT License. See LICENSE in the project root.

Custom exception classes for the e-book export pipeline

All exceptions include:
- Clear error description
- Actionable suggestions
- Relevant context
"""
from pathlib import Path
from typing import Optional, Dict, Any


class EpubExportError(Exception):
    """Base exception for all ccepub errors"""

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        self.cause = cause
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error with all details"""
        lines = [
            "",
            "=" * 70,
            f"[x] {self.__class__.__name__}",
            "=" * 70,
            "",
            self.message,
        ]

        if self.context:
            lines.append("")
            lines.append("Context:")
            for key, value in self.context.items():
                lines.append(f"  {key}: {value}")

        if self.suggestion:
            lines.append("")
            lines.append("Suggestion:")
            lines.append(f"  {self.suggestion}")

        if self.cause:
            lines.append("")
            lines.append(f"Caused by: {type(self.cause).__name__}: {self.cause}")

        lines.append("")
        lines.append("=" * 70)
        lines.append("")

        return "\n".join(lines)


class ConfigurationError(EpubExportError):
    """Configuration is missing or invalid"""
    pass


class CourseLoadError(EpubExportError):
    """Course content could not be decoded"""
    pass


class UnknownResourceTypeError(EpubExportError):
    """Resource key outside the known set of resource types"""
    pass


# Specific error factory functions

def unknown_resource_type_error(resource: Any, known: list[str]) -> UnknownResourceTypeError:
    """Create error for a resource key with no template"""
    return UnknownResourceTypeError(
        message=f"Unknown resource type: {resource!r}",
        suggestion=(
            "Use one of the known resource keys:\n" +
            "\n".join(f"  - {key}" for key in known)
        ),
        context={
            "resource": resource,
        }
    )


def course_not_found_error(source: Path) -> CourseLoadError:
    """Create error when the course source does not exist"""
    return CourseLoadError(
        message=f"Course source not found: {source}",
        suggestion=(
            "Pass a course directory (containing content/ or pages/)\n"
            "or a .zip archive of one."
        ),
        context={
            "source": str(source),
        }
    )


def unsafe_archive_member_error(
    archive: Path,
    member: str
) -> CourseLoadError:
    """Create error when a zip member would extract outside the target"""
    return CourseLoadError(
        message=f"Refusing to extract unsafe archive member: {member}",
        suggestion="Re-create the archive without absolute paths or '..' entries",
        context={
            "archive": str(archive),
            "member": member,
        }
    )


def bad_archive_error(archive: Path, cause: Optional[Exception] = None) -> CourseLoadError:
    """Create error for an archive that cannot be opened"""
    return CourseLoadError(
        message=f"Could not open course archive: {archive.name}",
        suggestion="Check that the file is a valid .zip archive",
        context={
            "archive": str(archive),
        },
        cause=cause
    )


def invalid_export_type_error(
    export_type: str,
    valid_types: list[str]
) -> ConfigurationError:
    """Create error for an unsupported export type"""
    return ConfigurationError(
        message=f"Invalid export type: {export_type}",
        suggestion=(
            "Set export_type in ccepub.yaml (or CCEPUB_EXPORT_TYPE) to one of:\n" +
            "\n".join(f"  - {t}" for t in valid_types)
        ),
        context={
            "export_type": export_type,
            "valid_types": valid_types
        }
    )
