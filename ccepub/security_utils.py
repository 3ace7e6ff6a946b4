#!/usr/bin/env python3
"""
security_utils.py (ccepub)

Shared helpers for turning course text into safe file names and for
validating paths while unpacking course archives.
"""

from __future__ import annotations

import re
from pathlib import Path


# ============================================================================
# Path Validation and Sanitization
# ============================================================================

# Characters rejected by at least one common filesystem, plus control chars
UNSAFE_PATH_CHARS_RE = re.compile(r'[/\\?%*:|"\'<>\x00-\x1f\x7f]')


def is_safe_path(base_dir: Path, target_path: Path) -> bool:
    """
    Check if target_path is safely within base_dir (no symlink escape).

    Prevents path traversal attacks via symlinks or ../ sequences.

    Args:
        base_dir: The allowed base directory
        target_path: The path to validate

    Returns:
        True if target is within base (safe), False otherwise
    """
    try:
        base_resolved = base_dir.resolve()
        target_resolved = target_path.resolve()

        target_resolved.relative_to(base_resolved)
        return True
    except ValueError:
        return False


def path_safe(text: str) -> str:
    """
    Strip characters that cannot appear in a file name component.

    Unlike a slug, case and inner spaces are kept so the result still
    reads like the original title. Runs of whitespace collapse to one
    space and leading dots are dropped so the name is never hidden or a
    parent-directory reference.

    Args:
        text: Arbitrary user-facing text (e.g. a course title)

    Returns:
        Text safe to use as a single path component (may be empty)
    """
    if not text:
        return ""

    safe = UNSAFE_PATH_CHARS_RE.sub("", text)
    safe = re.sub(r"\s+", " ", safe).strip()
    return safe.lstrip(".").strip()


def truncate_text(text: str, max_length: int, ellipsis: str = "...") -> str:
    """
    Shorten text to at most max_length characters, ellipsis included.

    Cuts at the last word boundary inside the limit when there is one,
    otherwise mid-word.
    """
    if len(text) <= max_length:
        return text

    actual_length = max_length - len(ellipsis)
    if actual_length <= 0:
        return ellipsis[:max_length]

    truncated = text[:actual_length]
    if not text[actual_length].isspace() and not truncated[-1].isspace():
        boundary = truncated.rfind(" ")
        if boundary > 0:
            truncated = truncated[:boundary]
    return truncated.rstrip() + ellipsis
