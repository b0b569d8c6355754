"""Data normalization utilities for consistent data quality."""

import re
from typing import Optional


def normalize_email(email: Optional[str]) -> Optional[str]:
    """
    Normalize email to lowercase.

    Args:
        email: Raw email input

    Returns:
        Lowercased email or None if empty
    """
    if not email:
        return None
    return email.strip().lower()


def normalize_name(name: Optional[str]) -> Optional[str]:
    """
    Normalize name by stripping whitespace and collapsing multiple spaces.

    Args:
        name: Raw name input

    Returns:
        Cleaned name or None if empty
    """
    if not name:
        return None
    return " ".join(name.split())


def normalize_team_name(name: Optional[str]) -> Optional[str]:
    """Team names compare case-sensitively but never carry stray whitespace."""
    cleaned = normalize_name(name)
    return cleaned or None


def escape_like_string(value: str) -> str:
    """Escape LIKE wildcards so user search text matches literally (escape char: backslash)."""
    return re.sub(r"([\\%_])", r"\\\1", value.strip())


def like_pattern(value: str) -> str:
    """Build a contains-pattern for ilike(..., escape='\\')."""
    return f"%{escape_like_string(value)}%"
