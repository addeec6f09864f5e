"""Utilities for generating filesystem-safe slugs."""

import re
import unicodedata

DEFAULT_SLUG = "issue"


def slugify(text: str) -> str:
    """
    Convert text to a filesystem-safe slug.

    Example: "Fix Login Bug!" -> "fix-login-bug"
    """
    # Normalize unicode characters
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")

    text = text.strip().lower()

    # Any run of non-alphanumerics becomes a single hyphen
    text = re.sub(r"[^a-z0-9]+", "-", text)

    return text.strip("-")


def slug_or_default(text: str) -> str:
    """Slugify a title, falling back to a fixed slug for empty titles."""
    return slugify(text) or DEFAULT_SLUG
