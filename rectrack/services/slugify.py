# rectrack/services/slugify.py
import re

_WHITESPACE_RE = re.compile(r"\s+")


def category_slug(label: str) -> str:
    """Turn a category label into its slug: trimmed, lower-case, whitespace runs become one hyphen."""
    return _WHITESPACE_RE.sub("-", label.strip().lower())
