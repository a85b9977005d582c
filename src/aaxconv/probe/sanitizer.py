"""Normalize raw tag values for filenames and ffmpeg metadata arguments."""

EDITION_MARKER = "(Unabridged)"


def sanitize(raw: str | None) -> str:
    """Clean a raw tag value.

    Order matters: slashes go first (they would split a path segment), then
    the redundant edition marker, then whitespace is trimmed and collapsed.
    """
    if not raw:
        return ""

    value = raw.replace("/", "")

    # Removing one marker can join the halves of another around it
    while EDITION_MARKER in value:
        value = value.replace(EDITION_MARKER, "")

    return " ".join(value.split())


def sanitize_title(raw: str | None) -> str:
    """Sanitize a title and make it filename friendly ("Book: Part" -> "Book-Part")."""
    return sanitize(raw).replace(":", "-").replace("- ", "-")
