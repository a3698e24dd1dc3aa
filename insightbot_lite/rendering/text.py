"""Text helpers shared by the chart renderers and the markup composer."""

FONT = "-apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif"
ELLIPSIS = "…"


def escape_markup(value: object) -> str:
    """Escape the five reserved markup characters in ``value``'s string form."""
    return (
        str(value)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def truncate(value: object, max_chars: int) -> str:
    """Cut ``value`` to ``max_chars`` characters, ending with an ellipsis when cut."""
    text = str(value)
    if len(text) > max_chars:
        return text[: max_chars - 1] + ELLIPSIS
    return text
