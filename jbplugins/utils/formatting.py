"""Text formatting helpers for terminal output."""


def format_number(num: int) -> str:
    """Format a count with K/M suffixes (e.g. 1.2M, 3.4K)."""
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(num)


def truncate(text: str | None, max_len: int) -> str:
    """Shorten text to max_len characters, ending with an ellipsis if cut."""
    if not text:
        return ""
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"


def format_plugin_label(name: str, organization: str | None, downloads: int | None) -> str:
    """One-line label for a plugin in pick lists.

    Args:
        name: Display name
        organization: Publisher; omitted when empty or unknown
        downloads: Download count; omitted when zero or missing

    Returns:
        e.g. "Rainbow Brackets by izhangzhihao [12.3M downloads]"
    """
    label = name or "Unknown Plugin"
    if organization and organization != "Unknown":
        label += f" by {organization}"
    if downloads:
        label += f" [{format_number(downloads)} downloads]"
    return label
