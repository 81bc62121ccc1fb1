from aiogram.utils.formatting import Bold, Code, Text, TextLink

_UNITS = ("B", "KB", "MB", "GB", "TB")


def human_bytes(n) -> str:
    """Binary-unit size for display; the proxy sometimes sends sizes as strings."""
    if n is None:
        return "?"
    size = float(n)
    for unit in _UNITS[:-1]:
        if size < 1024:
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} {_UNITS[-1]}"


def format_file_message(info: dict) -> Text:
    """Card sent back to the user once a share is resolved."""
    return Text(
        "✅ ", Bold("File found"), "\n\n",
        Code(info.get("filename") or "unknown"), "\n",
        f"Size: {human_bytes(info.get('size'))}", "\n\n",
        "🔗 ", TextLink("Direct download", url=info["download_url"]),
    )


def format_error_message(error: Exception, admin: str) -> Text:
    return Text(
        "❌ Could not resolve link. Contact ", admin, "\n\n",
        Code(str(error)),
    )
