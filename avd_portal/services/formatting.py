_SIZE_UNITS = ["B", "KB", "MB", "GB"]


def format_bytes(size) -> str:
    if not size:
        return "0 B"
    value = float(size)
    i = 0
    while value >= 1024 and i < len(_SIZE_UNITS) - 1:
        value /= 1024
        i += 1
    # one decimal, trailing ".0" dropped: 1536 -> "1.5 KB", 2048 -> "2 KB"
    text = f"{value:.1f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[i]}"


def format_duration(seconds) -> str:
    seconds = int(seconds or 0)
    if seconds < 60:
        return f"{seconds}s"
    m, s = divmod(seconds, 60)
    return f"{m}m {s}s"
