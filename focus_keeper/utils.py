import os


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def seconds_to_mmss(seconds: float) -> str:
    seconds = max(0, int(seconds))
    m, s = divmod(seconds, 60)
    return f"{m:02d}:{s:02d}"


def format_hms(seconds: float) -> str:
    seconds = max(0, int(seconds))
    h, rest = divmod(seconds, 3600)
    m, s = divmod(rest, 60)
    return f"{h}:{m:02d}:{s:02d}"


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))