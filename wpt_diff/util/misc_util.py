import json
import os
from typing import Any


def touch(file_path: str):
    """Creates an empty file (and its directory) if it doesn't exist yet."""
    directory = os.path.dirname(file_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    if not os.path.exists(file_path):
        with open(file_path, 'a', encoding='utf-8'):
            pass


def to_json(data: Any) -> str:
    """Serializes report data the way every WPT-diff artifact is written."""
    return json.dumps(data, indent=2, ensure_ascii=False)


def write_json(file_path: str, data: Any):
    """
    Writes data as pretty-printed JSON, creating parent directories as needed.

    Args:
        file_path: Destination path.
        data: Any JSON-serializable object.
    """
    directory = os.path.dirname(file_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(file_path, 'w', encoding='utf-8') as f:
        f.write(to_json(data))


def read_json(file_path: str) -> Any:
    with open(file_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def format_duration(seconds: float) -> str:
    """Formats a duration in a human-readable way."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, seconds = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {seconds}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m {seconds}s"
