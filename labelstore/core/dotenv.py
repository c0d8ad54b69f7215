"""
Lightweight .env file loader.

Used by the bootstrap entry point and by `labelstore.core.config` when
`ENV_FILE` is set. Lines look like `KEY=value`; `export KEY=value`,
quoted values and trailing `# comments` on unquoted values are accepted.

Usage:
    from labelstore.core.dotenv import load_env_file

    load_env_file(".env", overwrite=False)
"""

from __future__ import annotations

import os
from pathlib import Path

_QUOTES = ('"', "'")


def _clean_value(value: str) -> str:
    """Strip an inline comment from an unquoted value, or the quotes from a quoted one."""
    value = value.strip()
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        return value[1:-1]
    if value and value[0] in _QUOTES:
        return value

    for marker in (" #", "\t#"):
        idx = value.find(marker)
        if idx != -1:
            value = value[:idx]
    return value.rstrip()


def parse_env_line(line: str) -> tuple[str, str] | None:
    """Parse a single line from a .env file.

    Returns:
        Tuple of (key, value) or None if the line carries no assignment.
    """
    line = line.strip()
    if not line or line.startswith("#") or "=" not in line:
        return None

    key, value = line.split("=", 1)
    key = key.strip()
    if key.startswith("export "):
        key = key[len("export ") :].strip()
    if not key:
        return None

    return key, _clean_value(value)


def load_env_file(path: str | Path | None = None, overwrite: bool = False) -> dict[str, str]:
    """Load environment variables from a .env file.

    A missing file is not an error; nothing is loaded.

    Args:
        path: Path to the file. Defaults to ".env" in the working directory.
        overwrite: Replace variables already present in the environment.

    Returns:
        The variables that were set.
    """
    env_path = Path(path) if path is not None else Path(".env")
    loaded: dict[str, str] = {}

    if not env_path.is_file():
        return loaded

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        parsed = parse_env_line(raw_line)
        if parsed is None:
            continue

        key, value = parsed
        if not overwrite and key in os.environ:
            continue

        os.environ[key] = value
        loaded[key] = value

    return loaded
