"""Environment loader utilities.

Lets AGGREGRAPH_* settings live in a local `.env` file instead of the shell
profile. Only plain KEY=VALUE assignments are understood; there is no
variable expansion.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, MutableMapping, Optional

logger = logging.getLogger(__name__)


def parse_dotenv(text: str) -> Dict[str, str]:
    """Parse .env content into a dict.

    Blank lines and '#' comments are skipped, an optional leading ``export``
    is accepted, and one pair of surrounding quotes is stripped. Unquoted
    values lose a trailing `` # comment``.
    """
    values: Dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue

        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        elif " #" in value:
            value = value.split(" #", 1)[0].rstrip()
        values[key] = value
    return values


def load_dotenv(
    path: str | os.PathLike[str] = ".env",
    *,
    override: bool = False,
    environ: Optional[MutableMapping[str, str]] = None,
) -> bool:
    """Load environment variables from a .env file.

    Args:
        path: Path to .env file (default: ".env" in current working directory).
        override: If True, overwrite keys that are already set.
        environ: Mapping to update (default: os.environ).

    Returns:
        True if a file was found and parsed; False if file does not exist.
    """
    p = Path(path)
    if not p.is_file():
        return False

    target = os.environ if environ is None else environ
    loaded = 0
    for key, value in parse_dotenv(p.read_text(encoding="utf-8", errors="ignore")).items():
        if not override and key in target:
            continue
        target[key] = value
        loaded += 1

    logger.debug(f"Loaded {loaded} variable(s) from {p}")
    return True
