"""
Common utilities for varcache.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def parseDelay(delayStr: str) -> int:
    """
    Parse compact delay string into seconds.

    Args:
        delayStr: String in one of formats:
            1. `DDdHHhMMmSSs` (e.g., "1d2h30m15s") - each section is optional but at least one must be present
            2. `HH:MM[:SS]` (e.g., "2:30" or "2:30:15")

    Returns:
        Total delay in seconds as integer.

    Raises:
        ValueError: If the string doesn't match any supported format.
    """
    if any(c in delayStr for c in ("d", "h", "m", "s")):
        try:
            totalSeconds = 0
            remaining = delayStr

            for unit, multiplier in (("d", 86400), ("h", 3600), ("m", 60), ("s", 1)):
                if unit in remaining:
                    unitIndex = remaining.index(unit)
                    totalSeconds += int(remaining[:unitIndex]) * multiplier
                    remaining = remaining[unitIndex + 1 :]

            if remaining == "":
                return totalSeconds

        except (ValueError, IndexError):
            pass  # Will try next format

    timeParts = delayStr.split(":")
    if 2 <= len(timeParts) <= 3:
        try:
            hours = int(timeParts[0])
            minutes = int(timeParts[1])
            seconds = int(timeParts[2]) if len(timeParts) == 3 else 0

            if 0 <= minutes < 60 and 0 <= seconds < 60:
                return hours * 3600 + minutes * 60 + seconds

        except ValueError:
            pass  # Will raise ValueError at end

    raise ValueError(f"Invalid delay format: {delayStr}. Expected formats: '[DDd][HHh][MMm][SSs]' or 'HH:MM[:SS]'")


def jsonDumps(data: Any, compact: Optional[bool] = None, **kwargs) -> str:
    """
    Dump data to JSON string, dood!

    Non-ASCII text is kept as is, values JSON cannot represent are
    stringified, keys are sorted unless sort_keys=False is passed.
    Output is compact unless indent is given.
    """
    dumpKwargs = {
        "ensure_ascii": False,
        "default": str,
        "sort_keys": True,
    }

    if compact is None:
        # If indent is passed, then user want pretty-printed JSON,
        #  no need to use compact separators
        compact = "indent" not in kwargs

    if compact:
        dumpKwargs["separators"] = (",", ":")
    dumpKwargs.update(kwargs)
    return json.dumps(data, **dumpKwargs)


def load_dotenv(path: str = ".env", populateEnv: bool = True) -> Dict[str, str]:
    """
    Simple dotenv file loader.
    Read file line by line and put KEY=value pairs into dictionary.
    Missing file is not an error.

    Args:
        path: Path to .env file (default ".env")
        populateEnv: Whether to populate environment variables (default True),
            variables already set in the environment win

    Returns:
        Dictionary of key-value pairs from .env file
    """
    ret: Dict[str, str] = {}
    if not os.path.isfile(path):
        logger.debug(f"No dotenv file at {path}, skipping")
        return ret

    with open(path, "rt") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            splittedLine = line.split("=", 1)
            if len(splittedLine) == 2:
                key, value = splittedLine
                ret[key.strip()] = value.strip().strip('"')

    if populateEnv:
        for k, v in ret.items():
            os.environ.setdefault(k, v)
    return ret
