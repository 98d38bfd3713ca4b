"""
Render Parameter Normalization
Maps loosely-typed form values onto the values the provider accepts.
"""

import re
from typing import Iterable, Optional

from vidlock.core.errors import InvalidRequest

SIZE_PATTERN = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")
BASELINE_SIZE = "1280x720"
MAX_DIMENSION = 4096
ASSET_TYPES = ("video", "thumbnail", "audio")


def normalize_prompt(prompt: Optional[str]) -> str:
    text = (prompt or "").strip()
    if not text:
        raise InvalidRequest("Empty prompt")
    return text


def normalize_seconds(value, allowed: Iterable[str], default: Optional[str] = None) -> str:
    """Return value if it is an allowed duration, else the default (shortest) one."""
    allowed = [str(a) for a in allowed]
    if default is None:
        default = allowed[0] if allowed else "4"
    if value is None:
        return default
    text = str(value).strip()
    try:
        number = float(text)
    except ValueError:
        return default
    if number.is_integer():
        text = str(int(number))
    return text if text in allowed else default


def normalize_size(value, default: str = BASELINE_SIZE, max_dimension: int = MAX_DIMENSION) -> str:
    """Canonical 'WIDTHxHEIGHT' with positive integers up to max_dimension, else the default size."""
    match = SIZE_PATTERN.match(str(value or ""))
    if not match:
        return default
    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0 or width > max_dimension or height > max_dimension:
        return default
    return f"{width}x{height}"


def normalize_model(value, allowed: Iterable[str], default: str) -> str:
    text = str(value or "").strip()
    return text if text in set(allowed) else default


def normalize_fit(value, default: str = "cover") -> str:
    text = str(value or "").strip().lower()
    return text if text in ("cover", "contain") else default


def parse_flag(value) -> bool:
    """Interpret checkbox-style form values."""
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


def normalize_asset_type(value) -> str:
    text = str(value or "video").strip().lower()
    if text not in ASSET_TYPES:
        raise InvalidRequest(f"Unsupported content type '{value}'. Use one of: {', '.join(ASSET_TYPES)}")
    return text
