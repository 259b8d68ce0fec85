import logging
import math
from typing import Optional

import pendulum

logger = logging.getLogger(__name__)


def parse_colon_duration(text: str) -> Optional[int]:
    '''"H:MM:SS", "MM:SS" or "SS" (fractional seconds allowed) to whole seconds.'''
    parts = text.strip().split(':')
    if not parts or len(parts) > 3 or any(p.strip() == '' for p in parts):
        return None
    try:
        numbers = [float(p) for p in parts]
    except ValueError:
        return None
    if any(n < 0 or not math.isfinite(n) for n in numbers):
        return None

    seconds = 0.0
    for n in numbers:
        seconds = seconds * 60 + n
    if not math.isfinite(seconds):
        return None
    return int(seconds)


def parse_iso_duration(text: str) -> Optional[int]:
    '''ISO-8601 duration such as "PT1H2M3.5S" to whole seconds.'''
    try:
        parsed = pendulum.parse(text.strip())
    except ValueError as e:
        logger.debug(f'Unparsable ISO duration "{text}": {e}')
        return None
    if not isinstance(parsed, pendulum.Duration):
        return None
    return int(parsed.total_seconds())


def parse_duration_seconds(value: object) -> Optional[int]:
    '''Parse either duration encoding Dink sends. None means "no duration".'''
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) and value >= 0 else None
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.upper().startswith('P'):
        return parse_iso_duration(text.upper())
    return parse_colon_duration(text)
