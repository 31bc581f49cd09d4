"""
Numeric coercion shared by PFMT extraction and project writes.

Financial fields must always hold finite numbers, so anything that cannot be
read as one collapses to 0 instead of raising.
"""

import logging
import math
import re
from decimal import Decimal
from typing import Any, Union

logger = logging.getLogger(__name__)

Number = Union[int, float]

_LEADING_NUMBER = re.compile(r'[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')


def is_number(value: Any) -> bool:
    """True for int/float/Decimal values; booleans are not numbers here."""
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def parse_float(value: Any) -> float:
    """
    Parse the leading decimal number of a string.

    Surrounding text is ignored, so '1500 CAD' reads as 1500 and '1_000'
    as 1. Strings without a leading number do not parse.

    Args:
        value: Any cell or payload value

    Returns:
        Parsed finite float

    Raises:
        ValueError: If the value has no finite float reading
    """
    if is_number(value):
        text = str(value)
    elif isinstance(value, str):
        text = value
    else:
        raise ValueError(f"Not a numeric value: {value!r}")

    match = _LEADING_NUMBER.match(text.strip())
    if match is None:
        raise ValueError(f"No leading number in {value!r}")

    result = float(match.group(0))
    if not math.isfinite(result):
        raise ValueError(f"Non-finite numeric value: {value!r}")
    return result


def coerce_number(value: Any, field: str = '') -> Number:
    """
    Coerce a value to a finite number, defaulting to 0.

    Numbers pass through unchanged (Decimal becomes float, NaN/inf become 0).
    Strings are read by their leading number; anything else yields 0.
    """
    if is_number(value):
        value = float(value) if isinstance(value, Decimal) else value
        if isinstance(value, float) and not math.isfinite(value):
            logger.debug(f"Non-finite value for {field or 'value'} replaced with 0")
            return 0
        return value

    try:
        return parse_float(value)
    except (TypeError, ValueError):
        if value not in (None, ''):
            logger.debug(f"Could not parse {value!r} for {field or 'value'}, using 0")
        return 0
