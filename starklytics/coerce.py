"""Best-effort numeric coercion shared by rollups and visuals.

Unparseable values become 0 rather than raising; a chart over dirty data
still renders, at the cost of silently treating bad cells as zero.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any


def coerce_number(value: Any) -> int | float:
    """Coerce a cell to a number.

    Examples:
        coerce_number(12)      -> 12
        coerce_number("3.5")   -> 3.5
        coerce_number("abc")   -> 0
        coerce_number(None)    -> 0
        coerce_number(True)    -> 1
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        number = float(value)
        return 0 if math.isnan(number) else number
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return 0
        return 0 if math.isnan(number) else number
    return 0
