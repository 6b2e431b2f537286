# queuecast/utils/numeric.py
from __future__ import annotations

import math
from typing import Any, Optional


def coerce_float(value: Any) -> Optional[float]:
    """
    Best-effort float conversion that returns None for missing, unparsable
    or non-finite values.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


__all__ = ["coerce_float", "clamp"]
