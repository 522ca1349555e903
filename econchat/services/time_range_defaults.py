"""Default year ranges for data tools called without explicit years."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from ..exceptions import ToolLookupError

logger = logging.getLogger(__name__)

# (start offset, end offset) relative to the current year
DEFAULT_YEAR_OFFSETS: Dict[str, Tuple[int, int]] = {
    # Latest complete World Bank vintages lag by a few years.
    "WORLDBANK": (-26, -3),
    # WEO publishes projections a few years ahead.
    "IMF": (-6, 2),
    "FAO": (-11, -3),
}


def coerce_year(value: Any, field: str = "year") -> Optional[int]:
    """Convert a model-supplied year (int, float or numeric string) to ``int``."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ToolLookupError(f"Invalid {field}: {value!r}")
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise ToolLookupError(f"Invalid {field}: {value!r}. Use a four-digit year such as 2020.") from None


def default_year_range(source: str, today: Optional[datetime] = None) -> Optional[Tuple[int, int]]:
    offsets = DEFAULT_YEAR_OFFSETS.get((source or "").upper())
    if offsets is None:
        return None
    year = (today or datetime.now()).year
    return year + offsets[0], year + offsets[1]


def apply_default_year_range(
    source: str,
    params: Dict[str, Any],
    today: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Return a copy of ``params`` with ``start_year``/``end_year`` filled in.

    Rules:
    - Explicit years are respected (and coerced to ``int``).
    - World Bank, IMF and FAO fill each missing bound from their default range.
    - Comtrade and Our World in Data have no defaults.
    """
    resolved = dict(params)
    resolved["start_year"] = coerce_year(params.get("start_year"), "start_year")
    resolved["end_year"] = coerce_year(params.get("end_year"), "end_year")

    defaults = default_year_range(source, today)
    if defaults is None:
        return resolved

    applied = []
    if resolved["start_year"] is None:
        resolved["start_year"] = defaults[0]
        applied.append("start_year")
    if resolved["end_year"] is None:
        resolved["end_year"] = defaults[1]
        applied.append("end_year")
    if applied:
        logger.info(
            "Applied default year range for %s: %s to %s (%s)",
            source,
            resolved["start_year"],
            resolved["end_year"],
            ", ".join(applied),
        )
    return resolved
