from __future__ import annotations

from typing import Any, List, Sequence, TypeVar

from ..exceptions import ToolLookupError
from .reference_data import ReferenceDataProvider

C = TypeVar("C", str, int)


def as_list(value: Any) -> List[str]:
    """Accept a list of names or a single (possibly comma-separated) string."""
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (int, float)):
        return [str(value)]
    if not isinstance(value, (list, tuple, set)):
        raise ToolLookupError(f"Expected a list of names or a comma-separated string, got {value!r}.")
    return [str(item).strip() for item in value if str(item).strip()]


def resolve_all(table: ReferenceDataProvider[C], names: Sequence[str], hint: str) -> List[C]:
    """Resolve every name or raise a single lookup error listing the unknown ones."""
    if not names:
        raise ToolLookupError(f"At least one country is required. {hint}")
    codes: List[C] = []
    unknown: List[str] = []
    for name in names:
        code = table.resolve(name)
        if code is None:
            unknown.append(name)
        else:
            codes.append(code)
    if unknown:
        quoted = ", ".join(f"'{name}'" for name in unknown)
        raise ToolLookupError(f"Country {quoted} not found. {hint}")
    return codes
