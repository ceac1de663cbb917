# solarconnect/queries/common.py
from typing import Any, Dict, Iterable, List, Tuple


def build_set_clause(
    fields: Dict[str, Any],
    allowed: Iterable[str],
    start: int = 1
) -> Tuple[str, List[Any]]:
    """Turn ``fields`` into ``col = $n, ...`` plus its positional args.

    Only whitelisted column names are interpolated; values always travel
    as parameters.
    """
    allowed = set(allowed)
    unknown = set(fields) - allowed
    if unknown:
        raise KeyError(f"Unknown columns: {', '.join(sorted(unknown))}")

    parts = []
    values = []
    for offset, (column, value) in enumerate(fields.items()):
        parts.append(f"{column} = ${start + offset}")
        values.append(value)
    return ", ".join(parts), values


def record_to_dict(record) -> Dict[str, Any] | None:
    return dict(record) if record is not None else None
