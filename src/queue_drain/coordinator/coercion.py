"""
Per-table field coercion applied to queue payloads before insert.

A CoercionTable maps a destination table to ``{field: rule}``; the ``"*"``
entry applies to every table and table-specific rules override it.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from ..errors import CoercionError

CoercionRule = Callable[[Any], Any]

ALL_TABLES = "*"


def as_int(value: Any) -> Any:
    """Coerce textual or numeric integers to int; None passes through."""
    if value is None:
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("non-integral float")
        return int(value)
    if isinstance(value, (bytes, bytearray)):
        value = value.decode()
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f"unsupported type {type(value).__name__}")


class CoercionTable:
    def __init__(self, rules: Optional[Mapping[str, Mapping[str, CoercionRule]]] = None):
        self._rules: dict[str, dict[str, CoercionRule]] = {
            table: dict(fields) for table, fields in (rules or {}).items()
        }

    def rules_for(self, table: str) -> dict[str, CoercionRule]:
        merged = dict(self._rules.get(ALL_TABLES, {}))
        merged.update(self._rules.get(table, {}))
        return merged

    def apply(self, table: str, data: Mapping[str, Any]) -> dict[str, Any]:
        """Return a coerced copy of ``data``; raises CoercionError on a bad value."""
        out = dict(data)
        for name, rule in self.rules_for(table).items():
            if name not in out:
                continue
            try:
                out[name] = rule(out[name])
            except (TypeError, ValueError) as exc:
                raise CoercionError(name, out[name], str(exc)) from exc
        return out


def default_coercions() -> CoercionTable:
    """Signup flags are stored as integers in every destination schema."""
    return CoercionTable({ALL_TABLES: {"signup": as_int}})
