from __future__ import annotations

from typing import Any, Mapping


class _Unset:
    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()
"""Marks a field as absent. Keys holding it are dropped before every write."""


def sanitize_payload(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` without UNSET values.

    Only plain nested dicts are walked. Lists, datetimes and any other value
    are passed through as-is, so an UNSET inside a list is kept.
    """

    cleaned: dict[str, Any] = {}
    for key, value in data.items():
        if value is UNSET:
            continue
        if isinstance(value, dict):
            cleaned[key] = sanitize_payload(value)
        else:
            cleaned[key] = value
    return cleaned
