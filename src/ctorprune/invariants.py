"""Invariant markers for ctorprune."""

from __future__ import annotations

from typing import NoReturn, TypeVar

from ctorprune.exceptions import MarkerPayload, NeverThrown

T = TypeVar("T")


def _raise_marker(marker_kind: str, reason: str = "", **env: object) -> NoReturn:
    payload = MarkerPayload(
        marker_kind=marker_kind,
        reason=reason or f"{marker_kind}() marker reached",
        env={str(key): str(value) for key, value in env.items()},
    )
    raise NeverThrown(payload.reason, marker_payload=payload)


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The optional env payload is metadata only; it is carried on the raised
    exception for diagnostics.
    """
    _raise_marker("never", reason, **env)


def require_not_none(value: T | None, *, reason: str = "", **env: object) -> T:
    if value is None:
        never(reason or "required value is None", **env)
    return value
