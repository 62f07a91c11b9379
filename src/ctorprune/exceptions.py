"""Exception protocol markers for ctorprune."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class MarkerPayload:
    marker_kind: str
    reason: str
    env: dict[str, str] = field(default_factory=dict)


class NeverRaise(RuntimeError):
    """Sentinel exception that should be statically unreachable.

    Raising this exception signals a code path that is expected to be proven
    unreachable. If it is reachable, the run is treated as an internal
    violation rather than a normal "not applicable" outcome.
    """

    def __init__(self, message: str, *, marker_payload: MarkerPayload | None = None):
        super().__init__(message)
        payload = marker_payload or MarkerPayload(marker_kind="never", reason=message)
        self.marker_payload = payload
        self.marker_kind = payload.marker_kind

    @property
    def marker_payload_dict(self) -> dict[str, object]:
        return {
            "marker_kind": self.marker_payload.marker_kind,
            "reason": self.marker_payload.reason,
            "env": dict(self.marker_payload.env),
        }


class NeverThrown(NeverRaise):
    """Alias for NeverRaise used by the explicit never() marker."""
