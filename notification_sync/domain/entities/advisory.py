"""Advisory conditions surfaced to the UI."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AdvisoryKind(str, Enum):
    """Conditions that outlive the retries absorbing them."""

    CONNECTION_EXHAUSTED = "connection_exhausted"
    AUTH_REJECTED = "auth_rejected"
    MUTATION_FAILED = "mutation_failed"


@dataclass(frozen=True)
class Advisory:
    """Non-blocking condition reported to subscribers."""

    kind: AdvisoryKind
    message: str
    error: Exception | None = None


__all__ = ["Advisory", "AdvisoryKind"]
