"""Prediction-service protocol.

Entry-timing advice comes from an external model.  The deterministic
engine never depends on it; callers may consult a service that satisfies
this protocol alongside the engine's own outputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

from metalledger.engine.models import PricePoint


@dataclass(frozen=True)
class EntrySignal:
    """Advisory entry signal for one metal."""

    metal: str
    action: str  # "buy", "wait" or "avoid"
    confidence: float  # 0–1
    reason: str = ""


@runtime_checkable
class PredictionService(Protocol):
    """Interface for external entry-timing advisors."""

    def predict_entry(
        self, metal: str, price_history: Sequence[PricePoint]
    ) -> EntrySignal:
        """Return an advisory signal for *metal* given its price history."""
        ...
