"""Scoring weight configuration.

Weights are an explicit immutable value handed to each ``ScoringEngine``;
there is no process-wide weight table to mutate.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, replace
from typing import Any

from ai_comments.core.models import BREAKDOWN_FIELDS

# Risk metrics where a lower value is better; substituted by 100 - value when weighted
INVERTED_METRICS: frozenset[str] = frozenset({"ai_detection_risk", "cascade_risk"})

_WIRE_TO_FIELD: dict[str, str] = {wire: name for name, wire in BREAKDOWN_FIELDS.items()}


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Per-metric weights used to compute the overall PR score.

    Weights need not sum to 1; the engine divides by their total.

    Example:
        >>> weights = ScoringWeights().with_overrides(cascade_risk=2.0)
        >>> weights.cascade_risk
        2.0
    """

    code_consistency: float = 1.0
    reuse_score: float = 0.8
    ai_detection_risk: float = 0.6
    cascade_risk: float = 1.2
    responsive_score: float = 1.0
    semantic_score: float = 0.9
    intent_alignment: float = 1.1

    def __post_init__(self) -> None:
        """Validate that every weight is a positive number.

        Raises:
            ValueError: If any weight is not a positive number
        """
        for name in BREAKDOWN_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
                raise ValueError(f"weight {name} must be a positive number, got {value!r}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScoringWeights":
        """Build weights from a mapping, filling missing metrics with defaults.

        Keys may use either the snake_case field name or the camelCase wire
        name (``cascadeRisk``).

        Raises:
            ValueError: If a key is not a known metric or a value is invalid
        """
        overrides: dict[str, float] = {}
        for key, value in data.items():
            name = _WIRE_TO_FIELD.get(key, key)
            if name not in BREAKDOWN_FIELDS:
                raise ValueError(f"unknown scoring metric: {key!r}")
            try:
                overrides[name] = float(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"weight {key} must be a number, got {value!r}") from e
        return cls(**overrides)

    def with_overrides(self, **overrides: float) -> "ScoringWeights":
        """Return a copy with the given metric weights replaced."""
        unknown = set(overrides) - set(BREAKDOWN_FIELDS)
        if unknown:
            raise ValueError(f"unknown scoring metric(s): {', '.join(sorted(unknown))}")
        return replace(self, **overrides)

    @property
    def total(self) -> float:
        return sum(getattr(self, name) for name in BREAKDOWN_FIELDS)

    def items(self) -> list[tuple[str, float]]:
        """Return ``(metric, weight)`` pairs in canonical metric order."""
        return [(name, getattr(self, name)) for name in BREAKDOWN_FIELDS]

    def normalized(self) -> "ScoringWeights":
        """Return weights scaled to sum to 1."""
        total = self.total
        return ScoringWeights(**{name: weight / total for name, weight in self.items()})

    def to_dict(self) -> dict[str, float]:
        return asdict(self)
