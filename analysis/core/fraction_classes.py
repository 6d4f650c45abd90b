import numpy as np
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_FRACTION_THRESHOLDS = (0.25, 0.50, 0.75, 0.90)


class InvalidFractionError(ValueError):
    """Raised when a glacier fraction lies outside [0, 1]."""


@dataclass(frozen=True)
class FractionClass:
    """One glacier-fraction class: [lower, upper), closed at 1.0 for the last class."""

    index: int
    name: str
    label: str
    lower: float
    upper: float

    @property
    def code(self) -> int:
        """1-based class code as written in the pixel-level export."""
        return self.index + 1

    def contains(self, fraction: float) -> bool:
        if self.upper >= 1.0:
            return self.lower <= fraction <= 1.0
        return self.lower <= fraction < self.upper


def _pct(value: float) -> int:
    return int(round(value * 100))


class FractionClassifier:
    """Map glacier fractions in [0, 1] onto ordered coverage classes."""

    def __init__(self, thresholds: Optional[Sequence[float]] = None):
        thresholds = list(DEFAULT_FRACTION_THRESHOLDS if thresholds is None else thresholds)

        if not thresholds:
            raise ValueError("At least one fraction threshold is required")
        if any(not 0.0 < t < 1.0 for t in thresholds):
            raise ValueError(f"Fraction thresholds must lie strictly between 0 and 1: {thresholds}")
        if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
            raise ValueError(f"Fraction thresholds must be strictly increasing: {thresholds}")

        self.thresholds = np.asarray(thresholds, dtype=float)
        edges = [0.0] + thresholds + [1.0]
        self.classes: List[FractionClass] = [
            FractionClass(
                index=i,
                name=f"glacier_{_pct(lower)}_{_pct(upper)}pct",
                label=f"{_pct(lower)}-{_pct(upper)}%",
                lower=lower,
                upper=upper,
            )
            for i, (lower, upper) in enumerate(zip(edges[:-1], edges[1:]))
        ]

    @property
    def class_names(self) -> List[str]:
        return [cls.name for cls in self.classes]

    def get_class(self, name: str) -> FractionClass:
        for cls in self.classes:
            if cls.name == name:
                return cls
        raise KeyError(f"Unknown fraction class: {name}")

    def classify(self, fraction: float) -> FractionClass:
        """
        Classify a single glacier fraction.

        Raises:
            InvalidFractionError: If the fraction is NaN or outside [0, 1]
        """
        try:
            value = float(fraction)
        except (TypeError, ValueError):
            raise InvalidFractionError(f"Glacier fraction is not numeric: {fraction!r}")

        if np.isnan(value) or value < 0.0 or value > 1.0:
            raise InvalidFractionError(f"Glacier fraction must be within [0, 1], got {fraction}")

        index = int(np.searchsorted(self.thresholds, value, side='right'))
        return self.classes[index]

    def classify_array(self, fractions) -> np.ndarray:
        """
        Vectorised classification returning 0-based class indices.

        Raises:
            InvalidFractionError: If any fraction is NaN or outside [0, 1]
        """
        values = np.asarray(fractions, dtype=float)
        invalid = np.isnan(values) | (values < 0.0) | (values > 1.0)
        if invalid.any():
            raise InvalidFractionError(
                f"{int(invalid.sum())} glacier fraction value(s) outside [0, 1]"
            )
        return np.searchsorted(self.thresholds, values, side='right')

    def labels_for(self, fractions) -> np.ndarray:
        labels = np.array([cls.label for cls in self.classes], dtype=object)
        return labels[self.classify_array(fractions)]
