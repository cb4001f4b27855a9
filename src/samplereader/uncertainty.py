"""
Scalar values carrying a statistical uncertainty.

Addition treats both operands as independent and combines their
uncertainties in quadrature. Multiplication by a plain number scales the
value and the uncertainty linearly.
"""

from __future__ import annotations

import math
from numbers import Real

from pydantic import BaseModel, ConfigDict, Field


class ValueWithUncertainty(BaseModel):
    """
    A value with its (symmetric) statistical uncertainty.

    Attributes:
        value: Central value
        uncertainty: Non-negative one-sigma uncertainty

    Examples:
        >>> a = ValueWithUncertainty(value=10.0, uncertainty=3.0)
        >>> b = ValueWithUncertainty(value=5.0, uncertainty=4.0)
        >>> a + b
        ValueWithUncertainty(value=15.0, uncertainty=5.0)
        >>> 2 * a
        ValueWithUncertainty(value=20.0, uncertainty=6.0)
    """

    model_config = ConfigDict(frozen=True)

    value: float = 0.0
    uncertainty: float = Field(default=0.0, ge=0.0)

    @classmethod
    def from_sums(cls, sum_w: float, sum_w2: float) -> ValueWithUncertainty:
        """Build from a sum of weights and a sum of squared weights."""
        return cls(value=float(sum_w), uncertainty=math.sqrt(float(sum_w2)))

    def __add__(self, other: object) -> ValueWithUncertainty:
        if isinstance(other, ValueWithUncertainty):
            return ValueWithUncertainty(
                value=self.value + other.value,
                uncertainty=math.hypot(self.uncertainty, other.uncertainty),
            )
        if isinstance(other, Real):
            return ValueWithUncertainty(
                value=self.value + float(other), uncertainty=self.uncertainty
            )
        return NotImplemented

    # sum() starts from 0
    __radd__ = __add__

    def __mul__(self, other: object) -> ValueWithUncertainty:
        if isinstance(other, Real):
            factor = float(other)
            return ValueWithUncertainty(
                value=self.value * factor, uncertainty=self.uncertainty * abs(factor)
            )
        return NotImplemented

    __rmul__ = __mul__

    def __float__(self) -> float:
        return self.value

    def __str__(self) -> str:
        return f"{self.value:g} ± {self.uncertainty:g}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(value={self.value!r}, uncertainty={self.uncertainty!r})"


__all__ = ("ValueWithUncertainty",)
