"""
pdv/billing/discounts.py
------------------------
Cart-level discount: none, a flat R$ amount, or a percentage of the
subtotal. Applies to the subtotal as a whole, never per line.
"""
from __future__ import annotations
import enum
from dataclasses import dataclass
from decimal import Decimal

from pdv.utils.money import ZERO, clamp, round2, to_decimal


HUNDRED = Decimal('100')


class DiscountKind(enum.Enum):
    none       = 'none'
    flat       = 'flat'
    percentage = 'percentage'


@dataclass(frozen=True)
class DiscountSpec:
    kind:  DiscountKind = DiscountKind.none
    value: Decimal = ZERO

    def __post_init__(self):
        kind = self.kind if isinstance(self.kind, DiscountKind) else DiscountKind(self.kind)
        value = to_decimal(self.value)
        if value < 0:
            raise ValueError('Discount value cannot be negative.')
        object.__setattr__(self, 'kind', kind)
        object.__setattr__(self, 'value', value)

    @property
    def percentage(self) -> Decimal:
        """The percentage recorded on the sale (0 unless kind is percentage)."""
        if self.kind is DiscountKind.percentage:
            return clamp(self.value, ZERO, HUNDRED)
        return ZERO

    def to_dict(self) -> dict:
        return {'kind': self.kind.value, 'value': str(self.value)}


NO_DISCOUNT = DiscountSpec()


def compute_discount(subtotal, spec: DiscountSpec) -> Decimal:
    """
    Resolve `spec` against `subtotal`.

    flat:       capped at the subtotal, so the total never goes negative
    percentage: value clamped to 0–100
    """
    subtotal = to_decimal(subtotal)
    if subtotal <= 0 or spec.kind is DiscountKind.none:
        return round2(ZERO)

    if spec.kind is DiscountKind.flat:
        return round2(min(spec.value, subtotal))

    percent = clamp(spec.value, ZERO, HUNDRED)
    return round2(subtotal * percent / HUNDRED)
