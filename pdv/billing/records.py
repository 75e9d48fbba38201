"""
pdv/billing/records.py
----------------------
Immutable values exchanged between the finalizer and sale persistence.

A SaleLine copies everything it needs from the cart line (product id,
code, name, prices) so later catalog edits cannot alter a sale.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple


@dataclass(frozen=True)
class Operator:
    id:   int
    name: str


@dataclass(frozen=True)
class SaleLine:
    product_id:      int
    product_code:    str
    product_name:    str
    quantity:        int
    weight_kg:       Optional[Decimal]
    unit_price:      Optional[Decimal]
    price_per_gram:  Optional[Decimal]
    discount_amount: Decimal
    subtotal:        Decimal

    @classmethod
    def from_cart_line(cls, item) -> 'SaleLine':
        product = item.product
        return cls(
            product_id=product.id,
            product_code=product.code,
            product_name=product.name,
            quantity=item.quantity,
            weight_kg=item.weight_kg,
            unit_price=product.unit_price,
            price_per_gram=product.price_per_gram,
            discount_amount=item.line_discount,
            subtotal=item.subtotal,
        )


@dataclass(frozen=True)
class SaleData:
    operator_id:         int
    store:               str
    customer_name:       Optional[str]
    customer_phone:      Optional[str]
    subtotal:            Decimal
    discount_amount:     Decimal
    discount_percentage: Decimal
    total_amount:        Decimal
    payment_type:        str
    change_amount:       Decimal
    notes:               str = ''


@dataclass(frozen=True)
class CommittedSale:
    """A persisted sale, as returned to the caller for the receipt."""
    id:          int
    sale_number: str
    register_id: int
    created_at:  datetime
    data:        SaleData
    items:       Tuple[SaleLine, ...]

    def to_dict(self) -> dict:
        def plain(value):
            if isinstance(value, Decimal):
                return str(value)
            return value

        return {
            'id':          self.id,
            'sale_number': self.sale_number,
            'register_id': self.register_id,
            'created_at':  self.created_at.isoformat(),
            **{k: plain(v) for k, v in asdict(self.data).items()},
            'items': [{k: plain(v) for k, v in asdict(line).items()} for line in self.items],
        }
