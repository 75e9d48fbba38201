"""
pdv/billing/pricing.py
----------------------
Line pricing for the two product modes.

    fixed-unit  → subtotal = unit_price × quantity − line_discount
    weighable   → subtotal = price_per_gram × weight_kg × 1000 × quantity − line_discount

Weighable products are shown per kg (price_per_gram × 1000) but the
charge is computed from the gram price, so the kg rate is never
rounded before it is multiplied by the weight.

Results are rounded once, half-to-even, when they land on the line.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal

from pdv.errors import InvalidProduct
from pdv.utils.money import ZERO, round2, to_decimal, kg_to_grams, price_per_kg


@dataclass(frozen=True)
class LinePrice:
    unit_price: Decimal   # unit price, or R$/kg for weighable products
    subtotal:   Decimal


def check_sellable(product) -> None:
    """Raise InvalidProduct unless the product can be put in a cart."""
    if not product.is_active:
        raise InvalidProduct(f'"{product.name}" is inactive.', product_id=product.id)
    if product.is_weighable:
        if product.price_per_gram is None or product.price_per_gram <= 0:
            raise InvalidProduct(
                f'"{product.name}" has no price per gram.',
                product_id=product.id, field='price_per_gram',
            )
    elif product.unit_price is None or product.unit_price <= 0:
        raise InvalidProduct(
            f'"{product.name}" has no unit price.',
            product_id=product.id, field='unit_price',
        )


def resolve_line_price(product, quantity: int = 1, weight_kg=None,
                       line_discount=ZERO) -> LinePrice:
    """
    Price one cart line.

    Raises:
        InvalidProduct: inactive product, missing price field, or a
                         weight that does not match the product's mode
        ValueError:     quantity < 1 or negative line discount
    """
    check_sellable(product)

    quantity = int(quantity)
    if quantity < 1:
        raise ValueError('Quantity must be at least 1.')

    discount = to_decimal(line_discount)
    if discount < 0:
        raise ValueError('Line discount cannot be negative.')

    if product.is_weighable:
        if weight_kg is None:
            raise InvalidProduct(
                f'"{product.name}" must be weighed.', product_id=product.id, field='weight_kg',
            )
        weight = to_decimal(weight_kg)
        if weight <= 0:
            raise InvalidProduct(
                'Weight must be greater than zero.', product_id=product.id, field='weight_kg',
            )
        gross = to_decimal(product.price_per_gram) * kg_to_grams(weight) * quantity
        unit_price = price_per_kg(product.price_per_gram)
    else:
        if weight_kg is not None:
            raise InvalidProduct(
                f'"{product.name}" is sold by unit, not by weight.',
                product_id=product.id, field='weight_kg',
            )
        unit_price = to_decimal(product.unit_price)
        gross = unit_price * quantity

    subtotal = max(ZERO, round2(gross - discount))
    return LinePrice(unit_price=unit_price, subtotal=subtotal)
