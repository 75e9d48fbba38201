"""
pdv/billing/cart.py
-------------------
In-memory cart for one POS terminal.

One CartStore is created per terminal login and passed to whoever needs
it; there is no module-level cart. Every mutation and every derived
read runs under the store's lock, so a total is never read halfway
through an update.

Line items hold a ProductSnapshot taken when the item was added; the
unit price is resolved once at that moment.

All derived totals (subtotal, discount, total) are computed from the
current lines on every call; nothing is cached.
"""
from __future__ import annotations
import enum
import threading
import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import List, Optional, Tuple

from pdv.billing.discounts import DiscountSpec, NO_DISCOUNT, compute_discount
from pdv.billing.pricing import resolve_line_price
from pdv.utils.money import ZERO, round2, round_weight, to_decimal


class PaymentMethod(enum.Enum):
    cash        = 'cash'
    pix         = 'pix'
    credit_card = 'credit_card'
    debit_card  = 'debit_card'
    voucher     = 'voucher'
    mixed       = 'mixed'


@dataclass(frozen=True)
class PaymentInfo:
    method:         PaymentMethod = PaymentMethod.cash
    customer_name:  Optional[str] = None
    customer_phone: Optional[str] = None
    change_for:     Optional[Decimal] = None

    def to_dict(self) -> dict:
        return {
            'method':         self.method.value,
            'customer_name':  self.customer_name,
            'customer_phone': self.customer_phone,
            'change_for':     str(self.change_for) if self.change_for is not None else None,
        }


@dataclass
class CartLineItem:
    product:       object                   # ProductSnapshot
    quantity:      int
    unit_price:    Decimal
    subtotal:      Decimal
    weight_kg:     Optional[Decimal] = None
    line_discount: Decimal = ZERO
    line_id:       str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def product_id(self):
        return self.product.id

    def to_dict(self) -> dict:
        return {
            'line_id':       self.line_id,
            'product':       self.product.to_dict(),
            'quantity':      self.quantity,
            'weight_kg':     str(self.weight_kg) if self.weight_kg is not None else None,
            'unit_price':    str(self.unit_price),
            'line_discount': str(self.line_discount),
            'subtotal':      str(self.subtotal),
        }


@dataclass(frozen=True)
class CartTotals:
    subtotal:        Decimal
    discount_amount: Decimal
    total:           Decimal
    item_count:      int

    def to_dict(self) -> dict:
        return {
            'subtotal':        str(self.subtotal),
            'discount_amount': str(self.discount_amount),
            'total':           str(self.total),
            'item_count':      self.item_count,
        }


@dataclass(frozen=True)
class CartSnapshot:
    items:    Tuple[CartLineItem, ...]
    totals:   CartTotals
    discount: DiscountSpec
    payment:  PaymentInfo


class CartStore:
    """Line items, discount and payment draft of one in-progress sale."""

    def __init__(self):
        self._lock     = threading.RLock()
        self._items: List[CartLineItem] = []
        self._discount = NO_DISCOUNT
        self._payment  = PaymentInfo()

    # ── Read ──────────────────────────────────────────────────────

    @property
    def items(self) -> Tuple[CartLineItem, ...]:
        """Copies of the current lines; editing them does not touch the cart."""
        with self._lock:
            return tuple(replace(item) for item in self._items)

    @property
    def discount(self) -> DiscountSpec:
        return self._discount

    @property
    def payment_info(self) -> PaymentInfo:
        return self._payment

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return not self._items

    def get_subtotal(self) -> Decimal:
        with self._lock:
            return round2(sum((item.subtotal for item in self._items), ZERO))

    def get_discount_amount(self) -> Decimal:
        with self._lock:
            return compute_discount(self.get_subtotal(), self._discount)

    def get_total(self) -> Decimal:
        with self._lock:
            return max(round2(ZERO), self.get_subtotal() - self.get_discount_amount())

    def totals(self) -> CartTotals:
        with self._lock:
            subtotal = self.get_subtotal()
            discount = compute_discount(subtotal, self._discount)
            return CartTotals(
                subtotal=subtotal,
                discount_amount=discount,
                total=max(round2(ZERO), subtotal - discount),
                item_count=len(self._items),
            )

    def snapshot(self) -> 'CartSnapshot':
        """Lines, totals, discount and payment draft read in one go."""
        with self._lock:
            return CartSnapshot(
                items=self.items,
                totals=self.totals(),
                discount=self._discount,
                payment=self._payment,
            )

    def to_dict(self) -> dict:
        with self._lock:
            return {
                'items':    [item.to_dict() for item in self._items],
                'discount': self._discount.to_dict(),
                'payment':  self._payment.to_dict(),
                'totals':   self.totals().to_dict(),
            }

    # ── Write ─────────────────────────────────────────────────────

    def add_item(self, product, quantity: int = 1, weight_kg=None) -> CartTotals:
        """
        Add `quantity` units of `product`, or one weighed parcel.

        A fixed-unit product already in the cart has its line quantity
        incremented. A weighable product always gets a new line: each
        weighing is a separate parcel. Weights are kept to whole grams.
        """
        with self._lock:
            weight = round_weight(weight_kg) if weight_kg is not None else None
            price  = resolve_line_price(product, quantity, weight)

            if not product.is_weighable:
                existing = self._find_product_line(product.id)
                if existing is not None:
                    new_quantity = existing.quantity + int(quantity)
                    price = resolve_line_price(
                        existing.product, new_quantity, None, existing.line_discount,
                    )
                    existing.quantity = new_quantity
                    existing.subtotal = price.subtotal
                    return self.totals()

            self._items.append(CartLineItem(
                product=product,
                quantity=int(quantity),
                unit_price=price.unit_price,
                subtotal=price.subtotal,
                weight_kg=weight,
            ))
            return self.totals()

    def remove_item(self, product_id) -> CartTotals:
        """Remove every line of `product_id` (all weighed parcels included)."""
        with self._lock:
            self._items = [i for i in self._items if i.product_id != product_id]
            return self.totals()

    def remove_line(self, line_id: str) -> CartTotals:
        """Remove exactly one line."""
        with self._lock:
            self._items = [i for i in self._items if i.line_id != line_id]
            return self.totals()

    def update_item_quantity(self, product_id, new_quantity: int) -> CartTotals:
        """Set the quantity on every line of `product_id`; ≤ 0 removes them."""
        with self._lock:
            for item in [i for i in self._items if i.product_id == product_id]:
                self._set_quantity(item, new_quantity)
            return self.totals()

    def update_line_quantity(self, line_id: str, new_quantity: int) -> CartTotals:
        with self._lock:
            item = self._find_line(line_id)
            if item is not None:
                self._set_quantity(item, new_quantity)
            return self.totals()

    def set_line_discount(self, line_id: str, amount) -> CartTotals:
        """Per-line discount in R$. The line subtotal is clamped at 0."""
        with self._lock:
            item = self._find_line(line_id)
            if item is None:
                raise KeyError(line_id)
            amount = to_decimal(amount)
            if amount < 0:
                raise ValueError('Line discount cannot be negative.')
            price = resolve_line_price(item.product, item.quantity, item.weight_kg, amount)
            item.line_discount = amount
            item.subtotal      = price.subtotal
            return self.totals()

    def set_discount(self, spec: DiscountSpec) -> CartTotals:
        with self._lock:
            self._discount = spec
            return self.totals()

    def update_payment_info(self, **changes) -> CartTotals:
        """
        Replace fields of the payment draft.
        Accepts method (PaymentMethod or its value), customer_name,
        customer_phone and change_for.
        """
        with self._lock:
            unknown = set(changes) - {'method', 'customer_name', 'customer_phone', 'change_for'}
            if unknown:
                raise ValueError(f'Unknown payment fields: {", ".join(sorted(unknown))}')
            if 'method' in changes and not isinstance(changes['method'], PaymentMethod):
                changes['method'] = PaymentMethod(changes['method'])
            if changes.get('change_for') is not None:
                change_for = to_decimal(changes['change_for'])
                if change_for < 0:
                    raise ValueError('Change amount cannot be negative.')
                changes['change_for'] = change_for
            self._payment = replace(self._payment, **changes)
            return self.totals()

    def clear_cart(self) -> CartTotals:
        """Empty the cart and reset discount and payment draft."""
        with self._lock:
            self._items    = []
            self._discount = NO_DISCOUNT
            self._payment  = PaymentInfo()
            return self.totals()

    # ── Helpers ───────────────────────────────────────────────────

    def _find_product_line(self, product_id) -> Optional[CartLineItem]:
        for item in self._items:
            if item.product_id == product_id:
                return item
        return None

    def _find_line(self, line_id: str) -> Optional[CartLineItem]:
        for item in self._items:
            if item.line_id == line_id:
                return item
        return None

    def _set_quantity(self, item: CartLineItem, new_quantity: int) -> None:
        new_quantity = int(new_quantity)
        if new_quantity <= 0:
            self._items.remove(item)
            return
        price = resolve_line_price(item.product, new_quantity, item.weight_kg, item.line_discount)
        item.quantity = new_quantity
        item.subtotal = price.subtotal
