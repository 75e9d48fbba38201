"""
pdv/catalog/provider.py
-----------------------
Read-only catalog access for the cart.

The cart never holds ORM rows: it holds a ProductSnapshot taken at
add-time, so a price edit in the catalog after the item was scanned
cannot re-price a line that is already in the cart.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_

from pdv.errors import InvalidProduct
from pdv.utils.money import to_decimal, price_per_kg


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    id:             int
    code:           str
    name:           str
    category:       str
    is_weighable:   bool
    unit_price:     Optional[Decimal] = None
    price_per_gram: Optional[Decimal] = None
    is_active:      bool = True
    barcode:        Optional[str] = None

    @property
    def display_price(self) -> Optional[Decimal]:
        """Unit price, or price per kg for weighable products."""
        if self.is_weighable:
            return price_per_kg(self.price_per_gram) if self.price_per_gram is not None else None
        return self.unit_price

    @classmethod
    def from_model(cls, product) -> 'ProductSnapshot':
        """
        Build a snapshot from a catalog.models.Product row.
        Raises InvalidProduct when the price field for the product's
        mode is missing or not positive.
        """
        snap = cls(
            id=product.id,
            code=product.code,
            name=product.name,
            category=product.category,
            is_weighable=bool(product.is_weighable),
            unit_price=to_decimal(product.unit_price) if product.unit_price is not None else None,
            price_per_gram=to_decimal(product.price_per_gram) if product.price_per_gram is not None else None,
            is_active=bool(product.is_active),
            barcode=product.barcode,
        )
        price = snap.price_per_gram if snap.is_weighable else snap.unit_price
        if price is None or price <= 0:
            field = 'price_per_gram' if snap.is_weighable else 'unit_price'
            raise InvalidProduct(
                f'"{snap.name}" has no valid {field}.',
                product_id=snap.id, field=field,
            )
        return snap

    def to_dict(self) -> dict:
        return {
            'id':             self.id,
            'code':           self.code,
            'name':           self.name,
            'category':       self.category,
            'is_weighable':   self.is_weighable,
            'unit_price':     str(self.unit_price) if self.unit_price is not None else None,
            'price_per_gram': str(self.price_per_gram) if self.price_per_gram is not None else None,
            'display_price':  str(self.display_price) if self.display_price is not None else None,
        }


class SqlCatalogProvider:
    """Catalog of one store channel, backed by the products table."""

    def __init__(self, store: str):
        self.store = store

    def _base_query(self):
        from pdv.catalog.models import Product
        return Product.query.filter(
            Product.store == self.store,
            Product.is_active == True,  # noqa: E712
        )

    def _snapshots(self, rows) -> List[ProductSnapshot]:
        snaps = []
        for row in rows:
            try:
                snaps.append(ProductSnapshot.from_model(row))
            except InvalidProduct as exc:
                # Misconfigured rows stay out of the sale screen
                log.warning(f"Catalog {self.store}: skipping product {row.id}: {exc}")
        return snaps

    def list_active_products(self) -> List[ProductSnapshot]:
        from pdv.catalog.models import Product
        rows = self._base_query().order_by(Product.name).all()
        return self._snapshots(rows)

    def search_products(self, query: str) -> List[ProductSnapshot]:
        """Case-insensitive substring match over name, code, barcode and category."""
        from pdv.catalog.models import Product
        q = (query or '').strip()
        if not q:
            return self.list_active_products()
        pattern = f'%{q}%'
        rows = self._base_query().filter(or_(
            Product.name.ilike(pattern),
            Product.code.ilike(pattern),
            Product.barcode.ilike(pattern),
            Product.category.ilike(pattern),
        )).order_by(Product.name).all()
        return self._snapshots(rows)

    def get_product(self, product_id: int) -> ProductSnapshot:
        """Snapshot of one product of this store. InvalidProduct if unknown or inactive."""
        from pdv import db
        from pdv.catalog.models import Product
        row = db.session.get(Product, product_id)
        if row is None or row.store != self.store:
            raise InvalidProduct(f'No product {product_id} in this store.', product_id=product_id)
        if not row.is_active:
            raise InvalidProduct(f'"{row.name}" is inactive.', product_id=product_id)
        return ProductSnapshot.from_model(row)

    def get_by_code(self, code: str) -> ProductSnapshot:
        """Exact (case-insensitive) match on product code or barcode."""
        from pdv.catalog.models import Product
        code = (code or '').strip()
        row = self._base_query().filter(or_(
            func.lower(Product.code) == code.lower(),
            Product.barcode == code,
        )).first()
        if row is None:
            raise InvalidProduct(f'No product found for code "{code}".', code=code)
        return ProductSnapshot.from_model(row)
