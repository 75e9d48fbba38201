from datetime import datetime
from pdv import db


# (value, label), in the order the PDV screen shows its filter tabs
CATEGORIES = [
    ('acai',         'Açaí'),
    ('combo',        'Combo'),
    ('milkshake',    'Milkshake'),
    ('vitamina',     'Vitamina'),
    ('sorvetes',     'Sorvetes'),
    ('bebidas',      'Bebidas'),
    ('complementos', 'Complementos'),
    ('sobremesas',   'Sobremesas'),
    ('outros',       'Outros'),
]
CATEGORY_CHOICES = [c[0] for c in CATEGORIES]


class Product(db.Model):
    """
    A sellable item in one store's catalog.

    Pricing mode is selected by is_weighable:
      is_weighable=False → unit_price is charged per unit
      is_weighable=True  → price_per_gram is charged per gram weighed
    """
    __tablename__ = 'products'

    id             = db.Column(db.Integer, primary_key=True)
    store          = db.Column(db.String(30), nullable=False, index=True)
    code           = db.Column(db.String(40), nullable=False)
    barcode        = db.Column(db.String(100), nullable=True, index=True)
    name           = db.Column(db.String(200), nullable=False, index=True)
    category       = db.Column(db.String(30), nullable=False, default='outros')
    is_weighable   = db.Column(db.Boolean, nullable=False, default=False)
    unit_price     = db.Column(db.Numeric(10, 2), nullable=True)   # set when not weighable
    price_per_gram = db.Column(db.Numeric(10, 5), nullable=True)   # set when weighable
    is_active      = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at     = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at     = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    __table_args__ = (
        db.UniqueConstraint('store', 'code', name='uq_product_store_code'),
        db.CheckConstraint('unit_price IS NULL OR unit_price > 0', name='check_unit_price_positive'),
        db.CheckConstraint('price_per_gram IS NULL OR price_per_gram > 0', name='check_price_per_gram_positive'),
    )

    @property
    def category_label(self) -> str:
        return dict(CATEGORIES).get(self.category, self.category)

    def to_dict(self) -> dict:
        return {
            'id':             self.id,
            'store':          self.store,
            'code':           self.code,
            'barcode':        self.barcode,
            'name':           self.name,
            'category':       self.category,
            'is_weighable':   self.is_weighable,
            'unit_price':     str(self.unit_price) if self.unit_price is not None else None,
            'price_per_gram': str(self.price_per_gram) if self.price_per_gram is not None else None,
            'is_active':      self.is_active,
        }

    def __repr__(self):
        return f"<Product {self.store}/{self.code!r} {self.name!r}>"
