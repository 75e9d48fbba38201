from datetime import datetime
from decimal import Decimal
from pdv import db


class SaleSequence(db.Model):
    """
    One row per calendar year, holding the last-used sale sequence number.

    COUNT(sales) is not safe under concurrent terminals:

        Tx A: COUNT = 15  →  next = 16   ┐
        Tx B: COUNT = 15  →  next = 16   ┘  ← both generate 2026-0016

    With this table + SELECT FOR UPDATE the second transaction blocks
    until the first commits, then reads 16 and writes 17.
    """
    __tablename__ = 'sale_sequences'

    year     = db.Column(db.Integer, primary_key=True)
    last_seq = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<SaleSequence year={self.year} last_seq={self.last_seq}>"


class Sale(db.Model):
    """
    One finalized PDV sale. Never updated after creation except for
    cancellation, which belongs to the cash register workflow.
    """
    __tablename__ = 'sales'

    id                  = db.Column(db.Integer, primary_key=True)
    sale_number         = db.Column(db.String(20), unique=True, nullable=False, index=True)
    store               = db.Column(db.String(30), nullable=False, index=True)
    operator_id         = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    register_id         = db.Column(db.Integer, db.ForeignKey('cash_registers.id'), nullable=False, index=True)
    customer_name       = db.Column(db.String(120), nullable=True)
    customer_phone      = db.Column(db.String(30), nullable=True)
    subtotal            = db.Column(db.Numeric(12, 2), nullable=False)
    discount_amount     = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    total_amount        = db.Column(db.Numeric(12, 2), nullable=False)
    payment_type        = db.Column(db.String(20), nullable=False, default='cash')
    change_amount       = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    notes               = db.Column(db.String(255), nullable=False, default='')
    is_cancelled        = db.Column(db.Boolean, nullable=False, default=False)
    created_at          = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    # ── Relationships ─────────────────────────────────────────────
    operator = db.relationship('User', backref='sales', lazy='select')
    register = db.relationship('CashRegister', backref=db.backref('sales', lazy='select'))
    items    = db.relationship('SaleItem', backref='sale', lazy='select',
                               cascade='all, delete-orphan', order_by='SaleItem.id')

    def to_record(self):
        """Immutable CommittedSale view of this row."""
        from pdv.billing.records import CommittedSale, SaleData, SaleLine

        def dec(value):
            return Decimal(str(value)) if value is not None else None

        data = SaleData(
            operator_id=self.operator_id,
            store=self.store,
            customer_name=self.customer_name,
            customer_phone=self.customer_phone,
            subtotal=dec(self.subtotal),
            discount_amount=dec(self.discount_amount),
            discount_percentage=dec(self.discount_percentage),
            total_amount=dec(self.total_amount),
            payment_type=self.payment_type,
            change_amount=dec(self.change_amount),
            notes=self.notes or '',
        )
        lines = tuple(
            SaleLine(
                product_id=i.product_id,
                product_code=i.product_code,
                product_name=i.product_name,
                quantity=i.quantity,
                weight_kg=dec(i.weight_kg),
                unit_price=dec(i.unit_price),
                price_per_gram=dec(i.price_per_gram),
                discount_amount=dec(i.discount_amount),
                subtotal=dec(i.subtotal),
            )
            for i in self.items
        )
        return CommittedSale(
            id=self.id,
            sale_number=self.sale_number,
            register_id=self.register_id,
            created_at=self.created_at,
            data=data,
            items=lines,
        )

    def __repr__(self):
        return f"<Sale {self.sale_number!r} {self.store} R${self.total_amount}>"


class SaleItem(db.Model):
    """
    One line of a Sale. Product code, name and prices are copied at
    sale time so later catalog edits don't alter historical sales.
    """
    __tablename__ = 'sale_items'

    id              = db.Column(db.Integer, primary_key=True)
    sale_id         = db.Column(db.Integer, db.ForeignKey('sales.id'), nullable=False)
    product_id      = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    product_code    = db.Column(db.String(40), nullable=False)
    product_name    = db.Column(db.String(200), nullable=False)
    quantity        = db.Column(db.Integer, nullable=False)
    weight_kg       = db.Column(db.Numeric(10, 3), nullable=True)
    unit_price      = db.Column(db.Numeric(10, 2), nullable=True)
    price_per_gram  = db.Column(db.Numeric(10, 5), nullable=True)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    subtotal        = db.Column(db.Numeric(12, 2), nullable=False)

    __table_args__ = (
        db.CheckConstraint('quantity >= 1', name='check_sale_item_quantity'),
        db.CheckConstraint('subtotal >= 0', name='check_sale_item_subtotal'),
    )

    def __repr__(self):
        return f"<SaleItem sale={self.sale_id} product={self.product_id} qty={self.quantity}>"
