from datetime import datetime
from decimal import Decimal
from pdv import db


class CashRegister(db.Model):
    """
    One cash register shift of a store: opening float, running sales
    total, and the counted closing amount.
    """
    __tablename__ = 'cash_registers'

    id             = db.Column(db.Integer, primary_key=True)
    store          = db.Column(db.String(30), nullable=False, index=True)
    operator_id    = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    opening_amount = db.Column(db.Numeric(10, 2), nullable=False)

    # Running total of sales in this shift (incremented when a sale commits)
    sales_total    = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    closing_amount = db.Column(db.Numeric(10, 2), nullable=True)
    difference     = db.Column(db.Numeric(10, 2), nullable=True)
    opened_at      = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    closed_at      = db.Column(db.DateTime, nullable=True)

    operator = db.relationship('User', backref=db.backref('registers', lazy='dynamic'))

    @property
    def is_open(self) -> bool:
        return self.closed_at is None

    def cash_sales_total(self) -> Decimal:
        """Cash taken in by non-cancelled cash sales of this shift."""
        return sum(
            (Decimal(str(s.total_amount)) for s in self.sales
             if not s.is_cancelled and s.payment_type == 'cash'),
            Decimal('0'),
        )

    @property
    def expected_balance(self) -> Decimal:
        return Decimal(str(self.opening_amount)) + self.cash_sales_total()

    def close(self, closing_amount: Decimal) -> Decimal:
        """Record the counted drawer and return the difference (counted − expected)."""
        self.closing_amount = closing_amount
        self.closed_at      = datetime.utcnow()
        self.difference     = Decimal(str(closing_amount)) - self.expected_balance
        return self.difference

    def to_dict(self) -> dict:
        return {
            'id':             self.id,
            'store':          self.store,
            'operator_id':    self.operator_id,
            'opening_amount': str(self.opening_amount),
            'sales_total':    str(self.sales_total),
            'closing_amount': str(self.closing_amount) if self.closing_amount is not None else None,
            'difference':     str(self.difference) if self.difference is not None else None,
            'opened_at':      self.opened_at.isoformat() if self.opened_at else None,
            'closed_at':      self.closed_at.isoformat() if self.closed_at else None,
            'is_open':        self.is_open,
        }

    def __repr__(self):
        return f"<CashRegister {self.id} {self.store} Open:{self.opening_amount}>"
