import enum
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from pdv import db


class RoleEnum(enum.Enum):
    admin   = "admin"
    cashier = "cashier"


class User(db.Model):
    """
    Someone who logs in at a PDV terminal. Cashiers sell; admins also
    manage the catalog and read the cash reports. Operators are never
    deleted (their sales and registers point at them), only deactivated.
    """
    __tablename__ = 'users'

    id            = db.Column(db.Integer, primary_key=True)
    name          = db.Column(db.String(120), nullable=False)
    username      = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role          = db.Column(db.Enum(RoleEnum), nullable=False, default=RoleEnum.cashier)
    is_active     = db.Column(db.Boolean, nullable=False, default=True)
    last_login_at = db.Column(db.DateTime, nullable=True)
    created_at    = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def set_password(self, plain_password: str) -> None:
        self.password_hash = generate_password_hash(plain_password)

    def check_password(self, plain_password: str) -> bool:
        return check_password_hash(self.password_hash, plain_password)

    def can_log_in(self, plain_password: str) -> bool:
        """Password matches and the account has not been deactivated."""
        return self.is_active and self.check_password(plain_password)

    def record_login(self) -> None:
        self.last_login_at = datetime.utcnow()

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.admin

    def as_operator(self):
        """Operator context attached to every sale this user finalizes."""
        from pdv.billing.records import Operator
        return Operator(id=self.id, name=self.name)

    def __repr__(self) -> str:
        state = '' if self.is_active else ' inactive'
        return f"<User {self.username!r} {self.role.value}{state}>"
