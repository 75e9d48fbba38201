"""
pdv/registers/provider.py
-------------------------
Read-side of the cash register for the sale finalizer: is there an
open register for this store, and which one.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RegisterSession:
    id:      int
    is_open: bool


class SqlRegisterProvider:

    def __init__(self, store: str):
        self.store = store

    def current_register(self):
        """The open CashRegister row of this store, or None."""
        from pdv.registers.models import CashRegister
        return (
            CashRegister.query
            .filter(CashRegister.store == self.store, CashRegister.closed_at == None)  # noqa: E711
            .order_by(CashRegister.opened_at.desc())
            .first()
        )

    def current_session(self) -> Optional[RegisterSession]:
        register = self.current_register()
        if register is None:
            return None
        return RegisterSession(id=register.id, is_open=register.is_open)
