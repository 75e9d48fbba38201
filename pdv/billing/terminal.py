"""
pdv/billing/terminal.py
-----------------------
A Terminal is one operator logged in at one store: it owns that
operator's CartStore and SaleFinalizer for the whole login.

Terminals live in a TerminalRegistry stored on the app
(app.extensions['pdv_terminals']); the Flask session only carries the
terminal id. A terminal idle for longer than the session lifetime
belongs to a cookie that has already expired, so the registry drops
it the next time it is consulted.
"""
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional

from pdv.billing.cart import CartStore
from pdv.billing.finalizer import SaleFinalizer
from pdv.billing.records import Operator


@dataclass
class Terminal:
    store:     object          # StoreContext
    operator:  Operator
    cart:      CartStore
    finalizer: SaleFinalizer
    id:        str = field(default_factory=lambda: uuid.uuid4().hex)
    opened_at: datetime = field(default_factory=datetime.utcnow)
    last_seen: datetime = field(default_factory=datetime.utcnow)

    def touch(self) -> None:
        self.last_seen = datetime.utcnow()


class TerminalRegistry:

    def __init__(self, max_idle: timedelta = timedelta(hours=8)):
        self.max_idle = max_idle
        self._lock = threading.Lock()
        self._terminals: Dict[str, Terminal] = {}

    def open(self, store, operator: Operator, persistence) -> Terminal:
        cart = CartStore()
        terminal = Terminal(
            store=store,
            operator=operator,
            cart=cart,
            finalizer=SaleFinalizer(cart, store, persistence),
        )
        with self._lock:
            self._evict_idle()
            self._terminals[terminal.id] = terminal
        return terminal

    def get(self, terminal_id: str) -> Optional[Terminal]:
        if not terminal_id:
            return None
        with self._lock:
            self._evict_idle()
            return self._terminals.get(terminal_id)

    def close(self, terminal_id: str) -> None:
        with self._lock:
            self._terminals.pop(terminal_id, None)

    def __len__(self):
        with self._lock:
            return len(self._terminals)

    def _evict_idle(self) -> None:
        # Caller holds self._lock. A terminal mid-submission is never dropped.
        cutoff = datetime.utcnow() - self.max_idle
        for terminal_id, terminal in list(self._terminals.items()):
            if terminal.last_seen < cutoff and not terminal.finalizer.is_busy:
                del self._terminals[terminal_id]
