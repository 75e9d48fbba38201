"""
pdv/billing/finalizer.py
------------------------
Turns the terminal's cart into a persisted sale.

One finalize attempt moves through:

    IDLE → VALIDATING → REJECTED
                      → SUBMITTING → COMMITTED
                                   → FAILED

Only one attempt may be in flight per terminal. A second call while
the first is validating or submitting raises AlreadyProcessing; it is
never queued and never double-submitted.

On COMMITTED the cart is cleared. On REJECTED or FAILED the cart is
left exactly as it was so the operator can fix it and try again.
Nothing here retries on its own.
"""
from __future__ import annotations
import enum
import logging
import threading

from pdv.billing.cart import CartStore, PaymentMethod
from pdv.billing.records import CommittedSale, Operator, SaleData, SaleLine
from pdv.errors import (
    AlreadyProcessing, EmptyCart, FinalizeRejected, InsufficientChangeAmount,
    PersistenceFailure, RegisterClosed,
)
from pdv.utils.money import ZERO, round2


log = logging.getLogger(__name__)


class FinalizeState(enum.Enum):
    idle       = 'idle'
    validating = 'validating'
    rejected   = 'rejected'
    submitting = 'submitting'
    committed  = 'committed'
    failed     = 'failed'


class SaleFinalizer:
    """
    Args:
        cart:        the terminal's CartStore
        store:       StoreContext (channel tag + register provider)
        persistence: object with create_sale(sale_data, items, register_id)
                     returning a CommittedSale and raising
                     PersistenceFailure on storage faults
    """

    def __init__(self, cart: CartStore, store, persistence):
        self.cart        = cart
        self.store       = store
        self.persistence = persistence
        self.state       = FinalizeState.idle
        self.last_error  = None
        self._busy       = threading.Lock()

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    def finalize(self, operator: Operator) -> CommittedSale:
        if not self._busy.acquire(blocking=False):
            log.warning(f"Finalize rejected on {self.store.channel}: already processing")
            raise AlreadyProcessing()
        try:
            return self._run(operator)
        finally:
            self._busy.release()

    # ── Steps ─────────────────────────────────────────────────────

    def _run(self, operator: Operator) -> CommittedSale:
        self.state = FinalizeState.validating
        self.last_error = None
        try:
            register_id = self._validate()
            sale_data, lines = self._assemble(operator)
        except FinalizeRejected as exc:
            self.state = FinalizeState.rejected
            self.last_error = exc
            log.info(f"Finalize rejected on {self.store.channel}: {exc.code}")
            raise

        self.state = FinalizeState.submitting
        try:
            sale = self.persistence.create_sale(sale_data, lines, register_id)
        except PersistenceFailure as exc:
            self.state = FinalizeState.failed
            self.last_error = exc
            log.error(
                f"Sale submission failed on {self.store.channel} "
                f"(register {register_id}, total {sale_data.total_amount}): {exc}"
            )
            raise
        except Exception as exc:
            self.state = FinalizeState.failed
            failure = PersistenceFailure(register_id=register_id)
            self.last_error = failure
            log.exception(
                f"Unexpected error submitting sale on {self.store.channel} "
                f"(register {register_id}, total {sale_data.total_amount}): {exc}"
            )
            raise failure from exc

        self.cart.clear_cart()
        self.state = FinalizeState.committed
        log.info(
            f"Sale {sale.sale_number} committed on {self.store.channel} by operator "
            f"{operator.id} | Register {register_id} | Total: {sale.data.total_amount}"
        )
        return sale

    def _validate(self) -> int:
        """Return the open register id, or raise the first failed precondition."""
        if self.cart.is_empty:
            raise EmptyCart()

        session = self.store.registers.current_session()
        if session is None or not session.is_open:
            raise RegisterClosed()

        payment = self.cart.payment_info
        if payment.method is PaymentMethod.cash and payment.change_for is not None:
            total = self.cart.get_total()
            if payment.change_for < total:
                raise InsufficientChangeAmount(
                    f'Cash tendered R${payment.change_for} is less than the total R${total}.',
                    change_for=payment.change_for, total=total,
                )
        return session.id

    def _assemble(self, operator: Operator):
        snap    = self.cart.snapshot()
        totals  = snap.totals
        payment = snap.payment

        # Re-check against the snapshot the sale is built from
        if not snap.items:
            raise EmptyCart()

        change_amount = ZERO
        if payment.method is PaymentMethod.cash and payment.change_for is not None:
            change_amount = max(ZERO, payment.change_for - totals.total)

        sale_data = SaleData(
            operator_id=operator.id,
            store=self.store.channel,
            customer_name=payment.customer_name,
            customer_phone=payment.customer_phone,
            subtotal=totals.subtotal,
            discount_amount=totals.discount_amount,
            discount_percentage=snap.discount.percentage,
            total_amount=totals.total,
            payment_type=payment.method.value,
            change_amount=round2(change_amount),
        )
        lines = tuple(SaleLine.from_cart_line(item) for item in snap.items)
        return sale_data, lines
