"""
pdv/errors.py
-------------
Failure taxonomy for the cart and the sale finalizer.

Every error carries a stable `code` (used in JSON responses) and a
human message the operator screen can show as-is.

    PDVError
    ├── InvalidProduct             bad or inactive product, add rejected
    ├── FinalizeRejected           pre-submission, cart untouched
    │   ├── EmptyCart
    │   ├── RegisterClosed
    │   ├── InsufficientChangeAmount
    │   └── AlreadyProcessing
    └── PersistenceFailure         submission fault, cart preserved
"""


class PDVError(Exception):
    code = 'pdv_error'

    def __init__(self, message: str = None, **context):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = str(self)
        self.context = context

    def to_dict(self) -> dict:
        payload = {'error': self.message, 'code': self.code}
        if self.context:
            payload['context'] = {k: str(v) for k, v in self.context.items()}
        return payload


class InvalidProduct(PDVError):
    """Product cannot be sold."""
    code = 'invalid_product'


class FinalizeRejected(PDVError):
    """Sale cannot be finalized."""
    code = 'finalize_rejected'


class EmptyCart(FinalizeRejected):
    """Add at least one item to the cart."""
    code = 'empty_cart'


class RegisterClosed(FinalizeRejected):
    """No open cash register for this store."""
    code = 'register_closed'


class InsufficientChangeAmount(FinalizeRejected):
    """Cash tendered is less than the sale total."""
    code = 'insufficient_change_amount'


class AlreadyProcessing(FinalizeRejected):
    """A sale is already being submitted from this terminal."""
    code = 'already_processing'


class PersistenceFailure(PDVError):
    """The sale could not be saved. Try again."""
    code = 'persistence_failure'
