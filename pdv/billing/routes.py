from functools import wraps

from flask import request, jsonify, abort, current_app

from pdv import db
from pdv.auth.decorators import terminal_required
from pdv.billing import billing
from pdv.billing.discounts import DiscountSpec
from pdv.billing.models import Sale
from pdv.errors import (
    PDVError, InvalidProduct, FinalizeRejected, AlreadyProcessing, PersistenceFailure,
)
from pdv.utils.money import grams_to_kg


# HTTP status per failure type; first match wins
ERROR_STATUS = (
    (AlreadyProcessing,  409),
    (FinalizeRejected,   409),
    (InvalidProduct,     400),
    (PersistenceFailure, 503),
    (PDVError,           400),
)


def error_response(exc: PDVError):
    status = next(code for kind, code in ERROR_STATUS if isinstance(exc, kind))
    return jsonify(exc.to_dict()), status


def bad_request(message: str):
    return jsonify({'error': message, 'code': 'bad_request'}), 400


def cart_response(terminal, status=200):
    payload = terminal.cart.to_dict()
    payload['store']  = {'channel': terminal.store.channel, 'name': terminal.store.name}
    payload['status'] = terminal.finalizer.state.value
    return jsonify(payload), status


def cart_mutation(f):
    """
    Wrap a cart-editing view: refuses edits while a sale from this
    terminal is being submitted, and maps bad input to 400.
    """
    @wraps(f)
    def decorated(terminal, *args, **kwargs):
        if terminal.finalizer.is_busy:
            return error_response(AlreadyProcessing('Cart is locked while the sale is being submitted.'))
        try:
            f(terminal, *args, **kwargs)
        except PDVError as exc:
            current_app.logger.warning(f"Cart edit rejected on {terminal.store.channel}: {exc}")
            return error_response(exc)
        except (ValueError, KeyError) as exc:
            return bad_request(f'Invalid value: {exc}')
        return cart_response(terminal)
    return decorated


def _payload() -> dict:
    return request.get_json(silent=True) or request.form.to_dict()


# ── CART ──────────────────────────────────────────────────────────

@billing.route('/cart')
@terminal_required
def cart(terminal):
    return cart_response(terminal)


@billing.route('/cart/items', methods=['POST'])
@terminal_required
@cart_mutation
def add_item(terminal):
    """
    Add a product by product_id, or by code / barcode.
    Weighable products need weight_kg, or weight_g as read from the scale.
    """
    data    = _payload()
    catalog = terminal.store.catalog

    if data.get('product_id') not in (None, ''):
        product = catalog.get_product(int(data['product_id']))
    elif data.get('code'):
        product = catalog.get_by_code(str(data['code']).strip())
    else:
        raise ValueError('product_id or code is required')

    weight_kg = data.get('weight_kg')
    if weight_kg in (None, '') and data.get('weight_g') not in (None, ''):
        weight_kg = grams_to_kg(data['weight_g'])
    if weight_kg == '':
        weight_kg = None

    terminal.cart.add_item(product, int(data.get('quantity') or 1), weight_kg)


@billing.route('/cart/items/<int:product_id>', methods=['DELETE'])
@terminal_required
@cart_mutation
def remove_item(terminal, product_id):
    terminal.cart.remove_item(product_id)


@billing.route('/cart/items/<int:product_id>', methods=['PATCH'])
@terminal_required
@cart_mutation
def update_item(terminal, product_id):
    terminal.cart.update_item_quantity(product_id, int(_payload()['quantity']))


@billing.route('/cart/lines/<line_id>', methods=['DELETE'])
@terminal_required
@cart_mutation
def remove_line(terminal, line_id):
    terminal.cart.remove_line(line_id)


@billing.route('/cart/lines/<line_id>', methods=['PATCH'])
@terminal_required
@cart_mutation
def update_line(terminal, line_id):
    """Body: quantity and/or line_discount."""
    data = _payload()
    if data.get('line_discount') not in (None, ''):
        terminal.cart.set_line_discount(line_id, data['line_discount'])
    if data.get('quantity') not in (None, ''):
        terminal.cart.update_line_quantity(line_id, int(data['quantity']))


@billing.route('/cart/discount', methods=['PUT'])
@terminal_required
@cart_mutation
def set_discount(terminal):
    data = _payload()
    terminal.cart.set_discount(DiscountSpec(data.get('kind') or 'none', data.get('value') or 0))


@billing.route('/cart/payment', methods=['PUT'])
@terminal_required
@cart_mutation
def update_payment(terminal):
    data = _payload()
    changes = {k: data[k] for k in ('method', 'customer_name', 'customer_phone', 'change_for') if k in data}
    if changes.get('change_for') == '':
        changes['change_for'] = None
    terminal.cart.update_payment_info(**changes)


@billing.route('/cart', methods=['DELETE'])
@terminal_required
@cart_mutation
def clear(terminal):
    terminal.cart.clear_cart()


# ── FINALIZE ──────────────────────────────────────────────────────

@billing.route('/finalize', methods=['POST'])
@terminal_required
def finalize(terminal):
    """
    Commit the cart as a sale against the store's open cash register.
    201 + sale on success; the cart is cleared.
    409 on validation failures, 503 when the sale could not be saved;
    in both cases the cart is unchanged and the call can be repeated.
    """
    try:
        sale = terminal.finalizer.finalize(terminal.operator)
    except PDVError as exc:
        return error_response(exc)

    current_app.logger.info(
        f"Sale completed by User ID {terminal.operator.id}: {sale.sale_number} | Total: {sale.data.total_amount}"
    )
    return jsonify(sale.to_dict()), 201


@billing.route('/sales/<int:sale_id>')
@terminal_required
def sale_detail(terminal, sale_id):
    """Sale data for receipt display."""
    sale = db.session.get(Sale, sale_id)
    if sale is None or sale.store != terminal.store.channel:
        abort(404)
    return jsonify(sale.to_record().to_dict())
