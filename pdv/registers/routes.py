from decimal import Decimal, InvalidOperation

from flask import request, jsonify, current_app

from pdv import db
from pdv.auth.decorators import terminal_required
from pdv.registers import registers
from pdv.registers.models import CashRegister


def _amount(field: str):
    data = request.get_json(silent=True) or request.form
    raw = str(data.get(field, '')).strip()
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return None
    if not value.is_finite() or value < 0:
        return None
    return value


@registers.route('/current')
@terminal_required
def current(terminal):
    register = terminal.store.registers.current_register()
    if register is None:
        return jsonify({'is_open': False, 'register': None})
    return jsonify({'is_open': True, 'register': register.to_dict()})


@registers.route('/open', methods=['POST'])
@terminal_required
def open_register(terminal):
    """Open a register for the terminal's store with the given opening_amount."""
    if terminal.store.registers.current_register() is not None:
        return jsonify({'error': 'A cash register is already open for this store.',
                        'code': 'register_open'}), 409

    opening = _amount('opening_amount')
    if opening is None:
        return jsonify({'error': 'Opening amount must be a non-negative number.',
                        'code': 'bad_request'}), 400

    register = CashRegister(
        store=terminal.store.channel,
        operator_id=terminal.operator.id,
        opening_amount=opening,
        sales_total=0,
    )
    db.session.add(register)
    db.session.commit()
    current_app.logger.info(f"Cash register {register.id} opened at {register.store} with {opening}")
    return jsonify(register.to_dict()), 201


@registers.route('/close', methods=['POST'])
@terminal_required
def close_register(terminal):
    """Close the store's open register with the counted closing_amount."""
    register = terminal.store.registers.current_register()
    if register is None:
        return jsonify({'error': 'No open cash register for this store.',
                        'code': 'register_closed'}), 409
    if terminal.finalizer.is_busy:
        return jsonify({'error': 'A sale is being submitted.', 'code': 'already_processing'}), 409

    closing = _amount('closing_amount')
    if closing is None:
        return jsonify({'error': 'Closing amount must be a non-negative number.',
                        'code': 'bad_request'}), 400

    diff = register.close(closing)
    db.session.commit()

    if diff != 0:
        current_app.logger.warning(
            f"Register Closed (ID {register.id}): Difference {diff} "
            f"(Exp: {register.expected_balance}, Act: {closing})"
        )
    return jsonify(register.to_dict())
