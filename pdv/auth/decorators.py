"""
pdv/auth/decorators.py
----------------------
Reusable route-protection decorators for the JSON API.
Usage:
    from pdv.auth.decorators import login_required, terminal_required, admin_required

    @billing.route('/cart')
    @terminal_required
    def cart(terminal):
        ...
"""
from functools import wraps
from flask import session, jsonify, abort, current_app


def current_terminal():
    """The Terminal bound to this login, or None."""
    registry = current_app.extensions['pdv_terminals']
    return registry.get(session.get('terminal_id'))


def login_required(f):
    """401 unless the user is authenticated (checks 'user_id' in session)."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({'error': 'Please log in.', 'code': 'unauthenticated'}), 401
        return f(*args, **kwargs)
    return decorated


def terminal_required(f):
    """
    Like login_required, and passes the logged-in Terminal as the
    first argument. A login whose terminal is gone (e.g. after a
    server restart) must log in again.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({'error': 'Please log in.', 'code': 'unauthenticated'}), 401
        terminal = current_terminal()
        if terminal is None:
            session.clear()
            return jsonify({'error': 'Terminal session expired. Please log in again.',
                            'code': 'terminal_expired'}), 401
        terminal.touch()
        return f(terminal, *args, **kwargs)
    return decorated


def admin_required(f):
    """
    Allow access only to users with role == 'admin'.
    Unauthenticated → 401, authenticated non-admin → 403.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({'error': 'Please log in.', 'code': 'unauthenticated'}), 401
        if session.get('role') != 'admin':
            abort(403)
        return f(*args, **kwargs)
    return decorated
