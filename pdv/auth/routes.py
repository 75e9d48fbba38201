from flask import request, session, jsonify, current_app
from pdv import db
from pdv.auth import auth
from pdv.auth.models import User
from pdv.billing.persistence import SqlSalePersistence
from pdv.stores import store_context, UnknownStore


@auth.route('/login', methods=['POST'])
def login():
    """
    Validate credentials and open a terminal for the chosen store.
    Body (form or JSON): username, password, store (optional).
    """
    data = request.get_json(silent=True) or request.form
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    channel  = (data.get('store') or '').strip() or None

    if not username or not password:
        return jsonify({'error': 'Username and password are required.', 'code': 'bad_request'}), 400

    user = User.query.filter_by(username=username).first()
    if user is None or not user.can_log_in(password):
        # Same message for unknown user, bad password and deactivated account
        current_app.logger.warning(f"Failed login attempt for username: {username}")
        return jsonify({'error': 'Invalid username or password.', 'code': 'bad_credentials'}), 401

    try:
        store = store_context(channel)
    except UnknownStore:
        return jsonify({'error': f'Unknown store "{channel}".', 'code': 'unknown_store'}), 400

    registry = current_app.extensions['pdv_terminals']
    registry.close(session.get('terminal_id'))
    terminal = registry.open(store, user.as_operator(), SqlSalePersistence(db.session))

    session.clear()
    session['user_id']     = user.id
    session['role']        = user.role.value
    session['terminal_id'] = terminal.id
    session.permanent      = True

    user.record_login()
    db.session.commit()

    current_app.logger.info(f"User {user.username} logged in at {store.channel} (terminal {terminal.id}).")
    return jsonify({
        'user':     {'id': user.id, 'name': user.name, 'role': user.role.value},
        'store':    {'channel': store.channel, 'name': store.name},
        'terminal': terminal.id,
    })


@auth.route('/logout', methods=['POST'])
def logout():
    """Drop the terminal (and its cart) and clear the session."""
    current_app.extensions['pdv_terminals'].close(session.get('terminal_id'))
    session.clear()
    return jsonify({'message': 'Logged out.'})
