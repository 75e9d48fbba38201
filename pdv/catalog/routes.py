from flask import request, jsonify, abort, current_app
from sqlalchemy.exc import IntegrityError

from pdv import db
from pdv.auth.decorators import terminal_required, admin_required
from pdv.catalog import catalog
from pdv.catalog.models import Product, CATEGORIES
from pdv.catalog.validators import validate_product_form, parse_product_form
from pdv.errors import InvalidProduct


@catalog.route('/categories')
def categories():
    return jsonify([{'id': value, 'label': label} for value, label in CATEGORIES])


@catalog.route('/products')
@terminal_required
def products(terminal):
    """
    Active products of the terminal's store.
    ?q=      substring over name / code / barcode / category
    ?category=acai  exact category filter
    """
    q        = request.args.get('q', '').strip()
    category = request.args.get('category', '').strip()

    provider = terminal.store.catalog
    results  = provider.search_products(q) if q else provider.list_active_products()
    if category and category != 'all':
        results = [p for p in results if p.category == category]

    return jsonify([p.to_dict() for p in results])


@catalog.route('/products/<int:product_id>')
@terminal_required
def product_detail(terminal, product_id):
    try:
        snap = terminal.store.catalog.get_product(product_id)
    except InvalidProduct as exc:
        return jsonify(exc.to_dict()), 404
    return jsonify(snap.to_dict())


@catalog.route('/products', methods=['POST'])
@admin_required
def create_product():
    data   = request.get_json(silent=True) or request.form.to_dict()
    errors = validate_product_form(data, stores=current_app.config['POS_STORES'])
    if errors:
        return jsonify({'errors': errors, 'code': 'validation_error'}), 400

    product = Product(**parse_product_form(data))
    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'errors': {'code': 'Code already used in this store.'},
                        'code': 'validation_error'}), 400

    current_app.logger.info(f"Product created: {product.store}/{product.code}")
    return jsonify(product.to_dict()), 201


@catalog.route('/products/<int:product_id>', methods=['PUT'])
@admin_required
def update_product(product_id):
    """
    Full replace of a product's editable fields (store is fixed).
    Carts that already hold the product keep their add-time snapshot.
    """
    product = db.session.get(Product, product_id)
    if product is None:
        abort(404)

    data = request.get_json(silent=True) or request.form.to_dict()
    data['store'] = product.store
    errors = validate_product_form(data, stores=current_app.config['POS_STORES'])
    if errors:
        return jsonify({'errors': errors, 'code': 'validation_error'}), 400

    for key, value in parse_product_form(data).items():
        setattr(product, key, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'errors': {'code': 'Code already used in this store.'},
                        'code': 'validation_error'}), 400

    current_app.logger.info(f"Product updated: {product.store}/{product.code}")
    return jsonify(product.to_dict())
