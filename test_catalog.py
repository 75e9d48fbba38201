"""
test_catalog.py — Catalog provider, product validation, catalog routes.
Run: pytest test_catalog.py -v
"""
import pytest
from decimal import Decimal

from pdv import create_app, db
from pdv.auth.models import User, RoleEnum
from pdv.catalog.models import Product
from pdv.catalog.provider import SqlCatalogProvider
from pdv.catalog.validators import validate_product_form, parse_product_form
from pdv.errors import InvalidProduct


@pytest.fixture(scope='function')
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        for username, role in (('admin', RoleEnum.admin), ('caixa1', RoleEnum.cashier)):
            u = User(username=username, name=username.title(), role=role)
            u.set_password('123')
            db.session.add(u)

        db.session.add_all([
            Product(store='loja1', code='ACAI300', barcode='7890001', name='Açaí 300ml',
                    category='acai', unit_price=Decimal('12.90')),
            Product(store='loja1', code='ACAI-KG', name='Açaí no peso', category='acai',
                    is_weighable=True, price_per_gram=Decimal('0.04499')),
            Product(store='loja1', code='REFR350', name='Refrigerante lata', category='bebidas',
                    unit_price=Decimal('6.00')),
            Product(store='loja1', code='OLD', name='Açaí antigo', category='acai',
                    unit_price=Decimal('9.00'), is_active=False),
            # Misconfigured: weighable with no gram price
            Product(store='loja1', code='BROKEN', name='Sorvete quebrado', category='sorvetes',
                    is_weighable=True, unit_price=Decimal('5.00')),
            Product(store='loja2', code='ACAI300', name='Açaí 300ml (Loja 2)', category='acai',
                    unit_price=Decimal('13.90')),
        ])
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, username='caixa1', store='loja1'):
    return client.post('/auth/login', json={'username': username, 'password': '123', 'store': store})


# ── 1. Provider ───────────────────────────────────────────────────

def test_list_active_products_per_store(app):
    names = [p.name for p in SqlCatalogProvider('loja1').list_active_products()]
    assert names == ['Açaí 300ml', 'Açaí no peso', 'Refrigerante lata']
    assert [p.name for p in SqlCatalogProvider('loja2').list_active_products()] == ['Açaí 300ml (Loja 2)']


@pytest.mark.parametrize('query, expected', [
    ('açaí', {'ACAI300', 'ACAI-KG'}),
    ('REFR', {'REFR350'}),
    ('7890001', {'ACAI300'}),
    ('bebidas', {'REFR350'}),
    ('lata', {'REFR350'}),
    ('nothing-here', set()),
])
def test_search_products(app, query, expected):
    found = {p.code for p in SqlCatalogProvider('loja1').search_products(query)}
    assert found == expected


def test_get_product_snapshot(app):
    provider = SqlCatalogProvider('loja1')
    weighed = Product.query.filter_by(store='loja1', code='ACAI-KG').one()
    snap = provider.get_product(weighed.id)
    assert snap.is_weighable
    assert snap.price_per_gram == Decimal('0.04499')
    assert snap.display_price == Decimal('44.99')


def test_get_product_rejects_inactive_and_foreign(app):
    provider = SqlCatalogProvider('loja1')
    old = Product.query.filter_by(code='OLD').one()
    other = Product.query.filter_by(store='loja2').one()
    with pytest.raises(InvalidProduct):
        provider.get_product(old.id)
    with pytest.raises(InvalidProduct):
        provider.get_product(other.id)


def test_get_product_rejects_missing_price(app):
    broken = Product.query.filter_by(code='BROKEN').one()
    with pytest.raises(InvalidProduct):
        SqlCatalogProvider('loja1').get_product(broken.id)


def test_get_by_code(app):
    provider = SqlCatalogProvider('loja1')
    assert provider.get_by_code('refr350').code == 'REFR350'
    assert provider.get_by_code('7890001').code == 'ACAI300'
    with pytest.raises(InvalidProduct):
        provider.get_by_code('OLD')


# ── 2. Validators ─────────────────────────────────────────────────

def test_validator_requires_price_per_gram_when_weighable():
    errors = validate_product_form({
        'name': 'Açaí no peso', 'code': 'ACAI-KG', 'category': 'acai',
        'is_weighable': 'on', 'price_per_gram': '', 'unit_price': '10',
    })
    assert 'price_per_gram' in errors
    assert 'unit_price' not in errors


def test_validator_requires_unit_price_when_not_weighable():
    errors = validate_product_form({'name': 'Água', 'code': 'AGUA', 'unit_price': '0'})
    assert errors == {'unit_price': 'Unit price must be greater than zero.'}


@pytest.mark.parametrize('raw', ['NaN', 'Infinity', '-inf'])
def test_validator_rejects_non_finite_price(raw):
    errors = validate_product_form({'name': 'Água', 'code': 'AGUA', 'unit_price': raw})
    assert errors == {'unit_price': 'Unit price must be a valid number.'}


def test_validator_checks_store_and_category():
    errors = validate_product_form(
        {'name': 'X', 'code': 'X', 'unit_price': '1', 'store': 'loja9', 'category': 'pizza'},
        stores={'loja1': 'Loja 1'},
    )
    assert set(errors) == {'store', 'category'}


def test_parse_drops_inactive_price_field():
    parsed = parse_product_form({
        'name': 'Açaí no peso', 'code': 'ACAI-KG', 'store': 'loja1', 'category': 'acai',
        'is_weighable': True, 'price_per_gram': '0.05', 'unit_price': '10',
    })
    assert parsed['price_per_gram'] == Decimal('0.05')
    assert parsed['unit_price'] is None


# ── 3. Routes ─────────────────────────────────────────────────────

def test_products_route_uses_terminal_store(client):
    login(client, store='loja2')
    data = client.get('/catalog/products').get_json()
    assert [p['code'] for p in data] == ['ACAI300']
    assert data[0]['unit_price'] == '13.90'


def test_products_route_search_and_category(client):
    login(client)
    data = client.get('/catalog/products?q=acai').get_json()
    assert {p['code'] for p in data} == {'ACAI300', 'ACAI-KG'}
    data = client.get('/catalog/products?category=bebidas').get_json()
    assert [p['code'] for p in data] == ['REFR350']


def test_create_product_requires_admin(client):
    login(client)
    resp = client.post('/catalog/products', json={'name': 'X', 'code': 'X', 'unit_price': '1',
                                                  'store': 'loja1'})
    assert resp.status_code == 403


def test_admin_creates_product(client):
    login(client, username='admin')
    resp = client.post('/catalog/products', json={
        'name': 'Sorvete no peso', 'code': 'SORV-KG', 'store': 'loja1', 'category': 'sorvetes',
        'is_weighable': True, 'price_per_gram': '0.0599',
    })
    assert resp.status_code == 201
    assert resp.get_json()['price_per_gram'] == '0.05990'

    dup = client.post('/catalog/products', json={
        'name': 'Dup', 'code': 'SORV-KG', 'store': 'loja1', 'unit_price': '1',
    })
    assert dup.status_code == 400


def test_admin_update_does_not_reprice_cart(client, app):
    """A price edit reaches new adds, not lines already in a cart."""
    login(client, username='admin')
    product = Product.query.filter_by(store='loja1', code='REFR350').one()
    client.post('/billing/cart/items', json={'product_id': product.id})

    resp = client.put(f'/catalog/products/{product.id}', json={
        'name': 'Refrigerante lata', 'code': 'REFR350', 'category': 'bebidas', 'unit_price': '7.00',
    })
    assert resp.status_code == 200
    assert resp.get_json()['unit_price'] == '7.00'

    cart = client.get('/billing/cart').get_json()
    assert cart['items'][0]['unit_price'] == '6.00'
