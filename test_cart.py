"""
test_cart.py — CartStore: lines, merging, weighed parcels, totals.
Run: pytest test_cart.py -v
"""
import pytest
from decimal import Decimal

from pdv.billing.cart import CartStore, PaymentMethod
from pdv.billing.discounts import DiscountKind, DiscountSpec
from pdv.catalog.provider import ProductSnapshot
from pdv.errors import InvalidProduct


ACAI_300 = ProductSnapshot(id=1, code='ACAI300', name='Açaí 300ml', category='acai',
                           is_weighable=False, unit_price=Decimal('12.90'))
AGUA     = ProductSnapshot(id=3, code='AGUA500', name='Água 500ml', category='bebidas',
                           is_weighable=False, unit_price=Decimal('3.50'))
ACAI_KG  = ProductSnapshot(id=2, code='ACAI-KG', name='Açaí no peso', category='acai',
                           is_weighable=True, price_per_gram=Decimal('0.04499'))


@pytest.fixture
def cart():
    return CartStore()


def assert_consistent(cart):
    subtotal = sum((i.subtotal for i in cart.items), Decimal('0'))
    assert cart.get_subtotal() == subtotal
    assert cart.get_total() == max(Decimal('0'), cart.get_subtotal() - cart.get_discount_amount())


# ── 1. Adding items ─────────────────────────────────────────────────────────

def test_add_unit_item(cart):
    totals = cart.add_item(ACAI_300, 2)
    assert totals.subtotal == Decimal('25.80')
    assert totals.item_count == 1
    line = cart.items[0]
    assert line.quantity == 2
    assert line.weight_kg is None
    assert line.unit_price == Decimal('12.90')


def test_same_unit_product_merges_into_one_line(cart):
    cart.add_item(ACAI_300, 1)
    totals = cart.add_item(ACAI_300, 2)
    assert totals.item_count == 1
    assert cart.items[0].quantity == 3
    assert totals.subtotal == Decimal('38.70')


def test_weighed_product_creates_line_per_weighing(cart):
    cart.add_item(ACAI_KG, 1, Decimal('0.300'))
    totals = cart.add_item(ACAI_KG, 1, Decimal('0.200'))
    assert totals.item_count == 2
    assert [i.subtotal for i in cart.items] == [Decimal('13.50'), Decimal('9.00')]


def test_add_inactive_product_rejected(cart):
    inactive = ProductSnapshot(id=9, code='X', name='Old', category='outros',
                               is_weighable=False, unit_price=Decimal('1'), is_active=False)
    with pytest.raises(InvalidProduct):
        cart.add_item(inactive, 1)
    assert cart.is_empty


def test_line_keeps_add_time_price(cart):
    """A catalog price change after the add does not re-price the line."""
    cart.add_item(ACAI_300, 1)
    repriced = ProductSnapshot(id=1, code='ACAI300', name='Açaí 300ml', category='acai',
                               is_weighable=False, unit_price=Decimal('15.00'))
    cart.add_item(repriced, 1)
    assert cart.items[0].unit_price == Decimal('12.90')
    assert cart.get_subtotal() == Decimal('25.80')


def test_merge_rejects_inactive_product(cart):
    cart.add_item(AGUA, 1)
    inactive = ProductSnapshot(id=AGUA.id, code='AGUA500', name='Água 500ml', category='bebidas',
                               is_weighable=False, unit_price=Decimal('3.50'), is_active=False)
    with pytest.raises(InvalidProduct):
        cart.add_item(inactive, 1)
    assert cart.items[0].quantity == 1


def test_merge_rejects_weight_on_unit_product(cart):
    cart.add_item(AGUA, 1)
    with pytest.raises(InvalidProduct):
        cart.add_item(AGUA, 1, Decimal('0.5'))
    assert cart.items[0].quantity == 1


@pytest.mark.parametrize('qty', [0, -2])
def test_merge_rejects_non_positive_quantity(cart, qty):
    cart.add_item(AGUA, 1)
    with pytest.raises(ValueError):
        cart.add_item(AGUA, qty)
    assert cart.items[0].quantity == 1


def test_weight_rounded_to_whole_grams(cart):
    totals = cart.add_item(ACAI_KG, 1, Decimal('0.3455'))
    line = cart.items[0]
    assert line.weight_kg == Decimal('0.346')
    # 346 g × 0.04499
    assert totals.subtotal == Decimal('15.57')


def test_weight_below_one_gram_rejected(cart):
    with pytest.raises(InvalidProduct):
        cart.add_item(ACAI_KG, 1, Decimal('0.0004'))
    assert cart.is_empty


# ── 2. Removing / updating ──────────────────────────────────────────────────

def test_remove_item_removes_all_lines_of_product(cart):
    cart.add_item(ACAI_KG, 1, Decimal('0.300'))
    cart.add_item(ACAI_KG, 1, Decimal('0.200'))
    cart.add_item(AGUA, 1)
    totals = cart.remove_item(ACAI_KG.id)
    assert totals.item_count == 1
    assert cart.items[0].product_id == AGUA.id


def test_remove_line_removes_single_parcel(cart):
    cart.add_item(ACAI_KG, 1, Decimal('0.300'))
    cart.add_item(ACAI_KG, 1, Decimal('0.200'))
    first = cart.items[0].line_id
    totals = cart.remove_line(first)
    assert totals.item_count == 1
    assert cart.items[0].weight_kg == Decimal('0.200')


def test_update_quantity_recomputes_subtotal(cart):
    cart.add_item(ACAI_300, 1)
    totals = cart.update_item_quantity(ACAI_300.id, 4)
    assert cart.items[0].quantity == 4
    assert totals.subtotal == Decimal('51.60')


@pytest.mark.parametrize('qty', [0, -1])
def test_update_quantity_to_zero_removes_line(cart, qty):
    cart.add_item(ACAI_300, 2)
    totals = cart.update_item_quantity(ACAI_300.id, qty)
    assert totals.item_count == 0
    assert cart.is_empty


def test_update_line_quantity(cart):
    cart.add_item(AGUA, 1)
    line_id = cart.items[0].line_id
    totals = cart.update_line_quantity(line_id, 3)
    assert totals.subtotal == Decimal('10.50')


def test_line_discount_clamps_at_zero(cart):
    cart.add_item(AGUA, 1)
    line_id = cart.items[0].line_id
    totals = cart.set_line_discount(line_id, Decimal('10.00'))
    assert cart.items[0].subtotal == Decimal('0.00')
    assert totals.total == Decimal('0.00')


def test_line_discount_kept_on_quantity_change(cart):
    cart.add_item(AGUA, 1)
    line_id = cart.items[0].line_id
    cart.set_line_discount(line_id, Decimal('1.00'))
    cart.update_line_quantity(line_id, 2)
    assert cart.items[0].subtotal == Decimal('6.00')


def test_items_are_copies(cart):
    cart.add_item(AGUA, 1)
    cart.items[0].quantity = 99
    assert cart.items[0].quantity == 1


# ── 3. Discounts and totals ─────────────────────────────────────────────────

def test_scenario_mixed_cart_with_percentage_discount(cart):
    cart.add_item(ACAI_300, 2)
    cart.add_item(ACAI_KG, 1, Decimal('0.300'))
    assert cart.get_subtotal() == Decimal('39.30')

    totals = cart.set_discount(DiscountSpec(DiscountKind.percentage, Decimal('10')))
    assert totals.discount_amount == Decimal('3.93')
    assert totals.total == Decimal('35.37')


def test_flat_discount_never_drives_total_negative(cart):
    cart.add_item(ProductSnapshot(id=5, code='T', name='Ten', category='outros',
                                  is_weighable=False, unit_price=Decimal('10.00')), 1)
    totals = cart.set_discount(DiscountSpec(DiscountKind.flat, Decimal('15.00')))
    assert totals.discount_amount == Decimal('10.00')
    assert totals.total == Decimal('0.00')


def test_totals_stay_consistent_across_mutations(cart):
    cart.add_item(ACAI_300, 1)
    assert_consistent(cart)
    cart.add_item(ACAI_KG, 1, Decimal('0.455'))
    assert_consistent(cart)
    cart.set_discount(DiscountSpec(DiscountKind.flat, Decimal('2.50')))
    assert_consistent(cart)
    cart.update_item_quantity(ACAI_300.id, 3)
    assert_consistent(cart)
    cart.remove_item(ACAI_KG.id)
    assert_consistent(cart)
    cart.set_discount(DiscountSpec(DiscountKind.percentage, Decimal('150')))
    assert_consistent(cart)
    assert cart.get_total() == Decimal('0.00')


def test_totals_are_idempotent(cart):
    cart.add_item(ACAI_300, 2)
    cart.set_discount(DiscountSpec(DiscountKind.percentage, Decimal('7')))
    first = (cart.get_subtotal(), cart.get_discount_amount(), cart.get_total())
    for _ in range(3):
        assert (cart.get_subtotal(), cart.get_discount_amount(), cart.get_total()) == first


# ── 4. Payment draft and clearing ───────────────────────────────────────────

def test_update_payment_info(cart):
    cart.update_payment_info(method='pix', customer_name='Ana')
    assert cart.payment_info.method is PaymentMethod.pix
    assert cart.payment_info.customer_name == 'Ana'
    cart.update_payment_info(change_for='50')
    assert cart.payment_info.change_for == Decimal('50')
    assert cart.payment_info.customer_name == 'Ana'


def test_update_payment_info_rejects_unknown_method(cart):
    with pytest.raises(ValueError):
        cart.update_payment_info(method='bitcoin')


def test_update_payment_info_rejects_unknown_field(cart):
    with pytest.raises(ValueError):
        cart.update_payment_info(tip='5')


def test_clear_cart_resets_everything(cart):
    cart.add_item(ACAI_300, 1)
    cart.set_discount(DiscountSpec(DiscountKind.flat, Decimal('1')))
    cart.update_payment_info(method='voucher', change_for='20')
    totals = cart.clear_cart()
    assert totals.item_count == 0
    assert totals.total == Decimal('0')
    assert cart.discount.kind is DiscountKind.none
    assert cart.payment_info.method is PaymentMethod.cash
    assert cart.payment_info.change_for is None


def test_to_dict_serialises_decimals(cart):
    cart.add_item(ACAI_KG, 1, Decimal('0.300'))
    data = cart.to_dict()
    assert data['totals']['subtotal'] == '13.50'
    assert data['items'][0]['weight_kg'] == '0.300'
    assert data['items'][0]['product']['display_price'] == '44.99000'
