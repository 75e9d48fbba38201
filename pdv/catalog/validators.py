"""
pdv/catalog/validators.py
-------------------------
Pure-Python validation for product form / JSON data.
Returns a dict of field -> error_message.
An empty dict means all fields are valid.
"""
from decimal import Decimal, InvalidOperation

from pdv.catalog.models import CATEGORY_CHOICES


TRUTHY = ('1', 'true', 'on', 'yes', True)


def _positive_decimal(raw, label: str):
    """Return (value, error). Empty input → (None, None)."""
    raw = str(raw if raw is not None else '').strip()
    if not raw:
        return None, None
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return None, f'{label} must be a valid number.'
    if not value.is_finite():
        return None, f'{label} must be a valid number.'
    if value <= 0:
        return None, f'{label} must be greater than zero.'
    return value, None


def validate_product_form(form_data: dict, stores=None) -> dict:
    """
    Validate raw data for create / edit product.

    Args:
        form_data: dict of raw values (request.form or request.get_json())
        stores:    allowed store channel tags; None skips the check

    Returns:
        dict of {field_name: error_message}, empty if all valid.
    """
    errors = {}

    # ── name ─────────────────────────────────────────────────────
    name = str(form_data.get('name') or '').strip()
    if not name:
        errors['name'] = 'Product name is required.'
    elif len(name) > 200:
        errors['name'] = 'Product name must be 200 characters or fewer.'

    # ── code ──────────────────────────────────────────────────────
    code = str(form_data.get('code') or '').strip()
    if not code:
        errors['code'] = 'Product code is required.'
    elif len(code) > 40:
        errors['code'] = 'Product code must be 40 characters or fewer.'

    barcode = str(form_data.get('barcode') or '').strip()
    if len(barcode) > 100:
        errors['barcode'] = 'Barcode must be 100 characters or fewer.'

    # ── store / category ──────────────────────────────────────────
    store = str(form_data.get('store') or '').strip()
    if stores is not None and store not in stores:
        errors['store'] = 'Unknown store.'

    category = str(form_data.get('category') or 'outros').strip()
    if category not in CATEGORY_CHOICES:
        errors['category'] = 'Unknown category.'

    # ── pricing mode ──────────────────────────────────────────────
    # Exactly one price field is meaningful, selected by is_weighable.
    is_weighable = form_data.get('is_weighable') in TRUTHY
    if is_weighable:
        ppg, err = _positive_decimal(form_data.get('price_per_gram'), 'Price per gram')
        if err:
            errors['price_per_gram'] = err
        elif ppg is None:
            errors['price_per_gram'] = 'Price per gram is required for weighable products.'
    else:
        price, err = _positive_decimal(form_data.get('unit_price'), 'Unit price')
        if err:
            errors['unit_price'] = err
        elif price is None:
            errors['unit_price'] = 'Unit price is required.'

    return errors


def parse_product_form(form_data: dict) -> dict:
    """
    Convert validated raw values to correct Python types.
    Call only after validate_product_form returns no errors.
    The price field of the inactive mode is dropped.
    """
    is_weighable = form_data.get('is_weighable') in TRUTHY
    barcode = str(form_data.get('barcode') or '').strip()
    return {
        'name':           str(form_data.get('name')).strip(),
        'code':           str(form_data.get('code')).strip(),
        'barcode':        barcode or None,
        'store':          str(form_data.get('store') or '').strip(),
        'category':       str(form_data.get('category') or 'outros').strip(),
        'is_weighable':   is_weighable,
        'unit_price':     None if is_weighable else Decimal(str(form_data.get('unit_price')).strip()),
        'price_per_gram': Decimal(str(form_data.get('price_per_gram')).strip()) if is_weighable else None,
        'is_active':      form_data.get('is_active', True) in TRUTHY,
    }
