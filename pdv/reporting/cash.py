"""
pdv/reporting/cash.py
---------------------
Cash register activity over a date range.

For each register opened in the range: opening / closing amounts, the
recorded difference, and a summary of its non-cancelled sales
(count, total, cash total, per payment type). expected_balance is the
opening float plus cash sales, i.e. what should be in the drawer.
The grand total difference sums closed registers only; an open one has
nothing counted yet.
"""
from __future__ import annotations
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional

from pdv.registers.models import CashRegister


STATUSES = ('all', 'open', 'closed')
ZERO = Decimal('0')


def _money(value) -> Decimal:
    return Decimal(str(value)) if value is not None else ZERO


def register_summary(register: CashRegister) -> dict:
    sales = [s for s in register.sales if not s.is_cancelled]

    by_payment = defaultdict(lambda: ZERO)
    for s in sales:
        by_payment[s.payment_type] += _money(s.total_amount)

    sales_total      = sum((_money(s.total_amount) for s in sales), ZERO)
    cash_sales_total = by_payment.get('cash', ZERO)
    return {
        'sales_count':      len(sales),
        'sales_total':      sales_total,
        'cash_sales_total': cash_sales_total,
        'expected_balance': _money(register.opening_amount) + cash_sales_total,
        'by_payment_type':  dict(by_payment),
    }


def cash_register_report(start_date: date, end_date: date, store: Optional[str] = None,
                         operator_id: Optional[int] = None, status: str = 'all') -> dict:
    """
    Registers opened between start_date and end_date (inclusive),
    newest first, with per-register summaries and grand totals.
    """
    if status not in STATUSES:
        raise ValueError(f'status must be one of {", ".join(STATUSES)}')
    if end_date < start_date:
        raise ValueError('end_date is before start_date')

    query = CashRegister.query.filter(
        CashRegister.opened_at >= datetime.combine(start_date, time.min),
        CashRegister.opened_at < datetime.combine(end_date + timedelta(days=1), time.min),
    )
    if store:
        query = query.filter(CashRegister.store == store)
    if operator_id:
        query = query.filter(CashRegister.operator_id == operator_id)
    if status == 'open':
        query = query.filter(CashRegister.closed_at == None)  # noqa: E711
    elif status == 'closed':
        query = query.filter(CashRegister.closed_at != None)  # noqa: E711

    rows = []
    totals = {
        'opening_amount':   ZERO,
        'sales_count':      0,
        'sales_total':      ZERO,
        'cash_sales_total': ZERO,
        'expected_balance': ZERO,
        'difference':       ZERO,
    }
    for register in query.order_by(CashRegister.opened_at.desc()).all():
        summary = register_summary(register)
        rows.append({
            'id':             register.id,
            'store':          register.store,
            'operator_id':    register.operator_id,
            'operator_name':  register.operator.name if register.operator else None,
            'opening_amount': _money(register.opening_amount),
            'closing_amount': _money(register.closing_amount) if register.closing_amount is not None else None,
            'difference':     _money(register.difference) if register.difference is not None else None,
            'opened_at':      register.opened_at,
            'closed_at':      register.closed_at,
            'summary':        summary,
        })
        totals['opening_amount'] += _money(register.opening_amount)
        for key in ('sales_count', 'sales_total', 'cash_sales_total', 'expected_balance'):
            totals[key] += summary[key]
        if register.difference is not None:
            totals['difference'] += _money(register.difference)

    return {
        'start_date': start_date,
        'end_date':   end_date,
        'status':     status,
        'registers':  rows,
        'totals':     totals,
    }
