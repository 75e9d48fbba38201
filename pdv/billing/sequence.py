"""
pdv/billing/sequence.py
-----------------------
Concurrency-safe sale number generation.

Format:  YYYY-NNNN
Example: 2026-0001, 2026-0002, … 2026-9999, 2026-10000

1. Lock the SaleSequence row for the current year (SELECT … FOR UPDATE).
2. If there is no row yet (first sale of the year), insert one with
   last_seq = 0 and lock it.
3. Increment last_seq and return the formatted number.

The lock is released when the caller's transaction commits or rolls
back, so a rolled-back sale does not consume a number.
"""
from datetime import datetime


def _locked_row(db_session, year):
    from pdv.billing.models import SaleSequence
    return (
        db_session.query(SaleSequence)
        .filter(SaleSequence.year == year)
        .with_for_update()
        .first()
    )


def generate_sale_number(db_session, now: datetime = None) -> str:
    """
    Allocate the next sale number for the year of `now` (default: today).

    MUST be called inside an open SQLAlchemy transaction.
    """
    from pdv.billing.models import SaleSequence

    year = (now or datetime.now()).year

    seq_row = _locked_row(db_session, year)
    if seq_row is None:
        db_session.add(SaleSequence(year=year, last_seq=0))
        db_session.flush()
        seq_row = _locked_row(db_session, year)

    seq_row.last_seq += 1
    db_session.flush()

    return f"{year}-{seq_row.last_seq:04d}"
