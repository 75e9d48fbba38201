"""
pdv/billing/persistence.py
--------------------------
Writes a finalized sale to the database in one transaction:

  1. Lock the cash register row (SELECT … FOR UPDATE) and make sure it
     is still open and belongs to the sale's store
  2. Allocate the sale number
  3. Insert Sale + SaleItems
  4. Add the total to the register's running sales_total
  5. Flush, build the CommittedSale, then commit

Any database error rolls the whole thing back and surfaces as
PersistenceFailure; the caller keeps its cart and may retry.
"""
import logging
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from pdv.errors import PersistenceFailure


log = logging.getLogger(__name__)


class SqlSalePersistence:

    def __init__(self, db_session):
        self.db_session = db_session

    def create_sale(self, sale_data, items, register_id):
        from pdv.billing.models import Sale, SaleItem
        from pdv.billing.sequence import generate_sale_number
        from pdv.registers.models import CashRegister

        session = self.db_session
        try:
            register = (
                session.query(CashRegister)
                .filter(CashRegister.id == register_id)
                .with_for_update()
                .first()
            )
            if register is None or not register.is_open:
                raise PersistenceFailure(
                    f'Cash register {register_id} is no longer open.', register_id=register_id,
                )
            if register.store != sale_data.store:
                raise PersistenceFailure(
                    f'Cash register {register_id} belongs to another store.', register_id=register_id,
                )

            sale = Sale(
                sale_number         = generate_sale_number(session),
                store               = sale_data.store,
                operator_id         = sale_data.operator_id,
                register_id         = register.id,
                customer_name       = sale_data.customer_name,
                customer_phone      = sale_data.customer_phone,
                subtotal            = sale_data.subtotal,
                discount_amount     = sale_data.discount_amount,
                discount_percentage = sale_data.discount_percentage,
                total_amount        = sale_data.total_amount,
                payment_type        = sale_data.payment_type,
                change_amount       = sale_data.change_amount,
                notes               = sale_data.notes,
                is_cancelled        = False,
            )
            for line in items:
                sale.items.append(SaleItem(
                    product_id      = line.product_id,
                    product_code    = line.product_code,
                    product_name    = line.product_name,
                    quantity        = line.quantity,
                    weight_kg       = line.weight_kg,
                    unit_price      = line.unit_price,
                    price_per_gram  = line.price_per_gram,
                    discount_amount = line.discount_amount,
                    subtotal        = line.subtotal,
                ))
            session.add(sale)

            register.sales_total = Decimal(str(register.sales_total or 0)) + sale_data.total_amount

            # Build the result from the flushed rows so nothing reloads after commit
            session.flush()
            committed = sale.to_record()

            session.commit()
        except PersistenceFailure:
            session.rollback()
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            log.error(f"Sale rollback (SQLAlchemyError): {exc}")
            raise PersistenceFailure(register_id=register_id) from exc

        return committed
