from flask import Blueprint

billing = Blueprint('billing', __name__)

from pdv.billing import routes  # noqa: F401, E402
from pdv.billing import models  # noqa: F401, E402  (registers Sale/SaleItem with SQLAlchemy)
