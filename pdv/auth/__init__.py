from flask import Blueprint

auth = Blueprint('auth', __name__)

from pdv.auth import routes   # noqa: F401, E402
from pdv.auth import models   # noqa: F401, E402  (registers User with SQLAlchemy)
