"""
pdv/catalog/__init__.py
-----------------------
Product catalog blueprint.
URL prefix: /catalog
"""
from flask import Blueprint

catalog = Blueprint('catalog', __name__)

from pdv.catalog import routes  # noqa: E402, F401
from pdv.catalog import models  # noqa: E402, F401  (registers Product with SQLAlchemy)
