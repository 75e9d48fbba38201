"""
pdv/reporting/__init__.py
-------------------------
Reporting blueprint.
URL prefix: /reporting
"""
from flask import Blueprint

reporting = Blueprint('reporting', __name__)

from pdv.reporting import routes  # noqa: E402, F401
