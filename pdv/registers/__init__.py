"""
pdv/registers/__init__.py
-------------------------
Cash register blueprint.
URL prefix: /registers
"""
from flask import Blueprint

registers = Blueprint('registers', __name__)

from pdv.registers import routes  # noqa: E402, F401
from pdv.registers import models  # noqa: E402, F401  (registers CashRegister with SQLAlchemy)
