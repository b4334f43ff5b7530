from flask import Blueprint

bp = Blueprint("payment", __name__, url_prefix="/api/admin/payment-settings")
# one bank account at a time, alongside the bulk save above
bank_bp = Blueprint("bank_account", __name__, url_prefix="/api/admin/bank-accounts")

from . import routes, bank_accounts  # noqa: E402,F401
