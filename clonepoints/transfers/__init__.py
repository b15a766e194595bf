from flask import Blueprint

transfers = Blueprint('transfers', __name__, url_prefix='/api/transfers')

from . import routes  # noqa: E402,F401
