from flask import Blueprint

users = Blueprint('users', __name__, url_prefix='/api')

from . import routes  # noqa: E402,F401
