from flask import Blueprint

from chatify_server.core import get_core
from chatify_server.utils.decorators import handle_errors
from chatify_server.utils.helpers import respond_success

user_bp = Blueprint('user', __name__, url_prefix='/api')


@user_bp.route('/users', methods=['GET'])
@handle_errors
def list_users():
    """Every registered identity with its presence."""
    users = [identity.to_dict() for identity in get_core().users.list_all()]
    return respond_success({'users': users, 'count': len(users)})
