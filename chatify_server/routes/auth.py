"""Registration and login.

Identities are phone numbers; there is no password and no token. Login only
confirms the identity exists; presence follows socket connections, not logins.
"""
import logging

from flask import Blueprint, request

from chatify_server.core import get_core
from chatify_server.exception import NotFoundError
from chatify_server.utils.decorators import handle_errors
from chatify_server.utils.helpers import respond_error, respond_success, get_json_body
from chatify_server.utils.validation import validate_registration

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api')


@auth_bp.route('/register', methods=['POST'])
@handle_errors
def register():
    data = get_json_body(request)
    is_valid, errors = validate_registration(data)
    if not is_valid:
        logger.warning("Registration validation failed: %s", errors)
        return respond_error(errors, status=400)

    identity = get_core().users.register(data['phoneNumber'].strip(), data['username'])
    return respond_success({'message': 'User registered successfully', 'user': identity.to_dict()}, status=201)


@auth_bp.route('/login', methods=['POST'])
@handle_errors
def login():
    data = get_json_body(request)
    phone_number = (data.get('phoneNumber') or '').strip()
    if not phone_number:
        return respond_error({'phoneNumber': 'Phone number is required.'}, status=400)

    identity = get_core().users.get(phone_number)
    if identity is None:
        raise NotFoundError('User not found')
    logger.info("Login: %s", phone_number)
    return respond_success({'message': 'Login successful', 'user': identity.to_dict()})
