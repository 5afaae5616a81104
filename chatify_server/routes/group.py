"""Group creation and listing.

Membership is fixed once the group exists; members learn about it through a
`group-created` push.
"""
import logging

from flask import Blueprint, request

from chatify_server.core import get_core
from chatify_server.utils.decorators import handle_errors
from chatify_server.utils.helpers import respond_error, respond_success, get_json_body
from chatify_server.utils.validation import validate_group, is_valid_phone

logger = logging.getLogger(__name__)

group_bp = Blueprint('group', __name__, url_prefix='/api/groups')


@group_bp.route('', methods=['POST'])
@handle_errors
def create_group():
    data = get_json_body(request)
    is_valid, errors = validate_group(data)
    if not is_valid:
        return respond_error(errors, status=400)

    core = get_core()
    creator = data['createdBy']
    unknown = [phone for phone in dict.fromkeys([creator] + data['members']) if not core.users.exists(phone)]
    if unknown:
        return respond_error({'members': f"Not registered: {', '.join(unknown)}"}, status=400)

    group = core.groups.create_group(data['name'], data['members'], creator)
    core.router.notify_group_created(group)
    return respond_success({'group': group.to_dict()}, status=201)


@group_bp.route('/<phone_number>', methods=['GET'])
@handle_errors
def list_groups(phone_number):
    if not is_valid_phone(phone_number):
        return respond_error('Invalid phone number format', status=400)
    groups = [group.to_dict() for group in get_core().groups.list_for_member(phone_number)]
    return respond_success({'groups': groups, 'count': len(groups)})
