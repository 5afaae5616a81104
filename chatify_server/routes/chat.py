"""Chat/Messaging REST API routes.

Messages are written over REST and pushed to live sockets by the delivery
router. Loading a direct conversation is also what marks it read.

REST API Endpoints:
- GET    /api/messages/<user>/<contact>       - Direct history (marks it read)
- GET    /api/group-messages/<group_id>       - Group history
- POST   /api/messages                        - Send a direct or group message
- DELETE /api/messages/<message_id>           - Delete for everyone
- POST   /api/messages/<message_id>/hide      - Delete for me
- POST   /api/messages/<message_id>/status    - Advance delivery status
- GET    /api/search-messages/<user>/<query>  - Search own messages

WebSocket Events pushed as a result:
- message, status-changed, message-deleted, message-hidden
"""
import logging

from flask import Blueprint, request

from chatify_server.core import get_core
from chatify_server.messaging.models import Attachment
from chatify_server.utils.decorators import handle_errors, validate_json
from chatify_server.utils.helpers import respond_error, respond_success, get_json_body, parse_limit
from chatify_server.utils.validation import is_valid_phone

logger = logging.getLogger(__name__)

chat_bp = Blueprint('chat', __name__, url_prefix='/api')

MAX_PAGE_SIZE = 200


def _messages_response(messages):
    return respond_success({
        'messages': [message.to_dict() for message in messages],
        'count': len(messages)
    })


# =============================================================================
# History
# =============================================================================

@chat_bp.route('/messages/<user_phone>/<contact_phone>', methods=['GET'])
@handle_errors
def get_conversation(user_phone, contact_phone):
    """Latest page of a direct conversation, oldest first.

    Query Params:
        limit: int - Max results (default: configured page size)
    """
    if not is_valid_phone(user_phone) or not is_valid_phone(contact_phone):
        return respond_error('Invalid phone number format', status=400)
    core = get_core()
    limit = parse_limit(request.args.get('limit'), core.messages.page_size, MAX_PAGE_SIZE)
    messages = core.router.load_conversation(user_phone, contact_phone, limit)
    return _messages_response(messages)


@chat_bp.route('/group-messages/<group_id>', methods=['GET'])
@handle_errors
def get_group_messages(group_id):
    """Latest page of a group conversation.

    Query Params:
        limit: int - Max results
        viewer: str - Phone number whose hidden messages are left out
    """
    core = get_core()
    limit = parse_limit(request.args.get('limit'), core.messages.page_size, MAX_PAGE_SIZE)
    messages = core.router.load_group(group_id, limit, viewer=request.args.get('viewer'))
    return _messages_response(messages)


@chat_bp.route('/search-messages/<user_phone>/<path:query>', methods=['GET'])
@handle_errors
def search_messages(user_phone, query):
    if not is_valid_phone(user_phone):
        return respond_error('Invalid phone number format', status=400)
    core = get_core()
    limit = parse_limit(request.args.get('limit'), core.router.search_limit, MAX_PAGE_SIZE)
    return _messages_response(core.router.search(user_phone, query, limit))


# =============================================================================
# Writes
# =============================================================================

@chat_bp.route('/messages', methods=['POST'])
@handle_errors
def send_message():
    """Send a message.

    Body:
        senderPhone: str
        receiverPhone: str - direct target (exclusive with groupId)
        groupId: str - group target
        message: str - text (optional when fileUrl is given)
        fileUrl, fileType, fileSize - attachment reference
    """
    data = get_json_body(request)
    core = get_core()
    sender = data.get('senderPhone')
    if sender and is_valid_phone(sender) and not core.users.exists(sender):
        return respond_error('Sender is not registered', status=404)

    attachment = Attachment.from_payload(data)
    if attachment and attachment.size and attachment.size > core.max_attachment_bytes:
        return respond_error('Attachment exceeds the maximum file size', status=413)

    message = core.router.send_message(
        sender=sender,
        receiver=data.get('receiverPhone'),
        group_id=data.get('groupId'),
        body=data.get('message'),
        attachment=attachment
    )
    return respond_success({'message': message.to_dict()}, status=201)


@chat_bp.route('/messages/<message_id>', methods=['DELETE'])
@handle_errors
def delete_message(message_id):
    get_core().router.delete_message(message_id)
    return respond_success({'messageId': message_id})


@chat_bp.route('/messages/<message_id>/hide', methods=['POST'])
@handle_errors
@validate_json('phoneNumber')
def hide_message(message_id):
    phone_number = get_json_body(request)['phoneNumber']
    if not is_valid_phone(phone_number):
        return respond_error('Invalid phone number format', status=400)
    get_core().router.hide_message(message_id, phone_number)
    return respond_success({'messageId': message_id})


@chat_bp.route('/messages/<message_id>/status', methods=['POST'])
@handle_errors
@validate_json('status')
def update_status(message_id):
    """Advance a direct message to delivered or read; repeating a status is a no-op."""
    status = get_json_body(request)['status']
    changed = get_core().router.advance_status(message_id, status)
    return respond_success({'messageId': message_id, 'status': status, 'changed': changed})
