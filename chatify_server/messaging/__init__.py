"""Messaging core: data models, message store, presence, routing."""

from chatify_server.messaging.models import (
    MessageStatus, ConversationType, Target, Identity, Group, Attachment, Message
)

__all__ = [
    'MessageStatus', 'ConversationType', 'Target', 'Identity', 'Group', 'Attachment', 'Message'
]
