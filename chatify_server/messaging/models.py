"""Messaging data models.

Collections:
- users: registered identities (phone number, display name, presence)
- groups: group conversations and their members
- messages: direct and group messages with status and reactions
"""
from typing import Optional, Dict, Any, List
from datetime import datetime
from enum import Enum

from chatify_server.exception import ValidationError
from chatify_server.utils.time_utils import to_iso, utc_now
from chatify_server.utils.validation import is_valid_phone


class MessageStatus(str, Enum):
    SENT = "sent"            # Stored on the server
    DELIVERED = "delivered"  # Recipient was online when it was pushed
    READ = "read"            # Recipient loaded the conversation

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    @classmethod
    def parse(cls, value) -> 'MessageStatus':
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown message status: {value!r}")


_STATUS_ORDER = [MessageStatus.SENT, MessageStatus.DELIVERED, MessageStatus.READ]


class ConversationType(str, Enum):
    DIRECT = "direct"
    GROUP = "group"


def _require_str(field: str, value: Any):
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")


class Target:
    """Addressing of a message or typing signal: one peer or one group."""

    def __init__(self, receiver: Optional[str] = None, group_id: Optional[str] = None):
        _require_str('receiverPhone', receiver)
        _require_str('groupId', group_id)
        if bool(receiver) == bool(group_id):
            raise ValidationError('Exactly one of receiverPhone or groupId is required')
        self.receiver = receiver
        self.group_id = group_id

    @classmethod
    def direct(cls, receiver: str) -> 'Target':
        return cls(receiver=receiver)

    @classmethod
    def group(cls, group_id: str) -> 'Target':
        return cls(group_id=group_id)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> 'Target':
        return cls(
            receiver=data.get('receiverPhone') or data.get('receiver_phone'),
            group_id=data.get('groupId') or data.get('group_id'),
        )

    @property
    def conversation_type(self) -> ConversationType:
        return ConversationType.GROUP if self.group_id else ConversationType.DIRECT

    @property
    def is_group(self) -> bool:
        return self.group_id is not None

    def __eq__(self, other):
        return (
            isinstance(other, Target)
            and other.receiver == self.receiver
            and other.group_id == self.group_id
        )

    def __hash__(self):
        return hash((self.receiver, self.group_id))

    def __repr__(self):
        if self.group_id:
            return f"Target(group_id={self.group_id!r})"
        return f"Target(receiver={self.receiver!r})"


class Identity:
    """Registered participant addressed by phone number."""

    def __init__(
        self,
        phone_number: str,
        username: str,
        is_online: bool = False,
        last_seen: Optional[datetime] = None,
        created_at: Optional[datetime] = None
    ):
        self.phone_number = phone_number
        self.username = username
        self.is_online = is_online
        self.last_seen = last_seen
        self.created_at = created_at or utc_now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phoneNumber': self.phone_number,
            'username': self.username,
            'isOnline': self.is_online,
            'lastSeen': to_iso(self.last_seen)
        }

    def to_db_doc(self) -> Dict[str, Any]:
        return {
            'phone_number': self.phone_number,
            'username': self.username,
            'is_online': self.is_online,
            'last_seen': self.last_seen,
            'created_at': self.created_at
        }

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> 'Identity':
        return cls(
            phone_number=doc.get('phone_number'),
            username=doc.get('username'),
            is_online=bool(doc.get('is_online', False)),
            last_seen=doc.get('last_seen'),
            created_at=doc.get('created_at')
        )


class Group:
    """Group conversation. Membership is fixed at creation."""

    def __init__(
        self,
        group_id: str,
        name: str,
        members: List[str],
        created_by: str,
        created_at: Optional[datetime] = None
    ):
        self.group_id = group_id
        self.name = name
        # keep first-seen order for display, drop duplicates
        self.members = list(dict.fromkeys(members))
        self.created_by = created_by
        self.created_at = created_at or utc_now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'groupId': self.group_id,
            'name': self.name,
            'members': self.members,
            'createdBy': self.created_by,
            'createdAt': to_iso(self.created_at)
        }

    def to_db_doc(self) -> Dict[str, Any]:
        return {
            'group_id': self.group_id,
            'name': self.name,
            'members': self.members,
            'created_by': self.created_by,
            'created_at': self.created_at
        }

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> 'Group':
        return cls(
            group_id=doc.get('group_id'),
            name=doc.get('name'),
            members=doc.get('members', []),
            created_by=doc.get('created_by'),
            created_at=doc.get('created_at')
        )


class Attachment:
    """Reference to a stored file; the bytes live with the file collaborator."""

    def __init__(self, url: str, content_type: Optional[str] = None, size: Optional[int] = None):
        self.url = url
        self.content_type = content_type
        self.size = size

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> Optional['Attachment']:
        url = data.get('fileUrl') or data.get('file_url')
        if not url:
            return None
        _require_str('fileUrl', url)
        size = data.get('fileSize') or data.get('file_size')
        if size is not None:
            try:
                size = int(size)
            except (TypeError, ValueError):
                raise ValidationError('fileSize must be an integer')
        return cls(url=url, content_type=data.get('fileType') or data.get('file_type'), size=size)


class Message:
    """Message document structure."""

    def __init__(
        self,
        message_id: str,
        sender: str,
        receiver: Optional[str] = None,
        group_id: Optional[str] = None,
        body: Optional[str] = None,
        attachment: Optional[Attachment] = None,
        status: MessageStatus = MessageStatus.SENT,
        reactions: Optional[Dict[str, str]] = None,
        deleted_for: Optional[List[str]] = None,
        created_at: Optional[datetime] = None
    ):
        self.message_id = message_id
        self.sender = sender
        self.receiver = receiver
        self.group_id = group_id
        self.body = body
        self.attachment = attachment
        self.status = MessageStatus(status)
        self.reactions = dict(reactions or {})
        self.deleted_for = list(deleted_for or [])
        self.created_at = created_at

    @property
    def target(self) -> Target:
        return Target(receiver=self.receiver, group_id=self.group_id)

    @property
    def is_group(self) -> bool:
        return self.group_id is not None

    def validate(self):
        """Check addressing and content; raises ValidationError."""
        if not is_valid_phone(self.sender):
            raise ValidationError('senderPhone must be a valid phone number')
        _require_str('receiverPhone', self.receiver)
        _require_str('groupId', self.group_id)
        if bool(self.receiver) == bool(self.group_id):
            raise ValidationError('Exactly one of receiverPhone or groupId is required')
        if self.receiver and not is_valid_phone(self.receiver):
            raise ValidationError('receiverPhone must be a valid phone number')
        if self.receiver == self.sender:
            raise ValidationError('Cannot send a direct message to yourself')
        _require_str('message', self.body)
        has_body = bool(self.body and self.body.strip())
        if not has_body and self.attachment is None:
            raise ValidationError('Message text or attachment is required')

    def is_hidden_for(self, identity: Optional[str]) -> bool:
        return bool(identity) and identity in self.deleted_for

    def to_dict(self) -> Dict[str, Any]:
        return {
            'messageId': self.message_id,
            'senderPhone': self.sender,
            'receiverPhone': self.receiver,
            'groupId': self.group_id,
            'message': self.body,
            'fileUrl': self.attachment.url if self.attachment else None,
            'fileType': self.attachment.content_type if self.attachment else None,
            'fileSize': self.attachment.size if self.attachment else None,
            'status': self.status.value,
            'reactions': dict(self.reactions),
            'timestamp': to_iso(self.created_at)
        }

    def to_db_doc(self) -> Dict[str, Any]:
        return {
            'message_id': self.message_id,
            'conversation_type': ConversationType.GROUP.value if self.is_group else ConversationType.DIRECT.value,
            'sender': self.sender,
            'receiver': self.receiver,
            'group_id': self.group_id,
            'body': self.body,
            'file_url': self.attachment.url if self.attachment else None,
            'file_type': self.attachment.content_type if self.attachment else None,
            'file_size': self.attachment.size if self.attachment else None,
            'status': self.status.value,
            'reactions': dict(self.reactions),
            'deleted_for': list(self.deleted_for),
            'created_at': self.created_at
        }

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> 'Message':
        attachment = None
        if doc.get('file_url'):
            attachment = Attachment(doc['file_url'], doc.get('file_type'), doc.get('file_size'))
        return cls(
            message_id=doc.get('message_id'),
            sender=doc.get('sender'),
            receiver=doc.get('receiver'),
            group_id=doc.get('group_id'),
            body=doc.get('body'),
            attachment=attachment,
            status=doc.get('status', MessageStatus.SENT),
            reactions=doc.get('reactions', {}),
            deleted_for=doc.get('deleted_for', []),
            created_at=doc.get('created_at')
        )
