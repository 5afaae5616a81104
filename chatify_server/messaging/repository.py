"""Message store.

Durable log of direct and group messages. The only fields that change after
creation are the status (forward only), the reactions map and the per-identity
hide list; every such change runs under a per-message lock and is applied as a
conditional update so concurrent writers cannot regress a status.
"""
import logging
import re
from datetime import datetime
from typing import Callable, Optional, Dict, List

from pymongo import ASCENDING, DESCENDING, ReturnDocument

from chatify_server.exception import ValidationError, NotFoundError, InvalidTransitionError
from chatify_server.messaging.models import Message, MessageStatus, Attachment
from chatify_server.repository.base_repository import BaseRepository
from chatify_server.utils.generator import generate_message_id
from chatify_server.utils.threading_util.locks import KeyedLock
from chatify_server.utils.time_utils import utc_now
from chatify_server.utils.validation import is_valid_phone

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50

# newest first; _id breaks ties between messages stored in the same millisecond
_NEWEST_FIRST = [('created_at', DESCENDING), ('_id', DESCENDING)]


class MessageRepository(BaseRepository):
    """Repository for chat messages."""
    collection_name = 'messages'

    def __init__(
        self,
        db,
        collection_name: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        now_func: Callable[[], datetime] = utc_now
    ):
        super().__init__(db, collection_name)
        self.page_size = page_size
        self._now = now_func
        self._locks = KeyedLock()

    def ensure_indexes(self):
        self.collection.create_index([('message_id', ASCENDING)], unique=True, name='messages_message_id')
        self.collection.create_index(
            [('sender', ASCENDING), ('receiver', ASCENDING), ('created_at', DESCENDING)],
            name='messages_direct_pair_created_at'
        )
        self.collection.create_index([('group_id', ASCENDING), ('created_at', DESCENDING)], name='messages_group_created_at')
        self.collection.create_index(
            [('receiver', ASCENDING), ('sender', ASCENDING), ('status', ASCENDING)],
            name='messages_unread'
        )

    # =========================================================================
    # Writes
    # =========================================================================

    def append(self, message: Message) -> str:
        """Validate and store a new message. Returns its id."""
        message.validate()
        message.message_id = message.message_id or generate_message_id()
        message.created_at = self._now()
        message.status = MessageStatus.SENT
        message.reactions = {}
        message.deleted_for = []
        self.create(message.to_db_doc())
        logger.debug("Stored message %s from %s", message.message_id, message.sender)
        return message.message_id

    def new_message(
        self,
        sender: str,
        receiver: Optional[str] = None,
        group_id: Optional[str] = None,
        body: Optional[str] = None,
        attachment: Optional[Attachment] = None
    ) -> Message:
        """Build and append a message in one step."""
        message = Message(
            message_id=None,
            sender=sender,
            receiver=receiver or None,
            group_id=group_id or None,
            body=body,
            attachment=attachment
        )
        self.append(message)
        return message

    def advance_status(self, message_id: str, new_status) -> bool:
        """Move a direct message forward in sent < delivered < read.

        Only the next status is accepted. Returns True when the status changed,
        False when it already was `new_status`. Raises InvalidTransitionError for
        backwards moves, for skipping delivered and for group messages, whose
        shared status is not tracked. Loading a conversation goes through
        mark_conversation_read instead, which may move sent straight to read.
        """
        new_status = MessageStatus.parse(new_status)
        with self._locks.hold(message_id):
            while True:
                message = self.get_message(message_id)
                current = message.status
                if message.is_group:
                    raise InvalidTransitionError(
                        'Group messages do not track delivery status',
                        current=current, requested=new_status
                    )
                if new_status == current:
                    return False
                if new_status.rank != current.rank + 1:
                    raise InvalidTransitionError(
                        f"Cannot move message from {current.value} to {new_status.value}",
                        current=current, requested=new_status
                    )
                result = self.collection.update_one(
                    {'message_id': message_id, 'status': current.value},
                    {'$set': {'status': new_status.value}}
                )
                if result.modified_count == 1:
                    logger.debug("Message %s: %s -> %s", message_id, current.value, new_status.value)
                    return True
                # changed by another process between read and write; re-evaluate

    def mark_conversation_read(self, reader: str, peer: str) -> Dict[str, List[str]]:
        """Advance every message from `peer` to `reader` that is not yet read.

        Returns {original sender: [message ids that moved to read]}; empty when
        nothing changed.
        """
        pending = self.collection.find(
            {
                'sender': peer,
                'receiver': reader,
                'status': {'$in': [MessageStatus.SENT.value, MessageStatus.DELIVERED.value]}
            },
            {'message_id': 1, 'sender': 1}
        ).sort('created_at', ASCENDING)

        advanced: Dict[str, List[str]] = {}
        for doc in list(pending):
            message_id = doc['message_id']
            with self._locks.hold(message_id):
                result = self.collection.update_one(
                    {'message_id': message_id, 'status': {'$ne': MessageStatus.READ.value}},
                    {'$set': {'status': MessageStatus.READ.value}}
                )
            if result.modified_count == 1:
                advanced.setdefault(doc['sender'], []).append(message_id)
        return advanced

    def upsert_reaction(self, message_id: str, identity: str, symbol: Optional[str]) -> Message:
        """Set (or with an empty symbol, clear) `identity`'s reaction; latest write wins."""
        if not is_valid_phone(identity):
            raise ValidationError('Reacting identity must be a valid phone number')
        if symbol is not None and not isinstance(symbol, str):
            raise ValidationError('Reaction must be a string')
        field = f'reactions.{identity}'
        update = {'$set': {field: symbol}} if symbol else {'$unset': {field: ''}}
        with self._locks.hold(message_id):
            doc = self.collection.find_one_and_update(
                {'message_id': message_id},
                update,
                return_document=ReturnDocument.AFTER
            )
        if doc is None:
            raise NotFoundError(f"Message {message_id} not found")
        return Message.from_doc(doc)

    def hide_for(self, message_id: str, identity: str) -> Message:
        """Hide a message from one identity's views (delete for me)."""
        with self._locks.hold(message_id):
            doc = self.collection.find_one_and_update(
                {'message_id': message_id},
                {'$addToSet': {'deleted_for': identity}},
                return_document=ReturnDocument.AFTER
            )
        if doc is None:
            raise NotFoundError(f"Message {message_id} not found")
        return Message.from_doc(doc)

    def remove(self, message_id: str) -> Message:
        """Hard-delete a message and return it so callers can notify its parties."""
        with self._locks.hold(message_id):
            doc = self.collection.find_one_and_delete({'message_id': message_id})
        if doc is None:
            raise NotFoundError(f"Message {message_id} not found")
        logger.debug("Removed message %s", message_id)
        return Message.from_doc(doc)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_message(self, message_id: str) -> Message:
        doc = self.find_one({'message_id': message_id})
        if doc is None:
            raise NotFoundError(f"Message {message_id} not found")
        return Message.from_doc(doc)

    def _page(self, query: Dict, limit: Optional[int]) -> List[Message]:
        cursor = self.collection.find(query).sort(_NEWEST_FIRST).limit(limit or self.page_size)
        messages = [Message.from_doc(doc) for doc in cursor]
        messages.reverse()  # Return in chronological order
        return messages

    def query_conversation(self, a: str, b: str, limit: Optional[int] = None) -> List[Message]:
        """Latest page of the direct conversation between `a` and `b`, oldest first.

        Messages `a` has hidden are left out.
        """
        query = {
            '$or': [
                {'sender': a, 'receiver': b},
                {'sender': b, 'receiver': a}
            ],
            'deleted_for': {'$ne': a}
        }
        return self._page(query, limit)

    def query_group(self, group_id: str, limit: Optional[int] = None, viewer: Optional[str] = None) -> List[Message]:
        query = {'group_id': group_id}
        if viewer:
            query['deleted_for'] = {'$ne': viewer}
        return self._page(query, limit)

    def search_by_text(self, identity: str, substring: str, limit: Optional[int] = None) -> List[Message]:
        """Case-insensitive literal substring search over messages `identity` sent or received."""
        if not substring or not substring.strip():
            raise ValidationError('Search query is required')
        query = {
            '$or': [{'sender': identity}, {'receiver': identity}],
            'body': {'$regex': re.escape(substring), '$options': 'i'},
            'deleted_for': {'$ne': identity}
        }
        cursor = self.collection.find(query).sort(_NEWEST_FIRST).limit(limit or self.page_size)
        return [Message.from_doc(doc) for doc in cursor]
