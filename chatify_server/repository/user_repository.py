"""Identity repository.

Registration writes here; the presence registry flips is_online/last_seen.
"""
import logging
from datetime import datetime
from typing import Optional, List

from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from chatify_server.exception import ValidationError
from chatify_server.messaging.models import Identity
from chatify_server.repository.base_repository import BaseRepository
from chatify_server.utils.validation import is_valid_phone

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository):
    collection_name = 'users'

    def ensure_indexes(self):
        self.collection.create_index([('phone_number', ASCENDING)], unique=True, name='users_phone_number')

    def register(self, phone_number: str, username: str) -> Identity:
        if not is_valid_phone(phone_number):
            raise ValidationError('Invalid phone number format')
        if self.find_one({'phone_number': phone_number}):
            raise ValidationError('Phone number already registered')
        identity = Identity(phone_number=phone_number, username=username.strip())
        try:
            self.create(identity.to_db_doc())
        except DuplicateKeyError:
            raise ValidationError('Phone number already registered')
        logger.info("Registered identity %s", phone_number)
        return identity

    def get(self, phone_number: str) -> Optional[Identity]:
        doc = self.find_one({'phone_number': phone_number})
        return Identity.from_doc(doc) if doc else None

    def exists(self, phone_number: str) -> bool:
        return self.collection.count_documents({'phone_number': phone_number}, limit=1) > 0

    def list_all(self) -> List[Identity]:
        cursor = self.collection.find({}).sort('phone_number', ASCENDING)
        return [Identity.from_doc(doc) for doc in cursor]

    def set_online(self, phone_number: str) -> bool:
        result = self.collection.update_one(
            {'phone_number': phone_number},
            {'$set': {'is_online': True}}
        )
        return result.matched_count > 0

    def set_offline(self, phone_number: str, last_seen: datetime) -> bool:
        result = self.collection.update_one(
            {'phone_number': phone_number},
            {'$set': {'is_online': False, 'last_seen': last_seen}}
        )
        return result.matched_count > 0

    def reset_presence(self) -> int:
        """Mark everyone offline; live connections do not survive a restart."""
        return self.update({'is_online': True}, {'is_online': False})
