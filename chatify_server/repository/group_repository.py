"""Group repository.

Groups are created through the REST layer and read by the channel resolver.
"""
import logging
from typing import Optional, List

from pymongo import ASCENDING

from chatify_server.exception import ValidationError
from chatify_server.messaging.models import Group
from chatify_server.repository.base_repository import BaseRepository
from chatify_server.utils.generator import generate_group_id

logger = logging.getLogger(__name__)


class GroupRepository(BaseRepository):
    collection_name = 'groups'

    def ensure_indexes(self):
        self.collection.create_index([('group_id', ASCENDING)], unique=True, name='groups_group_id')
        self.collection.create_index([('members', ASCENDING)], name='groups_members')

    def create_group(self, name: str, members: List[str], created_by: str) -> Group:
        if created_by not in members:
            members = [created_by] + list(members)
        group = Group(
            group_id=generate_group_id(),
            name=name.strip(),
            members=members,
            created_by=created_by
        )
        if len(group.members) < 2:
            raise ValidationError('A group needs at least one member besides its creator')
        self.create(group.to_db_doc())
        logger.info("Group %s created by %s with %d members", group.group_id, created_by, len(group.members))
        return group

    def get(self, group_id: str) -> Optional[Group]:
        doc = self.find_one({'group_id': group_id})
        return Group.from_doc(doc) if doc else None

    def list_for_member(self, phone_number: str) -> List[Group]:
        cursor = self.collection.find({'members': phone_number}).sort('created_at', ASCENDING)
        return [Group.from_doc(doc) for doc in cursor]
