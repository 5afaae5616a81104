"""Maps message addressing to the identities that should receive it."""
import logging
from typing import Set

from chatify_server.exception import NotFoundError, ValidationError
from chatify_server.messaging.models import Group, Message, Target

logger = logging.getLogger(__name__)


class ChannelResolver:

    def __init__(self, group_repository):
        self._groups = group_repository

    def get_group(self, group_id: str) -> Group:
        group = self._groups.get(group_id)
        if group is None:
            raise NotFoundError(f"Group {group_id} not found")
        return group

    def resolve_recipients(self, sender: str, target: Target) -> Set[str]:
        """Identities a message or signal from `sender` to `target` goes to.

        A direct peer resolves to itself; a group resolves to its members
        without the sender.
        """
        if not target.is_group:
            return {target.receiver}
        group = self.get_group(target.group_id)
        return set(group.members) - {sender}

    def require_member(self, identity: str, group_id: str) -> Group:
        group = self.get_group(group_id)
        if identity not in group.members:
            raise ValidationError(f"{identity} is not a member of group {group_id}")
        return group

    def participants(self, message: Message) -> Set[str]:
        """Every party of a stored message: both direct parties or all group members."""
        if message.is_group:
            return set(self.get_group(message.group_id).members)
        return {message.sender, message.receiver}
