"""Delivery router.

Real-time fan-out for the messaging core. Every write goes to the message store
first; the router then pushes the result to whichever connections the affected
identities currently hold. Pushes are at-most-once: an identity with no live
connection simply misses the event and catches up from the store.

Event flow:
- send_message -> message (recipients + sender echo), status-changed (delivered)
- load_conversation -> status-changed (read), one per original sender
- delete_message -> message-deleted (all participants)
- react -> reaction (all participants)
- typing -> typing (resolved recipients, nothing stored)
- hide_message -> message-hidden (the hiding identity only)
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from chatify_server.exception import InvalidTransitionError
from chatify_server.messaging.models import Attachment, Group, Message, MessageStatus, Target
from chatify_server.websocket.event_emitter import EventEmitter

logger = logging.getLogger(__name__)


class DeliveryRouter:

    def __init__(self, message_repository, resolver, registry, emitter, search_limit: int = 50):
        self.messages = message_repository
        self.resolver = resolver
        self.registry = registry
        self.emitter = emitter
        self.search_limit = search_limit

    # =========================================================================
    # Publishing
    # =========================================================================

    def publish(self, identity: str, event: str, data: Dict[str, Any]) -> int:
        """Push `event` to every live connection of `identity`.

        Returns the number of connections reached. No connection is a normal
        outcome and the event is dropped.
        """
        connections = self.registry.connections_of(identity)
        if not connections:
            logger.debug("ROUTER: %s offline, dropped '%s'", identity, event)
            return 0

        reached = 0
        for sid in connections:
            try:
                if self.emitter.emit_to_connection(sid, event, data):
                    reached += 1
            except Exception as e:
                logger.error("ROUTER: error emitting %s to socket %s: %s", event, sid, e)
        logger.debug("ROUTER: '%s' reached %d/%d connection(s) of %s", event, reached, len(connections), identity)
        return reached

    def publish_many(self, identities: Iterable[str], event: str, data: Dict[str, Any]) -> int:
        return sum(self.publish(identity, event, data) for identity in sorted(set(identities)))

    # =========================================================================
    # Messages
    # =========================================================================

    def send_message(
        self,
        sender: str,
        receiver: Optional[str] = None,
        group_id: Optional[str] = None,
        body: Optional[str] = None,
        attachment: Optional[Attachment] = None
    ) -> Message:
        """Store a message and push it to its recipients.

        A direct message whose recipient is online at publish time is advanced
        to delivered and the sender is told so.
        """
        target = Target(receiver=receiver or None, group_id=group_id or None)
        if target.is_group:
            self.resolver.require_member(sender, target.group_id)
        recipients = self.resolver.resolve_recipients(sender, target)

        message = self.messages.new_message(
            sender=sender,
            receiver=target.receiver,
            group_id=target.group_id,
            body=body,
            attachment=attachment
        )
        logger.info("ROUTER: message %s from %s to %s", message.message_id, sender, target)

        payload = message.to_dict()
        self.publish_many(recipients, EventEmitter.MESSAGE, payload)
        self.publish(sender, EventEmitter.MESSAGE, payload)

        if not target.is_group and self.registry.is_online(target.receiver):
            try:
                changed = self.messages.advance_status(message.message_id, MessageStatus.DELIVERED)
            except InvalidTransitionError:
                # already read by a concurrent conversation load
                changed = False
            if changed:
                message.status = MessageStatus.DELIVERED
                self.publish(sender, EventEmitter.STATUS_CHANGED, {
                    'messageId': message.message_id,
                    'status': MessageStatus.DELIVERED.value,
                    'receiverPhone': target.receiver
                })
        return message

    def load_conversation(self, reader: str, peer: str, limit: Optional[int] = None) -> List[Message]:
        """Return the latest page between `reader` and `peer` and mark it read.

        Each original sender whose messages moved to read gets one
        status-changed event listing them.
        """
        messages = self.messages.query_conversation(reader, peer, limit)
        advanced = self.messages.mark_conversation_read(reader, peer)

        read_ids = set()
        for sender, message_ids in advanced.items():
            read_ids.update(message_ids)
            self.publish(sender, EventEmitter.STATUS_CHANGED, {
                'messageIds': message_ids,
                'status': MessageStatus.READ.value,
                'readBy': reader
            })
        for message in messages:
            if message.message_id in read_ids:
                message.status = MessageStatus.READ
        return messages

    def load_group(self, group_id: str, limit: Optional[int] = None, viewer: Optional[str] = None) -> List[Message]:
        self.resolver.get_group(group_id)
        return self.messages.query_group(group_id, limit, viewer=viewer)

    def search(self, identity: str, query: str, limit: Optional[int] = None) -> List[Message]:
        return self.messages.search_by_text(identity, query, limit or self.search_limit)

    def advance_status(self, message_id: str, status) -> bool:
        """Move a direct message forward and tell its sender; repeats publish nothing."""
        status = MessageStatus.parse(status)
        changed = self.messages.advance_status(message_id, status)
        if changed:
            message = self.messages.get_message(message_id)
            payload = {'messageId': message_id, 'status': status.value}
            if status == MessageStatus.READ:
                payload['messageIds'] = [message_id]
                payload['readBy'] = message.receiver
            else:
                payload['receiverPhone'] = message.receiver
            self.publish(message.sender, EventEmitter.STATUS_CHANGED, payload)
        return changed

    def delete_message(self, message_id: str) -> Message:
        """Remove a message for everyone and notify all of its participants."""
        message = self.messages.remove(message_id)
        participants = self.resolver.participants(message)
        logger.info("ROUTER: message %s deleted, notifying %d participant(s)", message_id, len(participants))
        self.publish_many(participants, EventEmitter.MESSAGE_DELETED, {'messageId': message_id})
        return message

    def hide_message(self, message_id: str, identity: str) -> Message:
        """Hide a message from `identity`'s own views (delete for me)."""
        message = self.messages.hide_for(message_id, identity)
        self.publish(identity, EventEmitter.MESSAGE_HIDDEN, {'messageId': message_id})
        return message

    def react(self, message_id: str, identity: str, symbol: Optional[str]) -> Message:
        message = self.messages.upsert_reaction(message_id, identity, symbol)
        self.publish_many(self.resolver.participants(message), EventEmitter.REACTION, {
            'messageId': message_id,
            'phoneNumber': identity,
            'reaction': symbol or None,
            'reactions': message.reactions
        })
        return message

    # =========================================================================
    # Transient signals
    # =========================================================================

    def typing(self, sender: str, target: Target, is_typing: bool) -> int:
        """Relay a typing signal. Nothing is stored; stale signals are the client's to expire."""
        if target.is_group:
            self.resolver.require_member(sender, target.group_id)
        recipients = self.resolver.resolve_recipients(sender, target)
        payload = {
            'senderPhone': sender,
            'receiverPhone': target.receiver,
            'groupId': target.group_id,
            'isTyping': bool(is_typing)
        }
        return self.publish_many(recipients, EventEmitter.TYPING, payload)

    def notify_group_created(self, group: Group) -> int:
        return self.publish_many(group.members, EventEmitter.GROUP_CREATED, group.to_dict())
