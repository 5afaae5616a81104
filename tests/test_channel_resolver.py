"""
Tests for recipient resolution.
"""
import pytest

from chatify_server.exception import NotFoundError, ValidationError
from chatify_server.messaging.models import Target

from conftest import ALICE, BOB, CAROL, DAVE


class TestResolveRecipients:

    def test_direct_target_resolves_to_peer(self, resolver):
        assert resolver.resolve_recipients(ALICE, Target.direct(BOB)) == {BOB}

    def test_group_resolves_to_members_minus_sender(self, resolver, team):
        assert resolver.resolve_recipients(BOB, Target.group(team.group_id)) == {ALICE, CAROL}

    def test_unknown_group(self, resolver):
        with pytest.raises(NotFoundError):
            resolver.resolve_recipients(ALICE, Target.group('GRP-0000000000'))

    def test_target_needs_exactly_one_mode(self):
        with pytest.raises(ValidationError):
            Target(receiver=BOB, group_id='GRP-1')
        with pytest.raises(ValidationError):
            Target.from_payload({})


class TestParticipants:

    def test_direct_message_participants(self, resolver, messages):
        message = messages.new_message(sender=ALICE, receiver=BOB, body='hi')
        assert resolver.participants(message) == {ALICE, BOB}

    def test_group_message_participants(self, resolver, messages, team):
        message = messages.new_message(sender=CAROL, group_id=team.group_id, body='hi')
        assert resolver.participants(message) == {ALICE, BOB, CAROL}

    def test_require_member(self, resolver, team):
        assert resolver.require_member(BOB, team.group_id).group_id == team.group_id
        with pytest.raises(ValidationError):
            resolver.require_member(DAVE, team.group_id)
