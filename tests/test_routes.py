"""
Tests for the REST surface.

Tests cover:
- Registration, login and user listing
- Group creation and listing
- Sending, loading, deleting, hiding and searching messages
- Error envelopes for validation, missing data, bad transitions and storage failures
"""
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from conftest import ALICE, BOB, CAROL, DAVE, events_named


def _send(client, **body):
    payload = {'senderPhone': ALICE, 'receiverPhone': BOB, 'message': 'hi'}
    payload.update(body)
    return client.post('/api/messages', json=payload)


class TestAuth:

    def test_register(self, client):
        response = client.post('/api/register', json={'phoneNumber': '+15551234567', 'username': 'erin'})

        assert response.status_code == 201
        body = response.get_json()
        assert body['success'] is True
        assert body['user'] == {
            'phoneNumber': '+15551234567',
            'username': 'erin',
            'isOnline': False,
            'lastSeen': None
        }

    def test_register_duplicate(self, client):
        response = client.post('/api/register', json={'phoneNumber': ALICE, 'username': 'again'})

        assert response.status_code == 400
        assert response.get_json()['code'] == 'VALIDATION_ERROR'

    @pytest.mark.parametrize('payload', [
        {'phoneNumber': '5551234567', 'username': 'erin'},
        {'phoneNumber': '+1555', 'username': 'erin'},
        {'phoneNumber': '+15551234567', 'username': '  '},
        {},
    ])
    def test_register_invalid(self, client, payload):
        response = client.post('/api/register', json=payload)

        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_login(self, client):
        response = client.post('/api/login', json={'phoneNumber': ALICE})

        assert response.status_code == 200
        assert response.get_json()['user']['username'] == 'alice'

    def test_login_unknown(self, client):
        response = client.post('/api/login', json={'phoneNumber': '+15559999999'})
        assert response.status_code == 404

    def test_list_users(self, client):
        body = client.get('/api/users').get_json()

        assert body['count'] == 4
        assert [u['phoneNumber'] for u in body['users']] == [ALICE, BOB, CAROL, DAVE]


class TestGroups:

    def test_create_group_adds_creator(self, client):
        response = client.post('/api/groups', json={'name': 'team', 'members': [BOB, CAROL], 'createdBy': ALICE})

        assert response.status_code == 201
        group = response.get_json()['group']
        assert group['groupId'].startswith('GRP-')
        assert group['members'] == [ALICE, BOB, CAROL]
        assert group['createdBy'] == ALICE

    def test_create_group_notifies_members(self, client, connect_socket):
        bob = connect_socket(BOB)

        response = client.post('/api/groups', json={'name': 'team', 'members': [BOB], 'createdBy': ALICE})

        created = events_named(bob, 'group-created')
        assert [g['groupId'] for g in created] == [response.get_json()['group']['groupId']]

    def test_create_group_with_unregistered_member(self, client):
        response = client.post('/api/groups', json={'name': 'team', 'members': ['+15559999999'], 'createdBy': ALICE})

        assert response.status_code == 400
        assert 'members' in response.get_json()['errors']

    def test_create_group_invalid(self, client):
        response = client.post('/api/groups', json={'name': '', 'members': [], 'createdBy': 'alice'})

        assert response.status_code == 400
        assert set(response.get_json()['errors']) == {'name', 'members', 'createdBy'}

    def test_group_needs_another_member(self, client):
        response = client.post('/api/groups', json={'name': 'solo', 'members': [ALICE], 'createdBy': ALICE})
        assert response.status_code == 400

    def test_list_groups_for_member(self, client):
        client.post('/api/groups', json={'name': 'team', 'members': [BOB, CAROL], 'createdBy': ALICE})
        client.post('/api/groups', json={'name': 'pair', 'members': [DAVE], 'createdBy': ALICE})

        assert [g['name'] for g in client.get(f'/api/groups/{BOB}').get_json()['groups']] == ['team']
        assert client.get(f'/api/groups/{ALICE}').get_json()['count'] == 2


class TestMessages:

    def test_send_direct_message(self, client):
        response = _send(client)

        assert response.status_code == 201
        message = response.get_json()['message']
        assert message['senderPhone'] == ALICE
        assert message['receiverPhone'] == BOB
        assert message['groupId'] is None
        assert message['status'] == 'sent'
        assert message['timestamp'] == '2024-01-01T12:00:00.000Z'

    def test_send_to_both_targets(self, client):
        response = _send(client, groupId='GRP-0000000000')

        assert response.status_code == 400
        assert response.get_json()['code'] == 'VALIDATION_ERROR'

    def test_send_without_content(self, client):
        assert _send(client, message='').status_code == 400

    def test_send_with_attachment_only(self, client):
        response = _send(client, message=None, fileUrl='https://files.example/a.pdf',
                         fileType='application/pdf', fileSize=1024)

        assert response.status_code == 201
        assert response.get_json()['message']['fileType'] == 'application/pdf'

    def test_attachment_too_large(self, client):
        response = _send(client, fileUrl='https://files.example/big.iso', fileSize=50 * 1024 * 1024)
        assert response.status_code == 413

    def test_unregistered_sender(self, client):
        assert _send(client, senderPhone='+15559999999').status_code == 404

    def test_unknown_group(self, client):
        response = client.post('/api/messages', json={'senderPhone': ALICE, 'groupId': 'GRP-0000000000', 'message': 'hi'})

        assert response.status_code == 404
        assert response.get_json()['code'] == 'NOT_FOUND'

    @pytest.mark.parametrize('addressing', [
        {'groupId': {'$ne': None}},
        {'receiverPhone': {'$gt': ''}},
    ])
    def test_send_rejects_non_string_target(self, client, core, team_via_api, addressing):
        payload = {'senderPhone': ALICE, 'message': 'x'}
        payload.update(addressing)

        response = client.post('/api/messages', json=payload)

        assert response.status_code == 400
        assert response.get_json()['code'] == 'VALIDATION_ERROR'
        assert core.messages.collection.count_documents({}) == 0

    def test_send_rejects_non_string_body(self, client):
        assert _send(client, message={'text': 'hi'}).status_code == 400

    def test_load_conversation_marks_read(self, client, clock):
        _send(client, message='one')
        clock.advance()
        _send(client, message='two')

        body = client.get(f'/api/messages/{BOB}/{ALICE}').get_json()

        assert [m['message'] for m in body['messages']] == ['one', 'two']
        assert {m['status'] for m in body['messages']} == {'read'}

    def test_load_conversation_limit(self, client, clock):
        for i in range(4):
            clock.advance()
            _send(client, message=f'm{i}')

        body = client.get(f'/api/messages/{ALICE}/{BOB}?limit=2').get_json()
        assert [m['message'] for m in body['messages']] == ['m2', 'm3']

    def test_group_messages_with_viewer(self, client, team_via_api):
        sent = client.post('/api/messages', json={'senderPhone': ALICE, 'groupId': team_via_api, 'message': 'hello'})
        message_id = sent.get_json()['message']['messageId']
        client.post(f'/api/messages/{message_id}/hide', json={'phoneNumber': BOB})

        everyone = client.get(f'/api/group-messages/{team_via_api}').get_json()
        for_bob = client.get(f'/api/group-messages/{team_via_api}', query_string={'viewer': BOB}).get_json()

        assert everyone['count'] == 1
        assert for_bob['count'] == 0

    def test_group_messages_unknown_group(self, client):
        assert client.get('/api/group-messages/GRP-0000000000').status_code == 404

    def test_delete_message(self, client):
        message_id = _send(client).get_json()['message']['messageId']

        assert client.delete(f'/api/messages/{message_id}').status_code == 200
        assert client.delete(f'/api/messages/{message_id}').status_code == 404
        assert client.get(f'/api/messages/{ALICE}/{BOB}').get_json()['messages'] == []

    def test_hide_message(self, client):
        message_id = _send(client).get_json()['message']['messageId']

        response = client.post(f'/api/messages/{message_id}/hide', json={'phoneNumber': ALICE})

        assert response.status_code == 200
        assert client.get(f'/api/messages/{ALICE}/{BOB}').get_json()['count'] == 0
        assert client.get(f'/api/messages/{BOB}/{ALICE}').get_json()['count'] == 1

    def test_hide_requires_phone(self, client):
        message_id = _send(client).get_json()['message']['messageId']
        assert client.post(f'/api/messages/{message_id}/hide', json={}).status_code == 400

    def test_status_transitions(self, client):
        message_id = _send(client).get_json()['message']['messageId']

        skipped = client.post(f'/api/messages/{message_id}/status', json={'status': 'read'})
        client.post(f'/api/messages/{message_id}/status', json={'status': 'delivered'})
        first = client.post(f'/api/messages/{message_id}/status', json={'status': 'read'})
        again = client.post(f'/api/messages/{message_id}/status', json={'status': 'read'})
        backwards = client.post(f'/api/messages/{message_id}/status', json={'status': 'delivered'})

        assert skipped.status_code == 409
        assert first.get_json()['changed'] is True
        assert again.get_json()['changed'] is False
        assert backwards.status_code == 409
        assert backwards.get_json()['code'] == 'INVALID_TRANSITION'

    def test_search(self, client, clock):
        _send(client, message='Project kickoff')
        clock.advance()
        _send(client, senderPhone=CAROL, receiverPhone=DAVE, message='project secret')

        body = client.get(f'/api/search-messages/{BOB}/PROJECT').get_json()
        assert [m['message'] for m in body['messages']] == ['Project kickoff']

    def test_storage_failure_is_503(self, client, core, monkeypatch):
        def unavailable(*args, **kwargs):
            raise ServerSelectionTimeoutError('no servers')

        monkeypatch.setattr(core.messages.collection, 'insert_one', unavailable)

        response = _send(client)
        assert response.status_code == 503
        assert response.get_json()['code'] == 'STORAGE_UNAVAILABLE'


class TestHealth:

    def test_health(self, client, connect_socket):
        connect_socket(ALICE)
        body = client.get('/health').get_json()

        assert body['status'] == 'ok'
        assert body['connections'] == 1
        assert body['online'] == 1


@pytest.fixture
def team_via_api(client):
    response = client.post('/api/groups', json={'name': 'team', 'members': [BOB, CAROL], 'createdBy': ALICE})
    return response.get_json()['group']['groupId']
