# insta_api/api/users/test_users.py
import logging
from unittest.mock import MagicMock

import pytest

from insta_api.core.errors import BadRequestError, ConflictError
from insta_api.core.security import verify_password


def _notifications(app, **where):
    docs = [doc.to_dict() for doc in app.services['notifications'].notifications_ref.stream()]
    return [n for n in docs if all(n.get(k) == v for k, v in where.items())]


@pytest.fixture
def alice(make_user):
    return make_user('alice')


@pytest.fixture
def bob(make_user):
    return make_user('bobby')


@pytest.fixture
def admin(make_user):
    return make_user('admin', is_admin=True)


# --- follow toggle ---
def test_follow_records_both_sides(app, client, alice, bob, auth_headers):
    response = client.put(f"/api/user/follow/{bob['user_id']}", headers=auth_headers(alice))

    assert response.status_code == 200
    assert response.get_json()['data']['following'] is True

    users = app.services['users']
    assert alice['user_id'] in users.find_by_id(bob['user_id'])['followers']
    assert bob['user_id'] in users.find_by_id(alice['user_id'])['followings']


def test_follow_twice_restores_the_original_state(app, client, alice, bob, auth_headers):
    headers = auth_headers(alice)
    client.put(f"/api/user/follow/{bob['user_id']}", headers=headers)
    response = client.put(f"/api/user/follow/{bob['user_id']}", headers=headers)

    assert response.get_json()['data']['following'] is False
    users = app.services['users']
    assert users.find_by_id(bob['user_id'])['followers'] == []
    assert users.find_by_id(alice['user_id'])['followings'] == []


def test_follow_notifies_only_on_follow(app, client, alice, bob, auth_headers):
    headers = auth_headers(alice)
    client.put(f"/api/user/follow/{bob['user_id']}", headers=headers)
    client.put(f"/api/user/follow/{bob['user_id']}", headers=headers)

    notifications = _notifications(app, user_id=bob['user_id'])
    assert len(notifications) == 1
    assert notifications[0]['type'] == 'follow'
    assert notifications[0]['source_id'] == alice['user_id']


@pytest.mark.parametrize('is_admin', [False, True])
def test_self_follow_always_fails(app, client, make_user, auth_headers, is_admin):
    user = make_user('selfish', is_admin=is_admin)
    response = client.put(f"/api/user/follow/{user['user_id']}", headers=auth_headers(user))

    assert response.status_code == 400
    assert response.get_json()['isError'] is True
    assert app.services['users'].find_by_id(user['user_id'])['followers'] == []


def test_self_follow_is_rejected_by_the_service_too(app, alice):
    with pytest.raises(BadRequestError):
        app.services['users'].toggle_follow(alice['user_id'], alice['user_id'])


def test_follow_unknown_account(client, alice, auth_headers):
    response = client.put('/api/user/follow/does-not-exist', headers=auth_headers(alice))
    assert response.status_code == 404


def test_follow_survives_a_notification_failure(app, client, alice, bob, auth_headers):
    app.services['notifications'].notifications_ref = None  # every write now raises
    response = client.put(f"/api/user/follow/{bob['user_id']}", headers=auth_headers(alice))

    assert response.status_code == 200
    assert alice['user_id'] in app.services['users'].find_by_id(bob['user_id'])['followers']


def test_followers_and_followings_are_populated(client, alice, bob, auth_headers):
    client.put(f"/api/user/follow/{bob['user_id']}", headers=auth_headers(alice))

    followers = client.get('/api/user/followers/results', headers=auth_headers(bob)).get_json()['data']
    assert [f['username'] for f in followers['followers']] == ['alice']

    followings = client.get('/api/user/followings/results', headers=auth_headers(alice)).get_json()['data']
    assert [f['username'] for f in followings['followings']] == ['bobby']


# --- CRUD ---
def test_get_user_hides_credentials(client, alice, bob, auth_headers):
    data = client.get(f"/api/user/{bob['user_id']}", headers=auth_headers(alice)).get_json()['data']

    assert data['username'] == 'bobby'
    assert 'password' not in data
    assert 'google_id' not in data
    assert data['isAdmin'] is False


def test_update_own_profile(client, alice, auth_headers):
    response = client.put(f"/api/user/{alice['user_id']}", headers=auth_headers(alice), json={
        'bio': 'hello', 'from': 'Da Nang', 'date_of_birth': '1999-02-03', 'isAdmin': True,
    })

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['bio'] == 'hello'
    assert data['from'] == 'Da Nang'
    assert data['date_of_birth'] == '1999-02-03'
    assert data['isAdmin'] is False


def test_update_other_profile_requires_admin(client, alice, bob, admin, auth_headers):
    response = client.put(f"/api/user/{bob['user_id']}", headers=auth_headers(alice), json={'bio': 'hacked'})
    assert response.status_code == 401

    response = client.put(f"/api/user/{bob['user_id']}", headers=auth_headers(admin), json={'tick': True})
    assert response.status_code == 200
    assert response.get_json()['data']['tick'] is True


def test_update_username_conflict(client, alice, bob, auth_headers):
    response = client.put(f"/api/user/{alice['user_id']}", headers=auth_headers(alice), json={'username': 'bobby'})
    assert response.status_code == 409


def test_delete_user(app, client, alice, bob, admin, auth_headers):
    assert client.delete(f"/api/user/{bob['user_id']}", headers=auth_headers(alice)).status_code == 401
    assert client.delete(f"/api/user/{bob['user_id']}", headers=auth_headers(admin)).status_code == 200
    assert client.delete(f"/api/user/{alice['user_id']}", headers=auth_headers(alice)).status_code == 200
    assert app.services['users'].find_by_id(bob['user_id']) is None


def test_list_users_filters_on_allowed_fields(client, make_user, admin, auth_headers):
    make_user('verified', tick=True)
    make_user('plain')
    body = client.get('/api/user?tick=true', headers=auth_headers(admin)).get_json()

    assert [u['username'] for u in body['data']] == ['verified']
    assert body['totalDocs'] == 1
    assert body['totalPage'] == 1
    assert body['currentPage'] == 1


# --- read-only views ---
def test_search_ignores_case_and_diacritics(client, make_user, alice, auth_headers):
    make_user('tuannv', full_name='Nguyễn Văn Tuấn')
    make_user('hoang', full_name='Lê Hoàng')

    body = client.get('/api/user/search/results?q=TUAN', headers=auth_headers(alice)).get_json()
    assert [u['username'] for u in body['data']] == ['tuannv']
    assert body['totalDocs'] == 1

    body = client.get('/api/user/search/results?q=', headers=auth_headers(alice)).get_json()
    assert body['data'] == []


def test_suggested_accounts_are_second_degree(app, client, make_user, auth_headers):
    me, friend, candidate, stranger = (make_user(n) for n in ('meme', 'friend', 'candidate', 'stranger'))
    users = app.services['users']
    users.toggle_follow(me['user_id'], friend['user_id'])
    users.toggle_follow(candidate['user_id'], friend['user_id'])

    app.services['posts'].create_post(candidate['user_id'], {
        'caption': 'beach', 'media': [{'type': 'image', 'url': 'https://example.com/beach.jpg'}],
    })

    body = client.get('/api/user/suggested/results', headers=auth_headers(me)).get_json()
    assert [u['username'] for u in body['data']] == ['candidate']
    assert body['data'][0]['post_count'] == 1
    assert body['data'][0]['recent_images'] == ['https://example.com/beach.jpg']


def test_suggestions_are_empty_without_followings(client, alice, auth_headers):
    body = client.get('/api/user/suggested/results', headers=auth_headers(alice)).get_json()
    assert body['data'] == []
    assert body['totalDocs'] == 0


def test_profile_by_username(app, client, alice, auth_headers):
    app.services['posts'].create_post(alice['user_id'], {
        'caption': 'first', 'media': [{'type': 'image', 'url': 'https://example.com/1.jpg'}],
    })
    data = client.get('/api/user/profile/alice', headers=auth_headers(alice)).get_json()['data']
    assert data['post_count'] == 1

    assert client.get('/api/user/profile/nobody', headers=auth_headers(alice)).status_code == 404


def test_change_password(app, client, alice, auth_headers):
    response = client.put('/api/user/change/password', headers=auth_headers(alice),
                          json={'password': 'wrong', 'new_password': 'newsecret'})
    assert response.status_code == 401

    response = client.put('/api/user/change/password', headers=auth_headers(alice),
                          json={'password': 'secret123', 'new_password': 'newsecret'})
    assert response.status_code == 200

    stored = app.services['users'].find_by_id(alice['user_id'])
    assert verify_password('newsecret', stored['password'])
    login = client.post('/api/auth/login', json={'emailOrUsername': 'alice', 'password': 'newsecret'})
    assert login.status_code == 200


def test_suggestions_default_to_five_per_page(app, client, make_user, auth_headers):
    me, friend = make_user('meme'), make_user('friend')
    users = app.services['users']
    users.toggle_follow(me['user_id'], friend['user_id'])
    for i in range(6):
        candidate = make_user(f'candidate{i}')
        users.toggle_follow(candidate['user_id'], friend['user_id'])

    body = client.get('/api/user/suggested/results', headers=auth_headers(me)).get_json()
    assert len(body['data']) == 5
    assert body['totalDocs'] == 6
    assert body['totalPage'] == 2


# --- date of birth ---
def test_date_of_birth_accepts_an_iso_timestamp(client, alice, auth_headers):
    response = client.put(f"/api/user/{alice['user_id']}", headers=auth_headers(alice),
                          json={'date_of_birth': '1999-02-03T10:00:00Z'})

    assert response.status_code == 200
    assert response.get_json()['data']['date_of_birth'] == '1999-02-03'


@pytest.mark.parametrize('value', ['yesterday', '', 19990203])
def test_date_of_birth_rejects_other_values(client, alice, auth_headers, value):
    response = client.put(f"/api/user/{alice['user_id']}", headers=auth_headers(alice),
                          json={'date_of_birth': value})
    assert response.status_code == 400


# --- unique usernames and emails ---
def test_renamed_username_becomes_available(app, client, alice, auth_headers, make_user):
    response = client.put(f"/api/user/{alice['user_id']}", headers=auth_headers(alice),
                          json={'username': 'alice_new', 'email': 'new@example.com'})
    assert response.status_code == 200

    newcomer = make_user('alice')
    assert newcomer['email'] == 'alice@example.com'


def test_deleted_account_frees_its_username(app, alice, make_user):
    app.services['users'].delete_user(alice['user_id'])
    assert make_user('alice')['user_id'] != alice['user_id']


def test_rename_to_a_taken_username_keeps_the_old_one(app, alice, bob):
    users = app.services['users']
    with pytest.raises(ConflictError):
        users.update_user(bob['user_id'], {'username': 'alice'})
    assert users.find_by_id(bob['user_id'])['username'] == 'bobby'


def test_failed_account_write_is_logged_and_releases_the_username(app, make_user, caplog):
    users = app.services['users']
    users_ref = users.users_ref
    users.users_ref = MagicMock()
    users.users_ref.document.return_value.set.side_effect = RuntimeError('firestore unavailable')

    with caplog.at_level(logging.ERROR):
        with pytest.raises(RuntimeError):
            make_user('unlucky')

    records = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert records and records[0].exc_info is not None
    assert 'unlucky' in records[0].getMessage()

    users.users_ref = users_ref
    assert make_user('unlucky')['username'] == 'unlucky'
