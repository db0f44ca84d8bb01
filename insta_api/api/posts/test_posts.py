# insta_api/api/posts/test_posts.py
import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from insta_api.core.unique_keys import claim_key

IMAGE = {'type': 'image', 'url': 'https://example.com/photo.jpg'}
VIDEO = {'type': 'video', 'url': 'https://example.com/clip.mp4'}


@pytest.fixture
def owner(make_user):
    return make_user('owner')


@pytest.fixture
def fan(make_user):
    return make_user('fanfan')


@pytest.fixture
def post(app, owner):
    return app.services['posts'].create_post(owner['user_id'], {'caption': 'Sunset in Hội An', 'media': [IMAGE]})


def _like_notifications(app, post_id):
    docs = [doc.to_dict() for doc in app.services['notifications'].notifications_ref.stream()]
    return [n for n in docs if n['type'] == 'like' and n['target_id'] == post_id]


# --- create ---
def test_create_post(client, owner, auth_headers):
    response = client.post('/api/post', headers=auth_headers(owner), json={
        'caption': 'Hello World', 'media': [IMAGE, VIDEO], 'user_id': 'someone-else',
    })

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['user_id'] == owner['user_id']
    assert data['slug'] == 'hello_world'
    assert [m['type'] for m in data['media']] == ['image', 'video']
    assert data['likes'] == [] and data['shares'] == []


def test_slug_collision_gets_a_suffix(app, owner):
    posts = app.services['posts']
    first = posts.create_post(owner['user_id'], {'caption': 'Same caption', 'media': [IMAGE]})
    second = posts.create_post(owner['user_id'], {'caption': 'Same caption', 'media': [IMAGE]})

    assert first['slug'] == 'same_caption'
    assert second['slug'].startswith('same_caption_')
    assert second['slug'] != first['slug']


@pytest.mark.parametrize('body', [
    {'caption': 'no media', 'media': []},
    {'caption': 'bad type', 'media': [{'type': 'gif', 'url': 'https://example.com/a.gif'}]},
    {'caption': 'x' * 501, 'media': [IMAGE]},
    {'caption': 'missing media'},
])
def test_create_post_validation(client, owner, auth_headers, body):
    response = client.post('/api/post', headers=auth_headers(owner), json=body)
    assert response.status_code == 400


def test_get_post_by_id_and_slug(client, post, fan, auth_headers):
    headers = auth_headers(fan)
    assert client.get(f"/api/post/{post['post_id']}", headers=headers).get_json()['data']['caption'] == 'Sunset in Hội An'
    assert client.get(f"/api/post/{post['slug']}/slug", headers=headers).get_json()['data']['post_id'] == post['post_id']
    assert client.get('/api/post/missing', headers=headers).status_code == 404
    assert client.get('/api/post/missing/slug', headers=headers).status_code == 404


# --- update / delete ---
def test_only_owner_or_admin_can_update(client, post, owner, fan, make_user, auth_headers):
    url = f"/api/post/{post['post_id']}"
    assert client.put(url, headers=auth_headers(fan), json={'caption': 'mine now'}).status_code == 403

    response = client.put(url, headers=auth_headers(owner), json={'caption': 'Edited'})
    assert response.status_code == 200
    assert response.get_json()['data']['caption'] == 'Edited'
    assert response.get_json()['data']['slug'] == post['slug']

    admin = make_user('admin', is_admin=True)
    assert client.put(url, headers=auth_headers(admin), json={'caption': 'Moderated'}).status_code == 200


def test_delete_post(app, client, post, owner, fan, auth_headers):
    url = f"/api/post/{post['post_id']}"
    assert client.delete(url, headers=auth_headers(fan)).status_code == 403
    assert client.delete(url, headers=auth_headers(owner)).status_code == 200
    assert client.get(url, headers=auth_headers(owner)).status_code == 404


def test_slug_reserved_by_a_concurrent_post_gets_a_suffix(app, owner):
    posts = app.services['posts']
    # another request reserved the slug but has not stored its post yet
    claim_key(posts.slugs_ref, 'golden_hour', 'in-flight-post', "Slug already exists!")

    created = posts.create_post(owner['user_id'], {'caption': 'Golden hour', 'media': [IMAGE]})
    assert created['slug'].startswith('golden_hour_')


def test_deleted_post_frees_its_slug(app, client, post, owner, auth_headers):
    client.delete(f"/api/post/{post['post_id']}", headers=auth_headers(owner))

    again = app.services['posts'].create_post(owner['user_id'], {'caption': 'Sunset in Hội An', 'media': [IMAGE]})
    assert again['slug'] == post['slug']


def test_failed_post_write_is_logged_and_frees_the_slug(app, owner, caplog):
    posts = app.services['posts']
    posts_ref = posts.posts_ref
    posts.posts_ref = MagicMock()
    posts.posts_ref.document.return_value.set.side_effect = RuntimeError('firestore unavailable')

    with caplog.at_level(logging.ERROR):
        with pytest.raises(RuntimeError):
            posts.create_post(owner['user_id'], {'caption': 'Lost post', 'media': [IMAGE]})

    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert errors and errors[0].exc_info is not None

    posts.posts_ref = posts_ref
    assert posts.create_post(owner['user_id'], {'caption': 'Lost post', 'media': [IMAGE]})['slug'] == 'lost_post'


# --- like / share ---
def test_like_toggle_alternates(app, client, post, fan, auth_headers):
    url = f"/api/post/{post['post_id']}/like"
    headers = auth_headers(fan)

    outcomes = [client.put(url, headers=headers).get_json()['data']['liked'] for _ in range(3)]
    assert outcomes == [True, False, True]

    stored = app.services['posts'].get_post_by_id(post['post_id'])
    assert stored['likes'] == [fan['user_id']]
    assert len(_like_notifications(app, post['post_id'])) == 2


def test_liking_own_post_does_not_notify(app, client, post, owner, auth_headers):
    client.put(f"/api/post/{post['post_id']}/like", headers=auth_headers(owner))
    assert _like_notifications(app, post['post_id']) == []


def test_share_appends_every_time(app, client, post, fan, auth_headers):
    url = f"/api/post/{post['post_id']}/share"
    client.put(url, headers=auth_headers(fan))
    response = client.put(url, headers=auth_headers(fan))

    shares = response.get_json()['data']['shares']
    assert [s['user_id'] for s in shares] == [fan['user_id'], fan['user_id']]
    assert all(s['date'] for s in shares)

    docs = [doc.to_dict() for doc in app.services['notifications'].notifications_ref.stream()]
    assert [n['type'] for n in docs].count('share') == 2


# --- aggregation ---
def test_timeline_contains_own_and_followed_posts_newest_first(app, client, make_user, auth_headers):
    me, friend, stranger = make_user('meme'), make_user('friend'), make_user('stranger')
    app.services['users'].toggle_follow(me['user_id'], friend['user_id'])

    posts = app.services['posts']
    mine = posts.create_post(me['user_id'], {'caption': 'mine', 'media': [IMAGE]})
    theirs = posts.create_post(friend['user_id'], {'caption': 'theirs', 'media': [IMAGE]})
    posts.create_post(stranger['user_id'], {'caption': 'stranger', 'media': [IMAGE]})
    # make the ordering independent of clock resolution
    posts.posts_ref.document(mine['post_id']).update({'created_at': datetime(2024, 1, 1, tzinfo=timezone.utc)})
    posts.posts_ref.document(theirs['post_id']).update({'created_at': datetime(2024, 1, 2, tzinfo=timezone.utc)})

    body = client.get('/api/post/timeline/results', headers=auth_headers(me)).get_json()
    assert [p['caption'] for p in body['data']] == ['theirs', 'mine']
    assert body['data'][0]['author']['username'] == 'friend'
    assert body['totalDocs'] == 2


def test_posts_of_one_user_and_my_medias(app, client, owner, fan, auth_headers):
    posts = app.services['posts']
    posts.create_post(owner['user_id'], {'caption': 'one', 'media': [IMAGE, VIDEO]})
    posts.create_post(owner['user_id'], {'caption': 'two', 'media': [IMAGE]})

    data = client.get(f"/api/post/{owner['user_id']}/user", headers=auth_headers(fan)).get_json()['data']
    assert len(data) == 2
    assert data[0]['author']['username'] == 'owner'

    medias = client.get('/api/post/medias/results', headers=auth_headers(owner)).get_json()['data']
    assert len(medias) == 3
    assert {m['type'] for m in medias} == {'image', 'video'}
    assert all(m['post_id'] for m in medias)


def test_admin_listing_second_page(app, client, owner, make_user, auth_headers):
    admin = make_user('admin', is_admin=True)
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i in range(1, 26):
        app.services['posts'].posts_ref.document(f'post-{i:02d}').set({
            'post_id': f'post-{i:02d}', 'user_id': owner['user_id'], 'caption': f'#{i}',
            'media': [IMAGE], 'slug': f'post_{i}', 'likes': [], 'shares': [],
            'created_at': base + timedelta(minutes=i), 'updated_at': base + timedelta(minutes=i),
        })

    body = client.get('/api/post?page=2&limit=10', headers=auth_headers(admin)).get_json()

    assert [p['caption'] for p in body['data']] == [f'#{i}' for i in range(11, 21)]
    assert body['currentPage'] == 2
    assert body['totalPage'] == 3
    assert body['totalDocs'] == 25
