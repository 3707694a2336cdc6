import pytest
from sqlalchemy.exc import IntegrityError

from minilove.modules.posts.models import Like, Post
from minilove.modules.users.models import User

from .conftest import API, create_post


def _like_rows(session, post_id):
    return session.query(Like).filter(Like.post_id == post_id).count()


def test_like_and_unlike_post(client, session, test_user, test_user2, test_post):
    url = f"{API}/posts/{test_post['id']}/like"
    res = client.post(url, headers=test_user2.headers)
    assert res.status_code == 201
    assert res.json()["data"] == {"liked": True, "likes_count": 1}

    detail = client.get(f"{API}/posts/{test_post['id']}", headers=test_user2.headers)
    assert detail.json()["data"]["post"]["is_liked"] is True

    res = client.delete(url, headers=test_user2.headers)
    assert res.status_code == 200
    assert res.json()["data"] == {"liked": False, "likes_count": 0}


def test_double_like_conflicts(client, session, test_user2, test_post):
    url = f"{API}/posts/{test_post['id']}/like"
    client.post(url, headers=test_user2.headers)
    res = client.post(url, headers=test_user2.headers)
    assert res.status_code == 409
    session.expire_all()
    assert _like_rows(session, test_post["id"]) == 1
    assert session.query(Post).filter(Post.id == test_post["id"]).one().likes_count == 1


def test_unlike_without_like(client, test_user2, test_post):
    res = client.delete(f"{API}/posts/{test_post['id']}/like", headers=test_user2.headers)
    assert res.status_code == 404


def test_like_deleted_post(client, test_user, test_user2, test_post):
    client.delete(f"{API}/posts/{test_post['id']}", headers=test_user.headers)
    res = client.post(f"{API}/posts/{test_post['id']}/like", headers=test_user2.headers)
    assert res.status_code == 404


def test_like_counter_matches_rows_after_cycles(client, session, test_user, test_user2, premium_user):
    post_id = create_post(client, test_user.headers)["id"]
    likers = [test_user, test_user2, premium_user]
    url = f"{API}/posts/{post_id}/like"

    for cycle in range(5):
        for liker in likers:
            assert client.post(url, headers=liker.headers).status_code == 201
        # A repeated like never moves the counter.
        assert client.post(url, headers=likers[0].headers).status_code == 409
        for liker in likers[: cycle % len(likers) + 1]:
            assert client.delete(url, headers=liker.headers).status_code == 200
        session.expire_all()
        post = session.query(Post).filter(Post.id == post_id).one()
        assert post.likes_count == _like_rows(session, post_id)
        for liker in likers[: cycle % len(likers) + 1]:
            client.post(url, headers=liker.headers)
        for liker in likers:
            client.delete(url, headers=liker.headers)

    session.expire_all()
    assert session.query(Post).filter(Post.id == post_id).one().likes_count == 0
    assert _like_rows(session, post_id) == 0
    given = session.query(User.likes_given_count).filter(User.id == test_user2.id).scalar()
    assert given == 0


def test_like_given_counter(client, session, test_user2, test_post):
    client.post(f"{API}/posts/{test_post['id']}/like", headers=test_user2.headers)
    session.expire_all()
    assert session.query(User).filter(User.id == test_user2.id).one().likes_given_count == 1


def test_like_requires_single_target(session, test_user):
    session.add(Like(user_id=test_user.id))
    with pytest.raises(IntegrityError):
        session.commit()
    session.rollback()


def test_like_unique_per_target(session, test_user, test_post):
    session.add(Like(user_id=test_user.id, post_id=test_post["id"]))
    session.commit()
    session.add(Like(user_id=test_user.id, post_id=test_post["id"]))
    with pytest.raises(IntegrityError):
        session.commit()
    session.rollback()
