import pytest

from minilove.modules.users.models import Follow, User

from .conftest import API, create_post


def test_read_me_includes_membership_and_stats(authorized_client, test_user):
    res = authorized_client.get(f"{API}/users/me")
    assert res.status_code == 200
    user = res.json()["data"]["user"]
    assert user["membership"] == {"level": "free", "expires_at": None, "is_active": False}
    assert user["stats"]["posts"] == 0


def test_update_profile(authorized_client, test_user):
    res = authorized_client.put(
        f"{API}/users/profile", json={"bio": "Likes tea", "age": 28, "gender": "female"}
    )
    assert res.status_code == 200
    user = res.json()["data"]["user"]
    assert user["bio"] == "Likes tea"
    assert user["age"] == 28
    assert user["gender"] == "female"


def test_update_profile_null_keeps_required_fields(authorized_client):
    authorized_client.put(f"{API}/users/profile", json={"bio": "Likes tea", "gender": "female"})

    res = authorized_client.put(
        f"{API}/users/profile", json={"gender": None, "bio": None, "city": "Paris"}
    )
    assert res.status_code == 200
    user = res.json()["data"]["user"]
    assert user["gender"] == "female"
    assert user["bio"] is None
    assert user["city"] == "Paris"


@pytest.mark.parametrize(
    "payload, status_code",
    [({}, 400), ({"age": 17}, 400), ({"age": 101}, 400), ({"gender": None}, 400)],
)
def test_update_profile_rejects(authorized_client, payload, status_code):
    res = authorized_client.put(f"{API}/users/profile", json=payload)
    assert res.status_code == status_code


def test_public_profile_hides_private_fields(client, test_user, test_user2):
    res = client.get(f"{API}/users/{test_user2.id}", headers=test_user.headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["user"]["username"] == "bob"
    assert "email" not in data["user"]
    assert data["is_following"] is False


def test_public_profile_of_missing_user(authorized_client):
    res = authorized_client.get(f"{API}/users/9999")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "resource_not_found"


def test_search_users(authorized_client, test_user, test_user2):
    res = authorized_client.get(f"{API}/users/search/bo")
    assert res.status_code == 200
    users = res.json()["data"]["users"]
    assert [u["username"] for u in users] == ["bob"]

    res = authorized_client.get(f"{API}/users/search/b")
    assert res.status_code == 400


def test_follow_and_unfollow(client, session, test_user, test_user2):
    res = client.post(f"{API}/users/{test_user2.id}/follow", headers=test_user.headers)
    assert res.status_code == 201
    assert res.json()["data"]["status"] == "approved"

    follow = (
        session.query(Follow)
        .filter(Follow.follower_id == test_user.id, Follow.following_id == test_user2.id)
        .first()
    )
    assert follow is not None

    res = client.get(f"{API}/users/{test_user2.id}", headers=test_user.headers)
    assert res.json()["data"]["is_following"] is True

    res = client.delete(f"{API}/users/{test_user2.id}/follow", headers=test_user.headers)
    assert res.status_code == 200
    session.expire_all()
    assert session.query(Follow).count() == 0


def test_cannot_follow_self(client, test_user):
    res = client.post(f"{API}/users/{test_user.id}/follow", headers=test_user.headers)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "cannot_follow_self"


def test_cannot_follow_twice(client, test_user, test_user2):
    client.post(f"{API}/users/{test_user2.id}/follow", headers=test_user.headers)
    res = client.post(f"{API}/users/{test_user2.id}/follow", headers=test_user.headers)
    assert res.status_code == 409


def test_follow_missing_user(client, test_user):
    res = client.post(f"{API}/users/9999/follow", headers=test_user.headers)
    assert res.status_code == 404


def test_unfollow_not_followed(client, test_user, test_user2):
    res = client.delete(f"{API}/users/{test_user2.id}/follow", headers=test_user.headers)
    assert res.status_code == 404


@pytest.mark.parametrize("invalid_id", [0, -1])
def test_follow_invalid_id(client, test_user, invalid_id):
    res = client.post(f"{API}/users/{invalid_id}/follow", headers=test_user.headers)
    assert res.status_code == 400


def test_follow_requires_auth(client, test_user2):
    res = client.post(f"{API}/users/{test_user2.id}/follow")
    assert res.status_code == 401


def test_follower_and_following_lists(client, test_user, test_user2):
    client.post(f"{API}/users/{test_user2.id}/follow", headers=test_user.headers)

    res = client.get(f"{API}/users/{test_user2.id}/followers", headers=test_user.headers)
    data = res.json()["data"]
    assert [u["id"] for u in data["users"]] == [test_user.id]
    assert data["users"][0]["followed_at"] is not None
    assert data["pagination"]["total"] == 1

    res = client.get(f"{API}/users/{test_user.id}/following", headers=test_user.headers)
    assert [u["id"] for u in res.json()["data"]["users"]] == [test_user2.id]


def test_my_bookmarks(client, test_user, test_user2):
    post = create_post(client, test_user2.headers)
    res = client.post(f"{API}/posts/{post['id']}/bookmark", headers=test_user.headers)
    assert res.status_code == 201

    res = client.get(f"{API}/users/me/bookmarks", headers=test_user.headers)
    posts = res.json()["data"]["posts"]
    assert [p["id"] for p in posts] == [post["id"]]
    assert posts[0]["is_bookmarked"] is True


def test_admin_lists_users(client, test_user, admin_user):
    res = client.get(f"{API}/users/", headers=test_user.headers)
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "insufficient_role"

    res = client.get(f"{API}/users/", headers=admin_user.headers)
    assert res.status_code == 200
    assert res.json()["data"]["pagination"]["total"] == 2


def test_admin_disables_user(client, session, test_user, admin_user):
    res = client.patch(
        f"{API}/users/{test_user.id}/status",
        json={"is_active": False},
        headers=admin_user.headers,
    )
    assert res.status_code == 200
    assert res.json()["data"]["user"]["is_active"] is False

    # The disabled user's still-valid token is refused.
    res = client.get(f"{API}/users/me", headers=test_user.headers)
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "account_disabled"

    res = client.patch(
        f"{API}/users/{admin_user.id}/status",
        json={"is_active": False},
        headers=admin_user.headers,
    )
    assert res.status_code == 400
    session.expire_all()
    assert session.query(User).filter(User.id == admin_user.id).one().is_active is True
