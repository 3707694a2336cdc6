import pytest

from minilove.core.exceptions import ValidationException
from minilove.modules.posts.models import Comment, CommentStatus, Post
from minilove.modules.posts.schemas import CommentCreate
from minilove.modules.users.models import User
from minilove.services.comments.service import CommentService

from .conftest import API, create_post


def _comment(client, headers, post_id, content="Nice post!", parent_id=None):
    payload = {"post_id": post_id, "content": content}
    if parent_id is not None:
        payload["parent_id"] = parent_id
    res = client.post(f"{API}/comments", json=payload, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]["comment"]


def test_create_comment_updates_counters(client, session, test_user2, test_post):
    comment = _comment(client, test_user2.headers, test_post["id"])
    assert comment["author"]["username"] == "bob"
    assert comment["status"] == "published"
    assert comment["replies"] == []

    session.expire_all()
    assert session.query(Post).filter(Post.id == test_post["id"]).one().comments_count == 1
    assert session.query(User).filter(User.id == test_user2.id).one().comments_count == 1


@pytest.mark.parametrize("content", ["x", "y" * 2001])
def test_comment_length_limits(client, test_user2, test_post, content):
    res = client.post(
        f"{API}/comments",
        json={"post_id": test_post["id"], "content": content},
        headers=test_user2.headers,
    )
    assert res.status_code == 400


def test_comment_on_missing_post(client, test_user2):
    res = client.post(
        f"{API}/comments", json={"post_id": 9999, "content": "hello"}, headers=test_user2.headers
    )
    assert res.status_code == 404


def test_reply_tree(client, test_user, test_user2, test_post):
    root = _comment(client, test_user2.headers, test_post["id"], "root comment")
    reply = _comment(client, test_user.headers, test_post["id"], "first reply", root["id"])
    _comment(client, test_user2.headers, test_post["id"], "nested reply", reply["id"])
    _comment(client, test_user.headers, test_post["id"], "second root")

    res = client.get(f"{API}/posts/{test_post['id']}/comments")
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["pagination"]["total"] == 2
    first = data["comments"][0]
    assert first["content"] == "root comment"
    assert [r["content"] for r in first["replies"]] == ["first reply"]
    assert [r["content"] for r in first["replies"][0]["replies"]] == ["nested reply"]
    assert data["comments"][1]["replies"] == []


def test_reply_parent_on_other_post(client, test_user, test_user2, test_post):
    other = create_post(client, test_user.headers, title="other")
    parent = _comment(client, test_user2.headers, other["id"])
    res = client.post(
        f"{API}/comments",
        json={"post_id": test_post["id"], "content": "wrong thread", "parent_id": parent["id"]},
        headers=test_user2.headers,
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "validation_error"


def test_reply_parent_missing(client, test_user2, test_post):
    res = client.post(
        f"{API}/comments",
        json={"post_id": test_post["id"], "content": "orphan", "parent_id": 9999},
        headers=test_user2.headers,
    )
    assert res.status_code == 404


def test_update_comment(client, test_user, test_user2, test_post):
    comment = _comment(client, test_user2.headers, test_post["id"])
    url = f"{API}/comments/{comment['id']}"

    assert client.put(url, json={"content": "hijack"}, headers=test_user.headers).status_code == 403

    res = client.put(url, json={"content": "edited text"}, headers=test_user2.headers)
    assert res.status_code == 200
    assert res.json()["data"]["comment"]["content"] == "edited text"
    assert res.json()["data"]["comment"]["is_edited"] is True


def test_delete_comment_is_soft_and_clamped(client, session, test_user2, test_post):
    comment = _comment(client, test_user2.headers, test_post["id"])
    # Counter drifted below the real number of rows.
    session.query(Post).filter(Post.id == test_post["id"]).update({"comments_count": 0})
    session.commit()

    res = client.delete(f"{API}/comments/{comment['id']}", headers=test_user2.headers)
    assert res.status_code == 200

    session.expire_all()
    row = session.query(Comment).filter(Comment.id == comment["id"]).one()
    assert row.status == CommentStatus.DELETED
    assert session.query(Post).filter(Post.id == test_post["id"]).one().comments_count == 0

    res = client.delete(f"{API}/comments/{comment['id']}", headers=test_user2.headers)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "comment_deleted"

    listing = client.get(f"{API}/posts/{test_post['id']}/comments").json()["data"]
    assert listing["comments"] == []


def test_deleted_reply_is_dropped_from_tree(client, test_user, test_user2, test_post):
    root = _comment(client, test_user2.headers, test_post["id"], "root comment")
    reply = _comment(client, test_user.headers, test_post["id"], "reply text", root["id"])
    client.delete(f"{API}/comments/{reply['id']}", headers=test_user.headers)

    comments = client.get(f"{API}/posts/{test_post['id']}/comments").json()["data"]["comments"]
    assert comments[0]["replies"] == []


def test_like_comment(client, test_user, test_user2, test_post):
    comment = _comment(client, test_user2.headers, test_post["id"])
    url = f"{API}/comments/{comment['id']}/like"

    res = client.post(url, headers=test_user.headers)
    assert res.status_code == 201
    assert res.json()["data"]["likes_count"] == 1
    assert client.post(url, headers=test_user.headers).status_code == 409

    comments = client.get(
        f"{API}/posts/{test_post['id']}/comments", headers=test_user.headers
    ).json()["data"]["comments"]
    assert comments[0]["is_liked"] is True

    res = client.delete(url, headers=test_user.headers)
    assert res.status_code == 200
    assert res.json()["data"]["likes_count"] == 0
    assert client.delete(url, headers=test_user.headers).status_code == 404


def test_like_deleted_comment(client, test_user, test_user2, test_post):
    comment = _comment(client, test_user2.headers, test_post["id"])
    client.delete(f"{API}/comments/{comment['id']}", headers=test_user2.headers)
    res = client.post(f"{API}/comments/{comment['id']}/like", headers=test_user.headers)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "comment_unavailable"


def test_service_rejects_foreign_parent(session, client, test_user, test_user2, test_post):
    other = create_post(client, test_user.headers, title="other")
    parent = _comment(client, test_user2.headers, other["id"])
    author = session.query(User).filter(User.id == test_user2.id).one()

    with pytest.raises(ValidationException):
        CommentService(session).create_comment(
            current_user=author,
            payload=CommentCreate(
                post_id=test_post["id"], content="wrong thread", parent_id=parent["id"]
            ),
        )
