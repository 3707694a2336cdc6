import pytest

from minilove.modules.posts.models import Post, PostStatus, Topic
from minilove.modules.users.models import User

from .conftest import API, create_post


def test_create_post(client, session, test_user):
    post = create_post(
        client,
        test_user.headers,
        content="今天很开心, a happy day with friends",
        tags=[" Reading ", "Reading", ""],
    )
    assert post["user_id"] == test_user.id
    assert post["status"] == "published"
    assert post["visibility"] == "public"
    assert post["published_at"] is not None
    assert post["tags"] == ["Reading"]
    assert post["emotion_tags"] == ["positive"]
    assert post["author"]["username"] == "alice"

    session.expire_all()
    assert session.query(User).filter(User.id == test_user.id).one().posts_count == 1


def test_create_draft_does_not_count(client, session, test_user):
    post = create_post(client, test_user.headers, status="draft")
    assert post["published_at"] is None
    session.expire_all()
    assert session.query(User).filter(User.id == test_user.id).one().posts_count == 0


@pytest.mark.parametrize(
    "payload",
    [
        {"content": "too short"},
        {"content": "long enough content", "images": [f"{i}.png" for i in range(10)]},
        {"content": "long enough content", "tags": [str(i) for i in range(11)]},
        {"content": "long enough content", "visibility": "everyone"},
        {"content": "long enough content", "status": "archived"},
    ],
)
def test_create_post_validation(authorized_client, payload):
    res = authorized_client.post(f"{API}/posts", json=payload)
    assert res.status_code == 400


def test_create_post_requires_auth(client):
    res = client.post(f"{API}/posts", json={"content": "long enough content"})
    assert res.status_code == 401


def test_list_posts_pagination(client, test_posts):
    res = client.get(f"{API}/posts", params={"page": 1, "limit": 3})
    assert res.status_code == 200
    data = res.json()["data"]
    assert len(data["posts"]) == 3
    assert data["pagination"] == {
        "total": 4,
        "page": 1,
        "limit": 3,
        "total_pages": 2,
        "has_next_page": True,
        "has_prev_page": False,
    }
    # Newest first.
    assert data["posts"][0]["id"] == test_posts[-1]["id"]


def test_list_posts_filters(client, test_user):
    create_post(client, test_user.headers, title="tagged", tags=["旅行"], category="恋爱心得")
    create_post(client, test_user.headers, title="plain", content="nothing in particular here")

    by_tag = client.get(f"{API}/posts", params={"tag": "旅行"}).json()["data"]["posts"]
    assert [p["title"] for p in by_tag] == ["tagged"]

    by_category = client.get(f"{API}/posts", params={"category": "恋爱心得"}).json()["data"]["posts"]
    assert [p["title"] for p in by_category] == ["tagged"]

    by_search = client.get(f"{API}/posts", params={"search": "particular"}).json()["data"]["posts"]
    assert [p["title"] for p in by_search] == ["plain"]


def test_list_posts_tag_filter_matches_whole_elements(client, test_user):
    create_post(client, test_user.headers, title="sale", tags=["50%_off"])
    create_post(client, test_user.headers, title="lookalike", tags=["500 off", "50x_off"])
    create_post(client, test_user.headers, title="quoted", tags=['say "hi"', "back\\slash"])

    def titles(tag):
        posts = client.get(f"{API}/posts", params={"tag": tag}).json()["data"]["posts"]
        return [p["title"] for p in posts]

    assert titles("50%_off") == ["sale"]
    assert titles('say "hi"') == ["quoted"]
    assert titles("back\\slash") == ["quoted"]
    assert titles("off") == []


def test_list_hides_private_and_drafts(client, test_user):
    create_post(client, test_user.headers, title="private", visibility="private")
    create_post(client, test_user.headers, title="draft", status="draft")
    create_post(client, test_user.headers, title="public")
    titles = [p["title"] for p in client.get(f"{API}/posts").json()["data"]["posts"]]
    assert titles == ["public"]


def test_get_post_counts_views(client, test_post):
    for expected in (1, 2):
        res = client.get(f"{API}/posts/{test_post['id']}")
        assert res.status_code == 200
        assert res.json()["data"]["post"]["views_count"] == expected


def test_get_missing_post(client):
    res = client.get(f"{API}/posts/9999")
    assert res.status_code == 404
    assert res.json()["success"] is False


def test_update_post(client, test_user, test_post):
    res = client.put(
        f"{API}/posts/{test_post['id']}",
        json={"title": "Edited", "content": "I feel so sad and lonely today", "tags": ["mood"]},
        headers=test_user.headers,
    )
    assert res.status_code == 200
    post = res.json()["data"]["post"]
    assert post["title"] == "Edited"
    assert post["tags"] == ["mood"]
    assert post["emotion_tags"] == ["negative"]


def test_update_post_clears_title(client, test_user, test_post):
    res = client.put(
        f"{API}/posts/{test_post['id']}", json={"title": None}, headers=test_user.headers
    )
    assert res.status_code == 200
    assert res.json()["data"]["post"]["title"] is None


def test_update_post_not_owner(client, test_user2, test_post):
    res = client.put(
        f"{API}/posts/{test_post['id']}", json={"title": "Hijack"}, headers=test_user2.headers
    )
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "ownership_required"


def test_publish_draft_sets_published_at(client, session, test_user):
    draft = create_post(client, test_user.headers, status="draft")
    res = client.put(
        f"{API}/posts/{draft['id']}", json={"status": "published"}, headers=test_user.headers
    )
    assert res.json()["data"]["post"]["published_at"] is not None
    session.expire_all()
    assert session.query(User).filter(User.id == test_user.id).one().posts_count == 1


def test_delete_post_is_soft(client, session, test_user, test_post):
    res = client.delete(f"{API}/posts/{test_post['id']}", headers=test_user.headers)
    assert res.status_code == 200

    session.expire_all()
    row = session.query(Post).filter(Post.id == test_post["id"]).one()
    assert row.status == PostStatus.DELETED
    assert session.query(User).filter(User.id == test_user.id).one().posts_count == 0

    assert client.get(f"{API}/posts/{test_post['id']}").status_code == 404
    assert client.delete(f"{API}/posts/{test_post['id']}", headers=test_user.headers).status_code == 404
    assert client.get(f"{API}/posts").json()["data"]["pagination"]["total"] == 0


def test_delete_post_not_owner(client, test_user2, test_post):
    res = client.delete(f"{API}/posts/{test_post['id']}", headers=test_user2.headers)
    assert res.status_code == 403


def test_topic_counter_follows_category(client, session, seeded, test_user):
    post = create_post(client, test_user.headers, category="自我成长")
    session.expire_all()
    topic = session.query(Topic).filter(Topic.name == "自我成长").one()
    assert topic.posts_count == 1

    client.put(f"{API}/posts/{post['id']}", json={"category": "职场压力"}, headers=test_user.headers)
    session.expire_all()
    assert session.query(Topic).filter(Topic.name == "自我成长").one().posts_count == 0
    assert session.query(Topic).filter(Topic.name == "职场压力").one().posts_count == 1

    client.delete(f"{API}/posts/{post['id']}", headers=test_user.headers)
    session.expire_all()
    assert session.query(Topic).filter(Topic.name == "职场压力").one().posts_count == 0


def test_trending_ranks_by_score(client, session, test_user, test_user2):
    quiet = create_post(client, test_user.headers, title="quiet")
    popular = create_post(client, test_user.headers, title="popular")
    session.query(Post).filter(Post.id == popular["id"]).update({"likes_count": 5, "views_count": 1})
    session.query(Post).filter(Post.id == quiet["id"]).update({"comments_count": 1})
    session.commit()

    res = client.get(f"{API}/posts/trending", params={"timeframe": "day"})
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["timeframe"] == "day"
    assert [p["title"] for p in data["posts"]] == ["popular", "quiet"]
    assert data["posts"][0]["trending_score"] == 11
    assert data["posts"][1]["trending_score"] == 3


def test_trending_rejects_unknown_timeframe(client):
    assert client.get(f"{API}/posts/trending", params={"timeframe": "year"}).status_code == 400


def test_featured_posts(client, session, test_user):
    post = create_post(client, test_user.headers)
    create_post(client, test_user.headers, title="not featured")
    session.query(Post).filter(Post.id == post["id"]).update({"is_featured": True})
    session.commit()
    posts = client.get(f"{API}/posts/featured").json()["data"]["posts"]
    assert [p["id"] for p in posts] == [post["id"]]


def test_user_posts_owner_sees_drafts(client, test_user, test_user2):
    create_post(client, test_user.headers, title="draft", status="draft")
    create_post(client, test_user.headers, title="public")

    own = client.get(f"{API}/posts/user/{test_user.id}", headers=test_user.headers)
    assert {p["title"] for p in own.json()["data"]["posts"]} == {"draft", "public"}

    other = client.get(f"{API}/posts/user/{test_user.id}", headers=test_user2.headers)
    assert [p["title"] for p in other.json()["data"]["posts"]] == ["public"]


def test_bookmark_twice_and_remove(client, test_user, test_post):
    url = f"{API}/posts/{test_post['id']}/bookmark"
    assert client.post(url, headers=test_user.headers).status_code == 201
    assert client.post(url, headers=test_user.headers).status_code == 409
    assert client.delete(url, headers=test_user.headers).status_code == 200
    assert client.delete(url, headers=test_user.headers).status_code == 404


def test_premium_feed_requires_premium(client, session, test_user, premium_user):
    res = client.get(f"{API}/posts/premium/feed", headers=test_user.headers)
    assert res.status_code == 403

    followed = create_post(client, test_user.headers, title="friends", visibility="friends_only")
    create_post(client, test_user.headers, title="public from followed")
    client.post(f"{API}/users/{test_user.id}/follow", headers=premium_user.headers)

    res = client.get(f"{API}/posts/premium/feed", headers=premium_user.headers)
    assert res.status_code == 200
    titles = [p["title"] for p in res.json()["data"]["posts"]]
    assert "friends" in titles
    assert followed["id"] in [p["id"] for p in res.json()["data"]["posts"]]


def test_premium_topics(client, seeded, premium_user):
    res = client.get(f"{API}/posts/premium/topics", headers=premium_user.headers)
    assert res.status_code == 200
    topics = res.json()["data"]["topics"]
    assert len(topics) == 5
    assert all(t["recent_posts_count"] == 0 for t in topics)
