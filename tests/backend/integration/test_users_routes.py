import pytest
from tortoise.exceptions import IntegrityError

from app.models.chirp import Chirp
from app.models.comment import Comment
from app.models.follow import Follow
from app.models.like import Like
from app.models.user import User


pytestmark = pytest.mark.asyncio

PNG = b"\x89PNG\r\n\x1a\n" + b"\x01" * 16


async def test_me_and_public_profile(client, make_user, post_chirp):
    alice, alice_h = await make_user("alice")
    bob, bob_h = await make_user("bob")
    await post_chirp(bob_h, "bob speaks")
    await client.patch(f"/api/v1/users/{bob}/follow", headers=alice_h)

    me = await client.get("/api/v1/users/me", headers=alice_h)
    data = me.json()["data"]
    assert me.status_code == 200
    assert data["username"] == "alice"
    assert data["followingCount"] == 1
    assert data["followersCount"] == 0
    assert "passwordHash" not in data and "password_hash" not in data

    profile = await client.get(f"/api/v1/users/{bob}", headers=alice_h)
    p = profile.json()["data"]
    assert profile.status_code == 200
    assert p["username"] == "bob"
    assert p["followersCount"] == 1
    assert p["followingCount"] == 0
    assert p["chirpsCount"] == 1
    assert p["isFollowing"] is True
    assert p["avatar"]["avatarUrl"]

    missing = await client.get("/api/v1/users/ghost", headers=alice_h)
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "message": "User not found"}


async def test_follow_toggle_round_trip(client, make_user):
    _, alice_h = await make_user("alice")
    await make_user("bob")

    first = await client.patch("/api/v1/users/bob/follow", headers=alice_h)
    assert first.status_code == 200
    assert first.json()["data"]["isFollowing"] is True
    assert await Follow.all().count() == 1

    second = await client.patch("/api/v1/users/bob/follow", headers=alice_h)
    assert second.json()["data"]["isFollowing"] is False
    assert await Follow.all().count() == 0


async def test_cannot_follow_self_or_unknown(client, make_user):
    _, alice_h = await make_user("alice")

    self_follow = await client.patch("/api/v1/users/alice/follow", headers=alice_h)
    assert self_follow.status_code == 400
    assert self_follow.json()["message"] == "You cannot follow yourself."

    # Lookup is case-insensitive, so this is still a self-follow
    self_upper = await client.patch("/api/v1/users/ALICE/follow", headers=alice_h)
    assert self_upper.status_code == 400

    unknown = await client.patch("/api/v1/users/ghost/follow", headers=alice_h)
    assert unknown.status_code == 404
    assert await Follow.all().count() == 0


async def test_mutual_follow_reports_viewer_state(client, make_user):
    _, a_h = await make_user("anna")
    _, b_h = await make_user("bert")
    await client.patch("/api/v1/users/bert/follow", headers=a_h)
    await client.patch("/api/v1/users/anna/follow", headers=b_h)

    resp = await client.get("/api/v1/users/bert/followers", headers=a_h)
    data = resp.json()["data"]
    assert resp.status_code == 200
    assert data["isFollowingUser"] is True
    assert data["isFollowedByUser"] is True
    assert data["total"] == 1
    assert [i["username"] for i in data["items"]] == ["anna"]

    following = await client.get("/api/v1/users/anna/following", headers=b_h)
    fdata = following.json()["data"]
    assert fdata["total"] == 1
    assert fdata["items"][0]["username"] == "bert"


async def test_followers_pagination(client, make_user):
    _, target_h = await make_user("target")
    for i in range(5):
        _, h = await make_user(f"fan{i}")
        await client.patch("/api/v1/users/target/follow", headers=h)

    page1 = await client.get("/api/v1/users/target/followers?page=1&limit=2", headers=target_h)
    page3 = await client.get("/api/v1/users/target/followers?page=3&limit=2", headers=target_h)
    d1, d3 = page1.json()["data"], page3.json()["data"]

    assert d1["total"] == 5
    assert d1["totalPages"] == 3
    assert [i["username"] for i in d1["items"]] == ["fan4", "fan3"]
    assert [i["username"] for i in d3["items"]] == ["fan0"]
    # target follows nobody back yet
    assert all(i["isFollowing"] is False for i in d1["items"])

    await client.patch("/api/v1/users/fan4/follow", headers=target_h)
    again = await client.get("/api/v1/users/target/followers?page=1&limit=2", headers=target_h)
    flags = {i["username"]: i["isFollowing"] for i in again.json()["data"]["items"]}
    assert flags == {"fan4": True, "fan3": False}


async def test_pagination_params_validated(client, make_user):
    _, h = await make_user("alice")
    bad = await client.get("/api/v1/users/alice/followers?page=0", headers=h)
    assert bad.status_code == 400
    assert bad.json()["success"] is False


async def test_update_profile_replaces_avatar(client, make_user, storage):
    _, h = await make_user("alice")
    me = (await client.get("/api/v1/users/me", headers=h)).json()["data"]
    old_storage_id = me["avatar"]["storageId"]

    resp = await client.patch(
        "/api/v1/users/me",
        data={"fullName": "Alice Liddell", "bio": "down the rabbit hole"},
        files={"avatar": ("new.png", PNG, "image/png")},
        headers=h,
    )
    data = resp.json()["data"]
    assert resp.status_code == 200
    assert data["fullName"] == "Alice Liddell"
    assert data["bio"] == "down the rabbit hole"
    assert data["avatar"]["storageId"] != old_storage_id
    assert old_storage_id not in storage.objects
    assert data["avatar"]["storageId"] in storage.objects


async def test_update_profile_partial_and_validation(client, make_user):
    _, h = await make_user("alice")
    resp = await client.patch("/api/v1/users/me", data={"bio": "just bio"}, headers=h)
    assert resp.status_code == 200
    assert resp.json()["data"]["fullName"] == "Alice"
    assert resp.json()["data"]["bio"] == "just bio"

    too_long = await client.patch("/api/v1/users/me", data={"bio": "x" * 161}, headers=h)
    assert too_long.status_code == 400


async def test_change_password(client, make_user):
    _, h = await make_user("alice")

    wrong = await client.put(
        "/api/v1/users/me/change-password",
        json={"oldPassword": "nope", "newPassword": "NewPass#456"},
        headers=h,
    )
    assert wrong.status_code == 400

    ok = await client.put(
        "/api/v1/users/me/change-password",
        json={"oldPassword": "UserPass!23", "newPassword": "NewPass#456"},
        headers=h,
    )
    assert ok.status_code == 200

    old_login = await client.post("/api/v1/auth/login", json={"username": "alice", "password": "UserPass!23"})
    assert old_login.status_code == 401
    new_login = await client.post("/api/v1/auth/login", json={"username": "alice", "password": "NewPass#456"})
    assert new_login.status_code == 200


async def test_delete_account_cascades(client, make_user, post_chirp, storage):
    _, alice_h = await make_user("alice")
    _, bob_h = await make_user("bob")

    alice_chirp = await post_chirp(
        alice_h, "with media", files=[("media", ("pic.png", PNG, "image/png"))]
    )
    bob_chirp = await post_chirp(bob_h, "bob's chirp")
    await client.post(f"/api/v1/chirps/{bob_chirp}/comments", json={"content": "hi bob"}, headers=alice_h)
    await client.post(f"/api/v1/chirps/{alice_chirp}/comments", json={"content": "hi alice"}, headers=bob_h)
    await client.patch(f"/api/v1/chirps/{bob_chirp}/like", headers=alice_h)
    await client.patch(f"/api/v1/chirps/{alice_chirp}/like", headers=bob_h)
    await client.patch("/api/v1/users/bob/follow", headers=alice_h)
    await client.patch("/api/v1/users/alice/follow", headers=bob_h)
    # bob rechirps alice: the rechirp survives but loses its original
    await client.post(f"/api/v1/chirps/{alice_chirp}/rechirp", headers=bob_h)

    resp = await client.delete("/api/v1/users/me", headers=alice_h)
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    assert await User.filter(username="alice").count() == 0
    assert await Chirp.filter(id=alice_chirp).count() == 0
    assert await Comment.all().count() == 0
    assert await Like.all().count() == 0
    assert await Follow.all().count() == 0
    # only bob's avatar is left in storage
    assert len(storage.objects) == 1

    feed = await client.get("/api/v1/chirps", headers=bob_h)
    items = feed.json()["data"]["items"]
    assert len(items) == 2
    rechirp = next(i for i in items if i["isRechirp"])
    assert rechirp["rechirp"] is None

    gone = await client.get("/api/v1/users/me", headers=alice_h)
    assert gone.status_code == 404


async def test_delete_account_survives_storage_failure(client, make_user, storage):
    _, h = await make_user("alice")
    storage.fail_deletes = True

    resp = await client.delete("/api/v1/users/me", headers=h)
    assert resp.status_code == 200
    assert await User.filter(username="alice").count() == 0


async def test_follow_conflict_reports_following(client, make_user, monkeypatch):
    _, alice_h = await make_user("alice")
    await make_user("bob")
    real_create = Follow.create

    # A concurrent request inserts the same edge between our delete and create
    async def create(**kwargs):
        await real_create(**kwargs)
        raise IntegrityError("UNIQUE constraint failed")

    monkeypatch.setattr(Follow, "create", create)

    resp = await client.patch("/api/v1/users/bob/follow", headers=alice_h)
    assert resp.status_code == 200
    assert resp.json()["data"]["isFollowing"] is True
    assert await Follow.all().count() == 1
