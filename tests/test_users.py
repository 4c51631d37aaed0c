"""
Tests for preferences, profiles and the follow graph.
"""
from conftest import publish, signed_in


class TestCategories:
    """Tests for PATCH /users/categories."""

    async def test_set_categories(self, client, outbox):
        await signed_in(client, outbox, "ana")
        res = await client.patch(
            "/users/categories",
            json={"categories": ["Music", "Gaming", "Travel", "Music"]},
        )
        assert res.status_code == 200
        body = res.json()
        assert body["categories"] == ["Music", "Gaming", "Travel"]
        assert body["hasNoCategories"] is False

    async def test_replaces_previous_choice(self, client, outbox):
        await signed_in(client, outbox, "ana", categories=["Music", "Gaming", "Travel"])
        res = await client.patch(
            "/users/categories",
            json={"categories": ["Science", "Sports", "Photography"]},
        )
        assert res.json()["categories"] == ["Science", "Sports", "Photography"]

    async def test_too_few(self, client, outbox):
        await signed_in(client, outbox, "ana")
        res = await client.patch("/users/categories", json={"categories": ["Music", "Music", "Gaming"]})
        assert res.status_code == 400
        assert res.json()["message"] == "Choose at least 3 categories!"

    async def test_unknown(self, client, outbox):
        await signed_in(client, outbox, "ana")
        res = await client.patch("/users/categories", json={"categories": ["Music", "Gaming", "Knitting"]})
        assert res.status_code == 400
        assert res.json()["message"] == "Unknown category: Knitting"

    async def test_requires_login(self, client):
        res = await client.patch("/users/categories", json={"categories": ["Music", "Gaming", "Travel"]})
        assert res.status_code == 401


class TestProfile:
    """Tests for GET /users/{username} and PATCH /users/edit/{id}."""

    async def test_profile_counts(self, client, make_client, outbox):
        ana = await signed_in(client, outbox, "ana")
        await publish(client, "One")
        await publish(client, "Two")

        bob = make_client()
        await signed_in(bob, outbox, "bob")
        await bob.post(f"/users/follow/{ana['id']}")

        body = (await bob.get("/users/ana")).json()
        assert body["username"] == "ana"
        assert body["blogsCount"] == 2
        assert body["followers"] == 1
        assert body["following"] == 0
        assert body["isFollowing"] is True
        assert body["isProfileOwner"] is False

        own = (await client.get("/users/ana")).json()
        assert own["isProfileOwner"] is True
        assert own["isFollowing"] is False

    async def test_profile_anonymous(self, client, make_client, outbox):
        await signed_in(client, outbox, "ana")
        anon = make_client()
        body = (await anon.get("/users/ana")).json()
        assert body["isProfileOwner"] is False
        assert body["isFollowing"] is False
        assert "email" not in body

    async def test_profile_not_found(self, client):
        res = await client.get("/users/nobody")
        assert res.status_code == 404
        assert res.json() == {"message": "User not found"}

    async def test_edit_own_profile(self, client, outbox):
        me = await signed_in(client, outbox, "ana")
        res = await client.patch(
            f"/users/edit/{me['id']}",
            json={"username": "ana_b", "biography": "Writes about code"},
        )
        assert res.status_code == 200
        body = res.json()
        assert body["username"] == "ana_b"
        assert body["biography"] == "Writes about code"

        assert (await client.get("/users/ana")).status_code == 404
        assert (await client.get("/users/ana_b")).status_code == 200

    async def test_edit_someone_else(self, client, make_client, outbox):
        ana = await signed_in(client, outbox, "ana")
        bob = make_client()
        await signed_in(bob, outbox, "bob")
        res = await bob.patch(f"/users/edit/{ana['id']}", json={"biography": "hacked"})
        assert res.status_code == 403

    async def test_edit_to_taken_username(self, client, make_client, outbox):
        me = await signed_in(client, outbox, "ana")
        other = make_client()
        await signed_in(other, outbox, "bob")
        res = await client.patch(f"/users/edit/{me['id']}", json={"username": "bob"})
        assert res.status_code == 400
        assert res.json()["message"] == "Username already exists."

    async def test_biography_too_long(self, client, outbox):
        me = await signed_in(client, outbox, "ana")
        res = await client.patch(f"/users/edit/{me['id']}", json={"biography": "x" * 501})
        assert res.status_code == 400


class TestFollow:
    """Tests for /users/follow and /users/unfollow."""

    async def test_follow_and_unfollow(self, client, make_client, outbox):
        await signed_in(client, outbox, "ana")
        bob = make_client()
        bob_me = await signed_in(bob, outbox, "bob")

        res = await client.post(f"/users/follow/{bob_me['id']}")
        assert res.status_code == 200

        res = await client.post(f"/users/follow/{bob_me['id']}")
        assert res.status_code == 400

        assert (await client.get("/users/bob")).json()["followers"] == 1

        res = await client.delete(f"/users/unfollow/{bob_me['id']}")
        assert res.status_code == 200
        assert (await client.get("/users/bob")).json()["followers"] == 0

        res = await client.delete(f"/users/unfollow/{bob_me['id']}")
        assert res.status_code == 400

    async def test_cannot_follow_self(self, client, outbox):
        me = await signed_in(client, outbox, "ana")
        res = await client.post(f"/users/follow/{me['id']}")
        assert res.status_code == 400

    async def test_follow_unknown_user(self, client, outbox):
        await signed_in(client, outbox, "ana")
        res = await client.post("/users/follow/4242")
        assert res.status_code == 404

    async def test_follow_requires_login(self, client):
        res = await client.post("/users/follow/1")
        assert res.status_code == 401


class TestUserBlogs:
    """Tests for GET /users/{id}/blogs."""

    async def test_lists_only_that_author(self, client, make_client, outbox):
        ana = await signed_in(client, outbox, "ana")
        await publish(client, "Ana one")
        await publish(client, "Ana two")

        bob = make_client()
        await signed_in(bob, outbox, "bob")
        await publish(bob, "Bob one")

        page = (await bob.get(f"/users/{ana['id']}/blogs?page=1")).json()
        assert [b["title"] for b in page["blogs"]] == ["Ana two", "Ana one"]
        assert page["hasMore"] is False

    async def test_unknown_author(self, client):
        res = await client.get("/users/999/blogs")
        assert res.status_code == 404
