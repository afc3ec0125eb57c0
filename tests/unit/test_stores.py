"""Tests for the keyed stores."""
from app.services.stores import InMemoryKeyValueStore, fnmatch_escape


class TestInMemoryKeyValueStore:

    async def test_put_get_delete(self, store):
        await store.put("drafts:u1:a", "one")
        assert await store.get("drafts:u1:a") == "one"
        assert await store.delete("drafts:u1:a", "drafts:u1:missing") == 1
        assert await store.get("drafts:u1:a") is None

    async def test_keys_by_prefix(self, store):
        for key in ("drafts:u1:a", "drafts:u1:b", "drafts:u2:a", "draft_blobs:a:0"):
            await store.put(key, "{}")
        assert await store.keys("drafts:u1:") == ["drafts:u1:a", "drafts:u1:b"]

    async def test_json_helpers(self, store):
        await store.put_json("k", {"a": [1, 2]})
        assert await store.get_json("k") == {"a": [1, 2]}
        assert await store.get_json("missing") is None

    async def test_undecodable_json(self):
        store = InMemoryKeyValueStore()
        await store.put("k", "{not json")
        assert await store.get_json("k") is None


def test_fnmatch_escape():
    assert fnmatch_escape("drafts:u[1]*?:") == "drafts:u\\[1\\]\\*\\?:"
