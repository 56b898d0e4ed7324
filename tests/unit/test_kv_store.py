"""Tests for the async key-value stores."""

import json

import pytest

from pagepolish.domains.shared.errors import StorageError
from pagepolish.storage import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore


class TestInMemoryKeyValueStore:
    @pytest.mark.asyncio
    async def test_get_set_remove(self):
        store = InMemoryKeyValueStore()
        assert await store.get("missing") is None
        await store.set("k", {"a": [1, 2]})
        assert await store.get("k") == {"a": [1, 2]}
        await store.remove("k")
        await store.remove("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_values_are_copied(self):
        store = InMemoryKeyValueStore()
        value = {"a": [1]}
        await store.set("k", value)
        value["a"].append(2)
        loaded = await store.get("k")
        loaded["a"].append(3)
        assert await store.get("k") == {"a": [1]}

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryKeyValueStore(), KeyValueStore)
        assert isinstance(JsonFileKeyValueStore(), KeyValueStore)


@pytest.mark.storage
class TestJsonFileKeyValueStore:
    @pytest.mark.asyncio
    async def test_round_trip_and_layout(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "store")
        key = "polish_site::https://example.com/shop"
        await store.set(key, {"baseline": None, "projects": []})

        files = list((tmp_path / "store").glob("*.json"))
        assert len(files) == 1
        assert files[0].name.startswith("polish_site_https_example.com_shop-")
        payload = json.loads(files[0].read_text(encoding="utf-8"))
        assert payload == {"_key": key, "value": {"baseline": None, "projects": []}}
        assert await store.get(key) == {"baseline": None, "projects": []}

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path)
        await store.set("a", 1)
        await store.set("a", 2)
        assert [p.suffix for p in tmp_path.iterdir()] == [".json"]
        assert await store.get("a") == 2

    @pytest.mark.asyncio
    async def test_distinct_keys_with_same_readable_name(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path)
        await store.set("a/b", 1)
        await store.set("a?b", 2)
        assert await store.get("a/b") == 1
        assert await store.get("a?b") == 2

    @pytest.mark.asyncio
    async def test_remove(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path)
        await store.set("k", "v")
        await store.remove("k")
        await store.remove("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_storage_error(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path)
        await store.set("k", "v")
        next(tmp_path.glob("*.json")).write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            await store.get("k")

    @pytest.mark.asyncio
    async def test_unserializable_value_raises_storage_error(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path)
        with pytest.raises(StorageError):
            await store.set("k", {"bad": object()})
