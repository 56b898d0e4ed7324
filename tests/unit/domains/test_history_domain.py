"""Tests for the history bounded context (capped per-origin chat log)."""

import pytest

from pagepolish.domains.history import ChatRecord, ChatRole, HistoryLog
from pagepolish.domains.history.services import HISTORY_KEY, MAX_RECORDS
from pagepolish.domains.shared.errors import StorageError
from pagepolish.domains.shared.kernel import InteractionMode, OriginKey
from pagepolish.storage import InMemoryKeyValueStore
from tests.unit.helpers.fake_service import FailingStore

ORIGIN = OriginKey.from_url("https://shop.example.com/products")
OTHER = OriginKey.from_url("https://blog.example.com/")


def _record(text, role=ChatRole.OPERATOR, **kwargs):
    return ChatRecord(role=role, text=text, **kwargs)


class TestChatRecord:
    def test_id_and_timestamp_generated(self):
        record = _record("hello")
        assert record.id.startswith("msg_")
        assert record.timestamp > 0

    def test_round_trip(self):
        record = _record(
            "Made it red",
            role=ChatRole.SYSTEM,
            target_ref={"tagName": "button", "selector": "#buy"},
            patch={"styleChanges": "color: red", "contentChanges": "", "rationale": "Made it red"},
        )
        data = record.to_dict()
        assert data["targetRef"]["selector"] == "#buy"
        assert ChatRecord.from_dict(data) == record


class TestHistoryLog:
    @pytest.mark.asyncio
    async def test_append_and_load_in_order(self):
        log = HistoryLog(InMemoryKeyValueStore())
        await log.append(ORIGIN, _record("first"))
        count = await log.append(ORIGIN, _record("second", role=ChatRole.SYSTEM))
        assert count == 2
        records = await log.load(ORIGIN)
        assert [r.text for r in records] == ["first", "second"]
        assert records[1].role is ChatRole.SYSTEM

    @pytest.mark.asyncio
    async def test_cap_keeps_newest_hundred(self):
        log = HistoryLog(InMemoryKeyValueStore())
        for i in range(MAX_RECORDS + 5):
            await log.append(ORIGIN, _record(f"msg {i}"))
        records = await log.load(ORIGIN)
        assert len(records) == MAX_RECORDS
        assert records[0].text == "msg 5"
        assert records[-1].text == f"msg {MAX_RECORDS + 4}"

    @pytest.mark.asyncio
    async def test_custom_cap(self):
        log = HistoryLog(InMemoryKeyValueStore(), max_records=3)
        for i in range(5):
            await log.append(ORIGIN, _record(str(i)))
        assert [r.text for r in await log.load(ORIGIN)] == ["2", "3", "4"]

    def test_cap_must_be_positive(self):
        with pytest.raises(ValueError):
            HistoryLog(InMemoryKeyValueStore(), max_records=0)

    @pytest.mark.asyncio
    async def test_clear_is_per_origin(self):
        kv = InMemoryKeyValueStore()
        log = HistoryLog(kv)
        await log.append(ORIGIN, _record("a"))
        await log.append(OTHER, _record("b"))
        await log.clear(ORIGIN)
        assert await log.load(ORIGIN) == []
        assert [r.text for r in await log.load(OTHER)] == ["b"]
        assert list((await kv.get(HISTORY_KEY)).keys()) == [str(OTHER)]

    @pytest.mark.asyncio
    async def test_chat_mode_recorded(self):
        log = HistoryLog(InMemoryKeyValueStore())
        await log.append(ORIGIN, _record("what fonts?", mode=InteractionMode.CHAT))
        assert (await log.load(ORIGIN))[0].mode is InteractionMode.CHAT

    @pytest.mark.asyncio
    async def test_unreadable_store_degrades_to_empty(self):
        log = HistoryLog(FailingStore())
        assert await log.load(ORIGIN) == []

    @pytest.mark.asyncio
    async def test_append_failure_propagates(self):
        log = HistoryLog(FailingStore())
        with pytest.raises(StorageError):
            await log.append(ORIGIN, _record("x"))

    @pytest.mark.asyncio
    async def test_malformed_entries_dropped(self):
        kv = InMemoryKeyValueStore({HISTORY_KEY: {str(ORIGIN): [{"text": "no id"}, _record("ok").to_dict()]}})
        records = await HistoryLog(kv).load(ORIGIN)
        assert [r.text for r in records] == ["ok"]
