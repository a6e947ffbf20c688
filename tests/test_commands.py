import time
from http import HTTPStatus

import pytest

from knowledge_bot.bot.commands import INVALID_TOKEN_MESSAGE, RotationDispatcher, parse_date_ms
from knowledge_bot.bot.secrets import SlackTokenProvider
from knowledge_bot.errors import StoreError
from knowledge_bot.models.rotation import RotationEntry
from knowledge_bot.storage.rotation_store import MemoryRotationStore

from conftest import RecordingTrigger

USAGE = (
    "Usage:\n"
    "  /knowledgesharing next\n"
    "  /knowledgesharing log [@user [yyyy-mm-dd]]\n"
    "  /knowledgesharing remove @user"
)


class FailingStore(MemoryRotationStore):
    async def put_entry(self, entry) -> None:
        raise StoreError("down", details={"code": "ResourceNotFoundException", "message": "no table"})

    async def delete_entry(self, user) -> None:
        raise StoreError("down", details={"code": "ResourceNotFoundException", "message": "no table"})


class TestParseDate:

    def test_calendar_date_is_utc_midnight(self) -> None:
        assert parse_date_ms("2024-01-01") == 1704067200000

    def test_iso_datetime_with_zone(self) -> None:
        assert parse_date_ms("2024-01-01T01:00:00+01:00") == 1704067200000

    @pytest.mark.parametrize("value", ["yesterday", "2024-13-01", "01/02/2024"])
    def test_unparseable(self, value) -> None:
        assert parse_date_ms(value) is None


class TestLog:

    @pytest.mark.asyncio
    async def test_log_explicit_user_defaults_to_now(self, token_provider, make_request) -> None:
        store = MemoryRotationStore()
        dispatcher = RotationDispatcher(store, RecordingTrigger(), token_provider)

        before = int(time.time() * 1000)
        reply = await dispatcher.dispatch(make_request("log @bob"))
        after = int(time.time() * 1000)

        assert reply.status == HTTPStatus.OK
        assert reply.payload == {
            "response_type": "in_channel",
            "text": "Thanks for sharing your knowledge, <@bob>!",
        }
        entry = store.get_entry("@bob")
        assert before <= entry.last_delivered <= after

    @pytest.mark.asyncio
    async def test_log_defaults_to_requester(self, dispatcher, memory_store, make_request) -> None:
        reply = await dispatcher.dispatch(make_request("log", user_name="carol"))

        assert reply.status == HTTPStatus.OK
        assert memory_store.get_entry("@carol").last_delivered == 1_700_000_000_000

    @pytest.mark.asyncio
    async def test_log_overwrites_previous_record(self, dispatcher, memory_store, make_request) -> None:
        await dispatcher.dispatch(make_request("log @alice 2024-01-01"))
        await dispatcher.dispatch(make_request("log @alice 2024-02-01"))

        entries = memory_store.list_entries()
        assert len(entries) == 1
        assert entries[0].user == "@alice"
        assert entries[0].last_delivered == parse_date_ms("2024-02-01")

    @pytest.mark.asyncio
    async def test_too_many_args_is_usage(self, dispatcher, memory_store, make_request) -> None:
        reply = await dispatcher.dispatch(make_request("log @a @b @c"))

        assert reply.status == HTTPStatus.BAD_REQUEST
        assert reply.message == USAGE
        assert memory_store.list_entries() == []

    @pytest.mark.asyncio
    async def test_unparseable_date_is_usage(self, dispatcher, memory_store, make_request) -> None:
        reply = await dispatcher.dispatch(make_request("log @a someday"))

        assert reply.message == USAGE
        assert memory_store.list_entries() == []

    @pytest.mark.asyncio
    async def test_store_failure_is_reported(self, token_provider, make_request) -> None:
        dispatcher = RotationDispatcher(FailingStore(), RecordingTrigger(), token_provider)

        reply = await dispatcher.dispatch(make_request("log @a"))

        assert reply.status == HTTPStatus.BAD_REQUEST
        assert reply.message.startswith("Unable to record knowledge sharing. Error JSON:\n")
        assert "ResourceNotFoundException" in reply.message


class TestRemove:

    @pytest.mark.asyncio
    async def test_remove_without_record_succeeds(self, dispatcher, make_request) -> None:
        reply = await dispatcher.dispatch(make_request("remove @alice"))

        assert reply.status == HTTPStatus.OK
        assert reply.payload == {
            "response_type": "in_channel",
            "text": "Cleared knowledge sharing records for user: @alice",
        }

    @pytest.mark.asyncio
    async def test_remove_after_log(self, dispatcher, memory_store, make_request) -> None:
        await dispatcher.dispatch(make_request("log @alice"))
        await dispatcher.dispatch(make_request("remove @alice"))

        assert memory_store.get_entry("@alice") is None

    @pytest.mark.parametrize("text", ["remove", "remove @a @b"])
    @pytest.mark.asyncio
    async def test_wrong_arity_is_usage(self, dispatcher, memory_store, make_request, text) -> None:
        await memory_store.put_entry(RotationEntry(user="@a", last_delivered=1))

        reply = await dispatcher.dispatch(make_request(text))

        assert reply.message == USAGE
        assert memory_store.get_entry("@a") is not None

    @pytest.mark.asyncio
    async def test_store_failure_is_reported(self, token_provider, make_request) -> None:
        dispatcher = RotationDispatcher(FailingStore(), RecordingTrigger(), token_provider)

        reply = await dispatcher.dispatch(make_request("remove @a"))

        assert reply.status == HTTPStatus.BAD_REQUEST
        assert reply.message.startswith("Unable to delete item. Error JSON:\n")


class TestNext:

    @pytest.mark.asyncio
    async def test_next_triggers_once(self, dispatcher, trigger, make_request) -> None:
        reply = await dispatcher.dispatch(make_request("next"))

        assert reply.status == HTTPStatus.OK
        assert reply.payload is None
        assert reply.message is None
        assert len(trigger.calls) == 1

    @pytest.mark.asyncio
    async def test_next_with_args_is_usage(self, dispatcher, trigger, make_request) -> None:
        reply = await dispatcher.dispatch(make_request("next foo"))

        assert reply.message == USAGE
        assert trigger.calls == []

    @pytest.mark.asyncio
    async def test_rejected_trigger_is_reported(self, memory_store, token_provider, make_request) -> None:
        trigger = RecordingTrigger(fail=True)
        dispatcher = RotationDispatcher(memory_store, trigger, token_provider)

        reply = await dispatcher.dispatch(make_request("next"))

        assert reply.status == HTTPStatus.BAD_REQUEST
        assert reply.message.startswith("Unable to call KnowledgeSharingNextUp function; Error JSON:\n")
        assert "Rate exceeded" in reply.message


class TestFallbackAndAuth:

    @pytest.mark.parametrize("text", ["", "   ", "dance", "LOG @a"])
    @pytest.mark.asyncio
    async def test_usage_text(self, dispatcher, make_request, text) -> None:
        reply = await dispatcher.dispatch(make_request(text))

        assert reply.status == HTTPStatus.BAD_REQUEST
        assert reply.message == USAGE

    @pytest.mark.asyncio
    async def test_usage_uses_configured_command_name(self, memory_store, trigger, token_provider, make_request) -> None:
        dispatcher = RotationDispatcher(memory_store, trigger, token_provider, command_name="/ks")

        reply = await dispatcher.dispatch(make_request(""))

        assert "/ks log [@user [yyyy-mm-dd]]" in reply.message

    @pytest.mark.parametrize("text", ["log @a", "remove @a", "next", ""])
    @pytest.mark.asyncio
    async def test_invalid_token_has_no_side_effects(self, dispatcher, memory_store, trigger, make_request, text) -> None:
        reply = await dispatcher.dispatch(make_request(text, token="wrong"))

        assert reply.status == HTTPStatus.BAD_REQUEST
        assert reply.message == INVALID_TOKEN_MESSAGE
        assert memory_store.list_entries() == []
        assert trigger.calls == []

    @pytest.mark.asyncio
    async def test_unset_token_rejects(self, memory_store, trigger, make_request) -> None:
        dispatcher = RotationDispatcher(memory_store, trigger, SlackTokenProvider(None))

        reply = await dispatcher.dispatch(make_request("next"))

        assert reply.status == HTTPStatus.BAD_REQUEST
        assert reply.message == "Token has not been set."
        assert trigger.calls == []
