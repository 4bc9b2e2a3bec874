from unittest.mock import AsyncMock

import pytest

from statusbot import constants as texts
from statusbot.dispatcher import Dispatcher, parse_message
from statusbot.models import InboundMessage, Report, SessionStep, StatusCategory, StatusOutcome
from statusbot.reporting import compose_report
from statusbot.sessions import SessionStore

USER_ID = 101
REPORT_CHAT = "-100500"


class FakeConversation:
    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    async def reply(self, text: str) -> None:
        self.events.append(("reply", text))

    async def update(self, text: str) -> None:
        self.events.append(("update", text))

    @property
    def last_text(self) -> str:
        return self.events[-1][1]


class StubResolver:
    def __init__(self, category: StatusCategory = StatusCategory.LIVE) -> None:
        self.category = category
        self.calls: list[str] = []

    async def resolve(self, reference: str) -> StatusOutcome:
        self.calls.append(reference)
        return StatusOutcome(self.category, "stub", reference)


@pytest.fixture
def sessions():
    return SessionStore(ttl_seconds=900)


@pytest.fixture
def resolver():
    return StubResolver()


@pytest.fixture
def deliver():
    return AsyncMock()


@pytest.fixture
def dispatcher(sessions, resolver, deliver):
    return Dispatcher(sessions=sessions, resolver=resolver, deliver_report=deliver, report_chat_id=REPORT_CHAT)


async def send(dispatcher, text, sender_id=USER_ID, label="Alice", bot_username="StatusBot"):
    conversation = FakeConversation()
    message = InboundMessage(
        sender_id=sender_id, chat_id=sender_id, text=text, sender_label=label, bot_username=bot_username
    )
    await dispatcher.dispatch(message, conversation)
    return conversation


def test_parse_message_handles_bot_suffix_and_arguments():
    parsed = parse_message("/Check@StatusBot  https://t.me/foo ")

    assert parsed.command == "check"
    assert parsed.argument == "https://t.me/foo"
    assert parsed.addressee == "StatusBot"
    assert not parsed.addressed_to_other_bot("statusbot")
    assert parsed.addressed_to_other_bot("OtherBot")


def test_parse_message_malformed_command_is_still_a_command():
    assert parse_message("/report-now").command == ""


def test_parse_message_free_text():
    parsed = parse_message("  hello there ")

    assert parsed.command is None
    assert parsed.text == "hello there"


@pytest.mark.asyncio
async def test_start_replies_with_welcome(dispatcher):
    conversation = await send(dispatcher, "/start")
    assert conversation.last_text == texts.WELCOME_TEXT.format(name="Alice")


@pytest.mark.asyncio
async def test_check_replies_placeholder_then_updates_it(dispatcher, resolver):
    conversation = await send(dispatcher, "/check https://t.me/foo")

    assert resolver.calls == ["@foo"]
    assert conversation.events[0] == ("reply", texts.CHECK_PENDING.format(reference="@foo"))
    assert conversation.events[1][0] == "update"
    assert "@foo is live" in conversation.events[1][1]


@pytest.mark.asyncio
async def test_check_rejects_invalid_identifier(dispatcher, resolver):
    conversation = await send(dispatcher, "/check not a name")

    assert resolver.calls == []
    assert conversation.events == [("reply", texts.CHECK_USAGE)]


@pytest.mark.asyncio
async def test_check_without_argument_shows_usage(dispatcher, resolver):
    conversation = await send(dispatcher, "/check")

    assert resolver.calls == []
    assert conversation.last_text == texts.CHECK_USAGE


@pytest.mark.asyncio
async def test_guided_report_end_to_end(dispatcher, sessions, deliver):
    await send(dispatcher, "/report")
    assert sessions.get(USER_ID).step is SessionStep.AWAITING_LINK

    await send(dispatcher, "@foo")
    session = sessions.get(USER_ID)
    assert session.step is SessionStep.AWAITING_REASON
    assert session.target_link == "@foo"

    conversation = await send(dispatcher, "spam content", label="Bob")

    assert sessions.get(USER_ID) is None
    expected = compose_report(
        Report(target_chat=REPORT_CHAT, target_link="@foo", reason="spam content", reporter_label="Bob")
    )
    deliver.assert_awaited_once_with(REPORT_CHAT, expected)
    assert conversation.last_text == texts.REPORT_SENT.format(target="@foo")


@pytest.mark.asyncio
async def test_invalid_link_reprompts_without_state_change(dispatcher, sessions):
    await send(dispatcher, "/report")

    conversation = await send(dispatcher, "not a valid link!")

    assert conversation.last_text == texts.REPORT_INVALID_LINK
    session = sessions.get(USER_ID)
    assert session.step is SessionStep.AWAITING_LINK
    assert session.target_link is None


@pytest.mark.asyncio
async def test_blank_reason_reprompts(dispatcher, sessions, deliver):
    await send(dispatcher, "/report")
    await send(dispatcher, "foo")

    conversation = await send(dispatcher, "   ")

    assert conversation.last_text == texts.REPORT_EMPTY_REASON
    assert sessions.get(USER_ID).step is SessionStep.AWAITING_REASON
    deliver.assert_not_awaited()


@pytest.mark.asyncio
async def test_reason_step_never_regresses_to_link_step(dispatcher, sessions, deliver):
    await send(dispatcher, "/report")
    await send(dispatcher, "@foo")

    # A valid identifier is just reason text at this point.
    await send(dispatcher, "@bar")

    assert sessions.get(USER_ID) is None
    deliver.assert_awaited_once()
    assert "- Link: @foo" in deliver.await_args.args[1]
    assert "- Reason: @bar" in deliver.await_args.args[1]


@pytest.mark.asyncio
async def test_cancel_ends_session_and_next_text_is_fallback(dispatcher, sessions, deliver):
    await send(dispatcher, "/report")
    await send(dispatcher, "@foo")

    conversation = await send(dispatcher, "/cancel")
    assert conversation.last_text == texts.CANCELLED
    assert sessions.get(USER_ID) is None

    conversation = await send(dispatcher, "spam content")
    assert conversation.last_text == texts.FALLBACK_REPLY
    deliver.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_without_session(dispatcher):
    conversation = await send(dispatcher, "/cancel")
    assert conversation.last_text == texts.NOTHING_TO_CANCEL


@pytest.mark.asyncio
async def test_commands_take_precedence_over_session(dispatcher, sessions, resolver):
    await send(dispatcher, "/report")

    await send(dispatcher, "/check @bar")

    assert resolver.calls == ["@bar"]
    session = sessions.get(USER_ID)
    assert session.step is SessionStep.AWAITING_LINK
    assert session.target_link is None


@pytest.mark.asyncio
async def test_unknown_command_is_not_consumed_by_session(dispatcher, sessions):
    await send(dispatcher, "/report")
    await send(dispatcher, "@foo")

    conversation = await send(dispatcher, "/whatever")

    assert conversation.last_text == texts.UNKNOWN_COMMAND
    assert sessions.get(USER_ID).reason is None


@pytest.mark.asyncio
async def test_report_command_restarts_session(dispatcher, sessions):
    await send(dispatcher, "/report")
    await send(dispatcher, "@foo")

    await send(dispatcher, "/report")

    session = sessions.get(USER_ID)
    assert session.step is SessionStep.AWAITING_LINK
    assert session.target_link is None


@pytest.mark.asyncio
async def test_inline_report_bypasses_session(dispatcher, sessions, deliver):
    conversation = await send(dispatcher, "/report https://t.me/foo selling stolen accounts")

    assert sessions.get(USER_ID) is None
    expected = compose_report(
        Report(target_chat=REPORT_CHAT, target_link="@foo", reason="selling stolen accounts", reporter_label="Alice")
    )
    deliver.assert_awaited_once_with(REPORT_CHAT, expected)
    assert conversation.last_text == texts.REPORT_SENT.format(target="@foo")


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["/report @foo", "/report no-such-target! reason"])
async def test_inline_report_requires_target_and_reason(dispatcher, deliver, text):
    conversation = await send(dispatcher, text)

    assert conversation.last_text == texts.REPORT_USAGE
    deliver.assert_not_awaited()


@pytest.mark.asyncio
async def test_report_without_destination_chat_ends_session(sessions, resolver, deliver):
    dispatcher = Dispatcher(sessions=sessions, resolver=resolver, deliver_report=deliver, report_chat_id=None)
    await send(dispatcher, "/report")
    await send(dispatcher, "@foo")

    conversation = await send(dispatcher, "spam")

    assert conversation.last_text == texts.REPORT_NO_TARGET_CHAT
    assert sessions.get(USER_ID) is None
    deliver.assert_not_awaited()


@pytest.mark.asyncio
async def test_delivery_failure_is_reported_and_session_ended(dispatcher, sessions, deliver):
    deliver.side_effect = RuntimeError("Forbidden: bot is not a member of the channel chat")
    await send(dispatcher, "/report")
    await send(dispatcher, "@foo")

    conversation = await send(dispatcher, "spam")

    assert conversation.last_text == texts.REPORT_FAILED.format(target="@foo")
    assert sessions.get(USER_ID) is None


@pytest.mark.asyncio
async def test_sessions_are_per_sender(dispatcher, sessions):
    await send(dispatcher, "/report", sender_id=1)

    conversation = await send(dispatcher, "@foo", sender_id=2)

    assert conversation.last_text == texts.FALLBACK_REPLY
    assert sessions.get(1).target_link is None
    assert sessions.get(2) is None


@pytest.mark.asyncio
async def test_greeting_without_session(dispatcher):
    conversation = await send(dispatcher, "Hello", label="Carol")
    assert conversation.last_text == texts.GREETING_REPLY.format(name="Carol")


@pytest.mark.asyncio
async def test_expired_session_falls_back(resolver, deliver):
    now = [0.0]
    sessions = SessionStore(ttl_seconds=60, clock=lambda: now[0])
    dispatcher = Dispatcher(sessions=sessions, resolver=resolver, deliver_report=deliver, report_chat_id=REPORT_CHAT)

    await send(dispatcher, "/report")
    now[0] = 120.0
    conversation = await send(dispatcher, "@foo")

    assert conversation.last_text == texts.FALLBACK_REPLY
    assert len(sessions) == 0


@pytest.mark.asyncio
async def test_report_for_another_bot_starts_no_session(dispatcher, sessions):
    conversation = await send(dispatcher, "/report@SomeOtherBot")

    assert sessions.get(USER_ID) is None
    assert conversation.events == []


@pytest.mark.asyncio
async def test_commands_for_another_bot_do_not_touch_active_session(dispatcher, sessions, resolver):
    await send(dispatcher, "/report")
    await send(dispatcher, "@foo")

    for text in ("/check@SomeOtherBot @bar", "/cancel@SomeOtherBot", "/whatever@SomeOtherBot"):
        conversation = await send(dispatcher, text)
        assert conversation.events == []

    assert resolver.calls == []
    session = sessions.get(USER_ID)
    assert session.step is SessionStep.AWAITING_REASON
    assert session.target_link == "@foo"


@pytest.mark.asyncio
async def test_command_addressed_to_this_bot_is_handled(dispatcher, sessions):
    await send(dispatcher, "/report@statusbot")

    assert sessions.get(USER_ID).step is SessionStep.AWAITING_LINK


@pytest.mark.asyncio
async def test_completed_report_uses_stored_session_fields(dispatcher, sessions, deliver):
    await send(dispatcher, "/report", label="Alice")
    await send(dispatcher, "https://t.me/foo", label="Alice")

    await send(dispatcher, "  spam content  ", label="Bob")

    report_text = deliver.await_args.args[1]
    assert "- Link: @foo" in report_text
    assert "- Reason: spam content" in report_text
    assert "- Reported by: Bob" in report_text
    assert sessions.get(USER_ID) is None
