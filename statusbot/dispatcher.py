from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol

from . import constants as texts
from .checker import StatusResolver, render_outcome
from .identifiers import normalize_identifier
from .models import InboundMessage, Report, Session, SessionStep
from .reporting import compose_report
from .sessions import SessionStore

logger = logging.getLogger(__name__)

_COMMAND_RE = re.compile(r"^/([A-Za-z0-9_]+)(?:@([A-Za-z0-9_]+))?(?:\s+(.*))?$", re.DOTALL)

DeliverReport = Callable[[str, str], Awaitable[None]]


class Conversation(Protocol):
    async def reply(self, text: str) -> None: ...

    async def update(self, text: str) -> None: ...


@dataclass(frozen=True, slots=True)
class ParsedMessage:
    command: str | None
    argument: str
    text: str
    addressee: str | None = None

    def addressed_to_other_bot(self, bot_username: str | None) -> bool:
        if self.addressee is None or not bot_username:
            return False
        return self.addressee.lower() != bot_username.lstrip("@").lower()


def parse_message(text: str) -> ParsedMessage:
    stripped = text.strip()
    match = _COMMAND_RE.match(stripped)
    if match is None:
        # Malformed commands still count as commands, never as session input.
        command = "" if stripped.startswith("/") else None
        return ParsedMessage(command=command, argument="", text=stripped)
    return ParsedMessage(
        command=match.group(1).lower(),
        argument=(match.group(3) or "").strip(),
        text=stripped,
        addressee=match.group(2),
    )


Handler = Callable[[InboundMessage, ParsedMessage, Optional[Session], Conversation], Awaitable[None]]
Predicate = Callable[[ParsedMessage, Optional[Session]], bool]


class Dispatcher:
    """Routes each inbound message to exactly one handler.

    Rules are evaluated in order and the first match wins, so a recognized
    command is never consumed as session input.
    """

    def __init__(
        self,
        sessions: SessionStore,
        resolver: StatusResolver,
        deliver_report: DeliverReport,
        report_chat_id: str | None = None,
    ) -> None:
        self.sessions = sessions
        self.resolver = resolver
        self.deliver_report = deliver_report
        self.report_chat_id = report_chat_id

        self._rules: list[tuple[str, Predicate, Handler]] = [
            ("start", lambda p, s: p.command in {"start", "help"}, self._handle_start),
            ("check", lambda p, s: p.command == "check", self._handle_check),
            ("report_guided", lambda p, s: p.command == "report" and not p.argument, self._handle_report_start),
            ("report_inline", lambda p, s: p.command == "report", self._handle_report_inline),
            ("cancel", lambda p, s: p.command == "cancel", self._handle_cancel),
            ("unknown_command", lambda p, s: p.command is not None, self._handle_unknown_command),
            ("continuation", lambda p, s: s is not None, self._handle_continuation),
            ("fallback", lambda p, s: True, self._handle_fallback),
        ]

    def match_rule(self, parsed: ParsedMessage, session: Session | None) -> tuple[str, Handler]:
        for name, predicate, handler in self._rules:
            if predicate(parsed, session):
                return name, handler
        raise LookupError("No dispatch rule matched")

    async def dispatch(self, message: InboundMessage, conversation: Conversation) -> None:
        self.sessions.purge_expired()

        parsed = parse_message(message.text)
        if parsed.addressed_to_other_bot(message.bot_username):
            logger.debug("Ignoring /%s addressed to @%s", parsed.command, parsed.addressee)
            return

        session = self.sessions.get(message.sender_id)
        rule, handler = self.match_rule(parsed, session)
        logger.debug("User %s message routed to %s", message.sender_id, rule)
        await handler(message, parsed, session, conversation)

    async def _handle_start(
        self,
        message: InboundMessage,
        parsed: ParsedMessage,
        session: Session | None,
        conversation: Conversation,
    ) -> None:
        await conversation.reply(texts.WELCOME_TEXT.format(name=message.sender_label))

    async def _handle_check(
        self,
        message: InboundMessage,
        parsed: ParsedMessage,
        session: Session | None,
        conversation: Conversation,
    ) -> None:
        reference = normalize_identifier(parsed.argument)
        if reference is None:
            await conversation.reply(texts.CHECK_USAGE)
            return

        await conversation.reply(texts.CHECK_PENDING.format(reference=reference))
        outcome = await self.resolver.resolve(reference)
        await conversation.update(render_outcome(outcome))

    async def _handle_report_start(
        self,
        message: InboundMessage,
        parsed: ParsedMessage,
        session: Session | None,
        conversation: Conversation,
    ) -> None:
        self.sessions.start(message.sender_id)
        logger.info("User %s started a guided report", message.sender_id)
        await conversation.reply(texts.REPORT_ASK_LINK)

    async def _handle_report_inline(
        self,
        message: InboundMessage,
        parsed: ParsedMessage,
        session: Session | None,
        conversation: Conversation,
    ) -> None:
        parts = parsed.argument.split(maxsplit=1)
        target_link = normalize_identifier(parts[0])
        reason = parts[1].strip() if len(parts) > 1 else ""

        if target_link is None or not reason:
            await conversation.reply(texts.REPORT_USAGE)
            return

        await self._send_report(target_link, reason, message.sender_label, conversation)

    async def _handle_cancel(
        self,
        message: InboundMessage,
        parsed: ParsedMessage,
        session: Session | None,
        conversation: Conversation,
    ) -> None:
        if self.sessions.end(message.sender_id):
            logger.info("User %s cancelled the report", message.sender_id)
            await conversation.reply(texts.CANCELLED)
        else:
            await conversation.reply(texts.NOTHING_TO_CANCEL)

    async def _handle_unknown_command(
        self,
        message: InboundMessage,
        parsed: ParsedMessage,
        session: Session | None,
        conversation: Conversation,
    ) -> None:
        await conversation.reply(texts.UNKNOWN_COMMAND)

    async def _handle_continuation(
        self,
        message: InboundMessage,
        parsed: ParsedMessage,
        session: Session | None,
        conversation: Conversation,
    ) -> None:
        if session is None:
            return
        owner_id = message.sender_id

        if session.step is SessionStep.AWAITING_LINK:
            target_link = normalize_identifier(parsed.text)
            if target_link is None:
                await conversation.reply(texts.REPORT_INVALID_LINK)
                return

            self.sessions.update(owner_id, target_link=target_link, step=SessionStep.AWAITING_REASON)
            await conversation.reply(texts.REPORT_ASK_REASON.format(target=target_link))
            return

        reason = parsed.text
        if not reason:
            await conversation.reply(texts.REPORT_EMPTY_REASON)
            return

        completed = self.sessions.update(owner_id, reason=reason, reporter_label=message.sender_label)
        self.sessions.end(owner_id)
        if completed is None or completed.target_link is None:
            return

        await self._send_report(
            completed.target_link,
            completed.reason or reason,
            completed.reporter_label or message.sender_label,
            conversation,
        )

    async def _handle_fallback(
        self,
        message: InboundMessage,
        parsed: ParsedMessage,
        session: Session | None,
        conversation: Conversation,
    ) -> None:
        if parsed.text.lower() in texts.GREETINGS:
            await conversation.reply(texts.GREETING_REPLY.format(name=message.sender_label))
            return
        await conversation.reply(texts.FALLBACK_REPLY)

    async def _send_report(
        self,
        target_link: str,
        reason: str,
        reporter_label: str,
        conversation: Conversation,
    ) -> None:
        if not self.report_chat_id:
            logger.warning("Report about %s dropped: no report chat configured", target_link)
            await conversation.reply(texts.REPORT_NO_TARGET_CHAT)
            return

        report = Report(
            target_chat=self.report_chat_id,
            target_link=target_link,
            reason=reason,
            reporter_label=reporter_label,
        )
        try:
            await self.deliver_report(report.target_chat, compose_report(report))
        except Exception as exc:
            logger.exception("Failed to deliver report about %s to %s: %s", target_link, report.target_chat, exc)
            await conversation.reply(texts.REPORT_FAILED.format(target=target_link))
            return

        logger.info("Report about %s sent to %s by %s", target_link, report.target_chat, reporter_label)
        await conversation.reply(texts.REPORT_SENT.format(target=target_link))
