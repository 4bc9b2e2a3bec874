from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionStep(str, Enum):
    AWAITING_LINK = "awaiting_link"
    AWAITING_REASON = "awaiting_reason"


class StatusCategory(str, Enum):
    LIVE = "live"
    RESTRICTED = "restricted"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"
    TRANSIENT_ERROR = "transient_error"


@dataclass(slots=True)
class Session:
    owner_id: int
    step: SessionStep
    started_at: float
    last_activity: float
    target_link: str | None = None
    reason: str | None = None
    reporter_label: str | None = None


@dataclass(frozen=True, slots=True)
class StatusOutcome:
    category: StatusCategory
    detail: str
    subject_identifier: str


@dataclass(frozen=True, slots=True)
class Report:
    target_chat: str
    target_link: str
    reason: str
    reporter_label: str


@dataclass(frozen=True, slots=True)
class InboundMessage:
    sender_id: int
    chat_id: int
    text: str
    sender_label: str = "Someone"
    bot_username: str | None = None
