from __future__ import annotations

COMMAND_DESCRIPTIONS = [
    ("start", "Show the welcome message"),
    ("help", "List available commands"),
    ("check", "Check the status of a channel, bot or username"),
    ("report", "Start a guided report, or /report <target> <reason>"),
    ("cancel", "Cancel the ongoing report"),
]

GREETINGS = frozenset({"hi", "hello", "hey", "hii", "helo", "hola"})

# Fragments of the public t.me preview page.
LIVE_MARKERS = (
    "if you have <strong>telegram</strong>, you can contact",
    "if you have <strong>telegram</strong>, you can view and join",
)
RESTRICTED_MARKERS = (
    "can't be displayed",
    "can’t be displayed",
)

WELCOME_TEXT = (
    "👋 Welcome {name}! I'm your assistant bot.\n"
    "\n"
    "Here are my commands:\n"
    "/start - Show this welcome message\n"
    "/check <link_or_username> - Check the status of a Telegram channel or bot\n"
    "/report - Start a guided process to send a report\n"
    "/report <link_or_username> <reason> - Send a quick report\n"
    "/cancel - Cancel any ongoing operation"
)

IDENTIFIER_HINT = (
    "a Telegram link (e.g. https://t.me/channel_name) "
    "or a username (e.g. @channel_name or channel_name)"
)

CHECK_USAGE = f"Please provide {IDENTIFIER_HINT}.\nUsage: /check <link_or_username>"
CHECK_PENDING = "🔎 Checking {reference}..."

REPORT_USAGE = (
    "Please provide a target and a reason.\n"
    "Usage: /report @channel_name Your reason\n"
    "Or send /report alone for a guided report."
)
REPORT_ASK_LINK = f"Okay, let's start a new report. What should be reported? Send {IDENTIFIER_HINT}."
REPORT_INVALID_LINK = f"Invalid link or username format. Please send {IDENTIFIER_HINT}, or /cancel."
REPORT_ASK_REASON = "Got it. The report will be about: {target}. Now, please describe the reason for your report."
REPORT_EMPTY_REASON = "Please provide a reason for the report, or /cancel."
REPORT_SENT = "Report about {target} sent successfully!"
REPORT_FAILED = "Failed to send the report about {target}. Please try again later."
REPORT_NO_TARGET_CHAT = "Reports are not configured on this bot: no destination chat is set. Nothing was sent."

CANCELLED = "Report creation cancelled."
NOTHING_TO_CANCEL = "No active report session to cancel."
UNKNOWN_COMMAND = "Unknown command. Try /start to see what I can do."
FALLBACK_REPLY = "I received your message! Try using one of my commands like /start or /check."
GREETING_REPLY = "👋 Hello {name}!"
GENERIC_ERROR = "Something went wrong while handling your message. Please try again."
