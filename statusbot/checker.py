from __future__ import annotations

import logging

import httpx

from .constants import LIVE_MARKERS, RESTRICTED_MARKERS
from .identifiers import profile_url
from .models import StatusCategory, StatusOutcome

logger = logging.getLogger(__name__)

_GONE_STATUSES = {404, 410}
_PROFILE_HOSTS = {"t.me", "telegram.me"}

_USER_AGENT = "Mozilla/5.0 (compatible; statusbot/1.0)"


def _canonical_host(host: str) -> str:
    host = host.lower().removeprefix("www.")
    return "t.me" if host in _PROFILE_HOSTS else host


def is_same_profile(request_url: str, location: str) -> bool:
    """True when a redirect only canonicalizes the profile URL (scheme, www, slash, case)."""
    origin = httpx.URL(request_url)
    target = origin.join(location)
    return (
        _canonical_host(target.host) == _canonical_host(origin.host)
        and target.path.rstrip("/").lower() == origin.path.rstrip("/").lower()
    )


def classify_response(
    reference: str,
    status_code: int,
    body: str,
    request_url: str | None = None,
    location: str | None = None,
) -> StatusOutcome:
    """Map one probe response onto a StatusCategory.

    This is a heuristic over the public preview page; anything not matching a
    known signal is UNKNOWN.
    """
    if status_code in _GONE_STATUSES:
        return StatusOutcome(StatusCategory.NOT_FOUND, f"HTTP {status_code}", reference)

    if 300 <= status_code < 400:
        if not location:
            return StatusOutcome(StatusCategory.UNKNOWN, f"redirect without a target (HTTP {status_code})", reference)
        if request_url and is_same_profile(request_url, location):
            return StatusOutcome(
                StatusCategory.UNKNOWN,
                f"redirected to the same profile at {location} (HTTP {status_code}); check PROFILE_BASE_URL",
                reference,
            )
        return StatusOutcome(
            StatusCategory.RESTRICTED,
            f"redirected away from the profile page to {location} (HTTP {status_code})",
            reference,
        )

    if status_code == 200:
        page = body.lower()
        if any(marker in page for marker in LIVE_MARKERS):
            return StatusOutcome(StatusCategory.LIVE, "public page is reachable", reference)
        if any(marker in page for marker in RESTRICTED_MARKERS):
            return StatusOutcome(StatusCategory.RESTRICTED, "page can't be displayed", reference)
        return StatusOutcome(StatusCategory.UNKNOWN, "page has no recognizable status", reference)

    return StatusOutcome(StatusCategory.UNKNOWN, f"unexpected HTTP {status_code}", reference)


class StatusResolver:
    def __init__(
        self,
        base_url: str = "https://t.me",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=False,
            headers={"User-Agent": _USER_AGENT},
        )

    async def resolve(self, reference: str) -> StatusOutcome:
        url = profile_url(reference, self.base_url)
        try:
            response = await self.client.get(url)
            outcome = classify_response(
                reference,
                response.status_code,
                response.text,
                request_url=url,
                location=response.headers.get("location"),
            )
        except httpx.TimeoutException as exc:
            logger.warning("Probe of %s timed out: %s", url, exc)
            outcome = StatusOutcome(StatusCategory.TRANSIENT_ERROR, f"timed out ({exc.__class__.__name__})", reference)
        except Exception as exc:
            logger.warning("Probe of %s failed: %s", url, exc)
            outcome = StatusOutcome(StatusCategory.TRANSIENT_ERROR, str(exc) or exc.__class__.__name__, reference)

        logger.info("Status of %s: %s (%s)", reference, outcome.category.value, outcome.detail)
        return outcome

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


def render_outcome(outcome: StatusOutcome) -> str:
    subject = outcome.subject_identifier
    if outcome.category is StatusCategory.LIVE:
        return f"✅ {subject} is live and public."
    if outcome.category is StatusCategory.RESTRICTED:
        return f"⚠️ {subject} is banned, restricted or unavailable ({outcome.detail})."
    if outcome.category is StatusCategory.NOT_FOUND:
        return f"❌ {subject} does not exist."
    if outcome.category is StatusCategory.TRANSIENT_ERROR:
        return f"⏳ Could not check {subject} right now: {outcome.detail}. Please try again later."
    return f"❓ Unknown status for {subject} ({outcome.detail})."
