from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

from playwright.sync_api import Page
from playwright.sync_api import Error as PlaywrightError


TITLE_MARKERS = [
    r"one moment",
    r"just a moment",
    r"один момент",
    r"checking your browser",
    r"attention required",
]

BODY_MARKERS = [
    r"Just a moment\s*\.\.\.",
    r"Enable JavaScript and cookies to continue",
    r"__cf_chl_",  # Cloudflare challenge scripts
    r"cloudflare",
    r"captcha",
    r"checking your browser",
    r"один момент",
]

URL_MARKERS = ("/cdn-cgi/", "__cf_chl")

# Interstitials put their markers near the top; long pages may quote them legitimately
BODY_SCAN_CHARS = 4000


@dataclass(frozen=True)
class ChallengeDecision:
    blocked: bool
    reasons: List[str]


def detect_anti_bot(text: str | None) -> bool:
    if not text:
        return False
    head = text[:BODY_SCAN_CHARS]
    return any(re.search(pat, head, flags=re.IGNORECASE) for pat in BODY_MARKERS)


def decide_challenge(url: str, title: str | None, body_text: str | None) -> ChallengeDecision:
    reasons: List[str] = []
    low_url = (url or "").lower()
    for marker in URL_MARKERS:
        if marker in low_url:
            reasons.append(f"url:{marker}")
    for pat in TITLE_MARKERS:
        if title and re.search(pat, title, flags=re.IGNORECASE):
            reasons.append(f"title:{pat}")
    if detect_anti_bot(body_text):
        reasons.append("anti-bot markers detected")
    return ChallengeDecision(blocked=len(reasons) > 0, reasons=reasons)


def page_challenge(page: Page) -> ChallengeDecision:
    """Inspect the current page; a page that cannot be read is not treated as blocked."""
    try:
        url = page.url
        title = page.title()
        body = page.evaluate("() => ((document.body && document.body.innerText) || '').slice(0, 4000)")
    except PlaywrightError:
        return ChallengeDecision(blocked=False, reasons=[])
    return decide_challenge(url, title, body)
