from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple

from selectolax.parser import HTMLParser

from ..lexicons import DEFAULT_LEXICON, Lexicon
from ..schemas import PageSignal


ANTI_BOT_MARKERS = [
    r"Just a moment\s*\.\.\.",
    r"Enable JavaScript and cookies to continue",
    r"__cf_chl_",  # Cloudflare challenge scripts
]

IFRAME_SRC_RE = re.compile(r"<iframe[^>]*\ssrc\s*=\s*[\"']([^\"']*)[\"']", re.IGNORECASE)


@dataclass(frozen=True)
class SignalDecision:
    signals: Tuple[PageSignal, ...]
    reasons: List[str]

    @property
    def flagged(self) -> bool:
        return len(self.signals) > 0


def detect_anti_bot(html: str | None) -> bool:
    if not html:
        return False
    for pat in ANTI_BOT_MARKERS:
        if re.search(pat, html, flags=re.IGNORECASE):
            return True
    return False


def body_markup(html: str | None) -> str:
    """Inner markup of <body>, or the whole document when there is none."""
    if not html:
        return ""
    body = HTMLParser(html).body
    return (body.html or "") if body is not None else html


def detect_challenge(text: str, html: str, lexicon: Lexicon = DEFAULT_LEXICON) -> list[str]:
    """Reasons the page looks like a CAPTCHA / human-verification step."""
    reasons: list[str] = []
    low_text = (text or "").lower()
    low_html = body_markup(html).lower()
    for marker in lexicon.challenge_text_markers:
        if marker in low_text:
            reasons.append(f"challenge:text:{marker}")
    for marker in lexicon.challenge_markup_markers:
        if marker in low_html:
            reasons.append(f"challenge:markup:{marker}")
    for src in IFRAME_SRC_RE.findall(html or ""):
        low_src = src.lower()
        if any(m in low_src for m in lexicon.challenge_iframe_markers):
            reasons.append(f"challenge:iframe:{src}")
            break
    if detect_anti_bot(html):
        reasons.append("challenge:anti-bot interstitial")
    return reasons


def detect_block(text: str, current_url: str, lexicon: Lexicon = DEFAULT_LEXICON) -> list[str]:
    """Reasons the page looks like an access-denied / rate-limit / error page."""
    reasons: list[str] = []
    low_text = (text or "").lower()
    low_url = (current_url or "").lower()
    for marker in lexicon.block_text_markers:
        if marker in low_text:
            reasons.append(f"block:text:{marker}")
    for marker in lexicon.block_url_markers:
        if marker in low_url:
            reasons.append(f"block:url:{marker}")
    return reasons


def decide_signals(text: str, html: str, current_url: str, lexicon: Lexicon = DEFAULT_LEXICON) -> SignalDecision:
    signals: list[PageSignal] = []
    reasons: list[str] = []
    challenge = detect_challenge(text, html, lexicon)
    if challenge:
        signals.append(PageSignal.CHALLENGE)
        reasons.extend(challenge)
    block = detect_block(text, current_url, lexicon)
    if block:
        signals.append(PageSignal.BLOCK)
        reasons.extend(block)
    return SignalDecision(signals=tuple(signals), reasons=reasons)
