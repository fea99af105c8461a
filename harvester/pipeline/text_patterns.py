"""
Text-pattern email extraction.

Scans rendered body text for email-shaped substrings and applies the
placeholder deny-list and priority rules (business domain first, then role
accounts in priority order, else first survivor in document order). Every
stage that accepts an email goes through `is_acceptable_email()`.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple

from selectolax.parser import HTMLParser

from ..lexicons import DEFAULT_LEXICON, Lexicon
from ..schemas import ContactRecord, PageState


EMAIL_PATTERN = re.compile(r"\b([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})\b")
EMAIL_FULL_RE = re.compile(r"^[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}$")

# Block-level tags get a leading space so their text never fuses with a neighbour
BLOCK_TAG_RE = re.compile(
    r"</?(?:p|div|li|ul|ol|br|hr|tr|td|th|table|h[1-6]|section|article|header|footer|nav|main|aside|address|blockquote|dd|dt|dl|form|pre)\b",
    re.IGNORECASE,
)


def _domain_matches(domain: str, listed: Iterable[str]) -> bool:
    return any(domain == d or domain.endswith("." + d) for d in listed)


def is_acceptable_email(email: str, lexicon: Lexicon = DEFAULT_LEXICON) -> bool:
    """False for malformed addresses, placeholders and asset file names (logo@2x.png)."""
    if not email:
        return False
    low = email.strip().lower()
    if not EMAIL_FULL_RE.match(low):
        return False
    local, _, domain = low.partition("@")
    if _domain_matches(domain, lexicon.placeholder_domains):
        return False
    if local in lexicon.placeholder_local_parts:
        return False
    if any(low.endswith(suffix) for suffix in lexicon.asset_suffixes):
        return False
    return True


def sanitize_mailto(href: str) -> Optional[str]:
    """Strip the mailto: scheme and any ?query/#fragment; lowercase."""
    if not href:
        return None
    s = href.strip()
    raw = s[7:] if s.lower().startswith("mailto:") else s
    email = raw.split("?", 1)[0].split("#", 1)[0].strip().lower()
    return email or None


class TextPatternExtractor:
    """Email extraction from visible text for pages whose links gave no email."""

    def __init__(self, lexicon: Lexicon = DEFAULT_LEXICON) -> None:
        self.lexicon = lexicon

    def candidate_emails(self, text: str) -> Tuple[str, ...]:
        seen: dict[str, None] = {}
        for m in EMAIL_PATTERN.finditer(text or ""):
            seen.setdefault(m.group(1).lower(), None)
        return tuple(seen)

    def filter_placeholders(self, candidates: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(e for e in candidates if is_acceptable_email(e, self.lexicon))

    def business_only(self, candidates: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(
            e for e in candidates
            if not _domain_matches(e.rpartition("@")[2], self.lexicon.free_mail_domains)
        )

    def pick_email(self, candidates: Tuple[str, ...]) -> str:
        survivors = self.filter_placeholders(candidates)
        if not survivors:
            return ""
        business = self.business_only(survivors)
        if not business:
            return survivors[0]
        for role in self.lexicon.role_priority:
            for e in business:
                if e.partition("@")[0] == role:
                    return e
        return business[0]

    def visible_text(self, parser: HTMLParser) -> str:
        """Body text with inline nodes joined as rendered (`info<span>@</span>acme.io`)."""
        for node in parser.css("script, style, noscript, template"):
            node.decompose()
        root = parser.body or parser.root
        if root is None:
            return ""
        return root.text(separator="")

    def scan_contact_elements(self, parser: HTMLParser) -> str:
        """Secondary probe: first acceptable email inside contact/email-labelled elements."""
        try:
            nodes = parser.css(self.lexicon.contact_element_selector)
        except Exception:
            return ""
        for node in nodes:
            for attr in ("data-email", "data-contact"):
                val = (node.attrs.get(attr) or "") if node.attrs else ""
                m = EMAIL_PATTERN.search(val)
                if m and is_acceptable_email(m.group(1), self.lexicon):
                    return m.group(1).lower()
            for cand in self.candidate_emails(node.text(separator=" ")):
                if is_acceptable_email(cand, self.lexicon):
                    return cand
        return ""

    def extract(self, state: PageState, current: ContactRecord | None = None) -> ContactRecord:
        parser = HTMLParser(BLOCK_TAG_RE.sub(lambda m: " " + m.group(0), state.html or ""))
        email = self.pick_email(self.candidate_emails(self.visible_text(parser)))
        if email:
            print(f"Found email in text: {email}")
            return ContactRecord(email=email)
        email = self.scan_contact_elements(HTMLParser(state.html or ""))
        if email:
            print(f"Found email in contact element: {email}")
        return ContactRecord(email=email)
