"""
Link classification for rendered documents.

Narrows the document to likely contact regions (footer, social, legal and
contact containers), enumerates their anchors in document order and claims
at most one value per field: email (mailto), Twitter/X handle, LinkedIn URL
and contact-page URL. Pure given the document and its URL.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urldefrag, urljoin, urlparse

from selectolax.parser import HTMLParser, Node

from ..lexicons import DEFAULT_LEXICON, Lexicon, Platform
from ..schemas import CandidateLink, ContactRecord, PageState
from .text_patterns import is_acceptable_email, sanitize_mailto


NON_WEB_SCHEMES = ("mailto:", "tel:", "javascript:", "sms:", "data:")


def extract_social_handle(url: str, domains: Sequence[str]) -> str:
    """Reduce a social profile URL to its handle.

    Returns the last path segment when it looks like a handle (no dot, not a
    bare platform domain); otherwise the URL is returned unmodified.
    """
    if not url:
        return ""
    if not host_matches(url, domains):
        return url
    trimmed = url.split("?", 1)[0].split("#", 1)[0]
    if trimmed.endswith("/"):
        trimmed = trimmed[:-1]
    handle = trimmed.rsplit("/", 1)[-1]
    if handle and "." not in handle and handle not in domains:
        return handle
    return url


def _has_token(markup: str, token: str) -> bool:
    # token must start a word: "x.svg" matches "/x.svg", not "box.svg"
    return re.search(r"(?<![a-z0-9])" + re.escape(token), markup) is not None


def host_matches(url: str, domains: Iterable[str]) -> bool:
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    if not host:
        return False
    return any(host == d or host.endswith("." + d) for d in domains)


def resolve_href(href: str, base_url: str) -> str:
    """Absolute http(s) URL for href, or '' for non-web schemes."""
    h = (href or "").strip()
    if not h:
        return ""
    low = h.lower()
    if low.startswith(("http://", "https://")):
        return h
    if low.startswith(NON_WEB_SCHEMES):
        return ""
    if low.startswith("//"):
        scheme = urlparse(base_url).scheme or "https"
        return f"{scheme}:{h}"
    if not base_url:
        return ""
    resolved = urljoin(base_url, h)
    return resolved if resolved.lower().startswith(("http://", "https://")) else ""


def is_same_page(href: str, base_url: str) -> bool:
    """True for fragment-only hrefs and links back to the page itself."""
    h = (href or "").strip()
    if not h or h.startswith("#"):
        return True
    target = urldefrag(resolve_href(h, base_url))[0].rstrip("/")
    return bool(base_url) and target == urldefrag(base_url)[0].rstrip("/")


class LinkClassifier:
    """Classifies anchors of a rendered document into contact fields."""

    def __init__(self, lexicon: Lexicon = DEFAULT_LEXICON) -> None:
        self.lexicon = lexicon

    def _region_anchor_ids(self, parser: HTMLParser) -> set[int]:
        ids: set[int] = set()
        for selector in self.lexicon.region_selectors:
            try:
                regions = parser.css(selector)
            except Exception:
                # selector unsupported by the CSS engine
                continue
            for region in regions:
                if region.tag == "a":
                    ids.add(region.mem_id)
                for a in region.css("a"):
                    ids.add(a.mem_id)
        return ids

    def candidate_links(self, html: str) -> List[CandidateLink]:
        """Anchors inside contact regions in document order, else every anchor."""
        parser = HTMLParser(html or "")
        anchors: List[Node] = parser.css("a")
        region_ids = self._region_anchor_ids(parser)
        scoped = [a for a in anchors if a.mem_id in region_ids]
        if not scoped:
            print("No footer links found, searching entire page")
            scoped = anchors
        return [
            CandidateLink(
                href=(a.attrs.get("href") or "").strip() if a.attrs else "",
                text=a.text(separator=" ").strip(),
                markup=a.html or "",
            )
            for a in scoped
        ]

    def matches_platform(self, link: CandidateLink, platform: Platform) -> bool:
        if host_matches(link.href, platform.domains):
            return True
        text = link.text.lower()
        if any(t in text for t in platform.text_tokens):
            return True
        markup = link.markup.lower()
        return any(_has_token(markup, t) for t in platform.icon_tokens)

    def is_contact_link(self, link: CandidateLink) -> bool:
        try:
            path = (urlparse(link.href).path or "").lower()
        except ValueError:
            path = ""
        if any(t in path for t in self.lexicon.contact_href_tokens):
            return True
        text = link.text.lower()
        return any(t in text for t in self.lexicon.contact_text_tokens)

    def classify_links(self, links: Iterable[CandidateLink], base_url: str) -> ContactRecord:
        email = ""
        handle = ""
        linkedin = ""
        contact = ""
        handle_platform = self.lexicon.handle_platform
        profile_platform = self.lexicon.profile_platform
        for link in links:
            href = link.href
            if not href:
                continue
            low = href.lower()
            if not email and low.startswith("mailto:"):
                cand = sanitize_mailto(href)
                if cand and is_acceptable_email(cand, self.lexicon):
                    email = cand
                    print(f"Found email: {email}")
            if low.startswith(NON_WEB_SCHEMES):
                continue
            same_page = is_same_page(href, base_url)
            if not handle and not same_page and self.matches_platform(link, handle_platform):
                target = resolve_href(href, base_url) or href
                handle = extract_social_handle(target, handle_platform.domains)
                print(f"Found Twitter: {handle}")
            if not linkedin and not same_page and self.matches_platform(link, profile_platform):
                linkedin = resolve_href(href, base_url) or href
                print(f"Found LinkedIn: {linkedin}")
            if not contact and self.is_contact_link(link):
                resolved = resolve_href(href, base_url)
                if resolved:
                    contact = resolved
                    print(f"Found contact page: {contact}")
        return ContactRecord(
            email=email,
            social_handle=handle,
            linkedin_url=linkedin,
            contact_page_url=contact,
        )

    def classify(self, state: PageState, current: Optional[ContactRecord] = None) -> ContactRecord:
        links = self.candidate_links(state.html)
        print(f"Found {len(links)} links to process")
        return self.classify_links(links, state.url)
