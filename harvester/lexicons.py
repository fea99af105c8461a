"""
Versioned lexicon tables for the contact heuristics.

Every selector list, token list and deny/allow list the extraction stages
consult lives here instead of inline in control flow. The built-in tables are
`DEFAULT_LEXICON`; a YAML file can override any table with `load_lexicon()`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


LEXICON_VERSION = "2025.03-1"

# Platform keys the contact record is built from
HANDLE_PLATFORM = "twitter"
PROFILE_PLATFORM = "linkedin"


class LexiconError(ValueError):
    """Raised when a lexicon override file is missing or invalid."""


class Platform(BaseModel):
    """Tokens identifying one social network."""
    domains: List[str]
    text_tokens: List[str] = Field(default_factory=list)
    icon_tokens: List[str] = Field(default_factory=list)

    @field_validator("domains", "text_tokens", "icon_tokens")
    @classmethod
    def lowercase_tokens(cls, v):
        return [str(t).strip().lower() for t in v if str(t).strip()]


class Lexicon(BaseModel):
    version: str = LEXICON_VERSION

    # Containers likely to hold contact/social links, in priority order
    region_selectors: List[str]
    platforms: Dict[str, Platform]

    contact_href_tokens: List[str]
    contact_text_tokens: List[str]

    placeholder_domains: List[str]
    placeholder_local_parts: List[str]
    free_mail_domains: List[str]
    role_priority: List[str]
    domain_guess_roles: List[str]
    asset_suffixes: List[str]

    contact_element_selector: str

    challenge_text_markers: List[str]
    challenge_markup_markers: List[str]
    challenge_iframe_markers: List[str]
    block_text_markers: List[str]
    block_url_markers: List[str]

    @field_validator("platforms")
    @classmethod
    def require_core_platforms(cls, v):
        for key in (HANDLE_PLATFORM, PROFILE_PLATFORM):
            if key not in v:
                raise ValueError(f"platforms must define '{key}'")
        return v

    @property
    def handle_platform(self) -> Platform:
        return self.platforms[HANDLE_PLATFORM]

    @property
    def profile_platform(self) -> Platform:
        return self.platforms[PROFILE_PLATFORM]


DEFAULT_LEXICON = Lexicon(
    region_selectors=[
        "footer",
        '[class*="footer"]',
        "#footer",
        ".footer",
        '[id*="footer"]',
        '[class*="Footer"]',
        ".bottom",
        ".contact",
        ".social",
        '[class*="social"]',
        '[class*="contact"]',
        ".links",
        ".connect",
        ".follow-us",
        ".follow",
        ".legal",
        '[class*="bottom-section"]',
        '[class*="site-info"]',
        '[class*="site-footer"]',
        '[class*="main-footer"]',
        '[class*="page-footer"]',
        '[class*="global-footer"]',
        '[class*="site-bottom"]',
        '[class*="copyright"]',
        '[class*="socials"]',
        '[class*="social-links"]',
        '[class*="social-media"]',
        '[class*="social-icons"]',
        '[class*="contact-info"]',
        '[class*="contact-us"]',
        '[class*="get-in-touch"]',
        "#contact",
        ".contact-section",
        ".contact-container",
        ".contact-details",
        ".contact-information",
        ".contact-form-container",
        ".contact-wrapper",
        ".contact-block",
        ".contact-area",
        ".contact-content",
        ".contact-box",
        ".contact-card",
        ".contact-panel",
        ".contact-module",
        ".contact-widget",
        ".contact-item",
        ".contact-entry",
        ".contact-listing",
        ".contact-detail",
        ".contact-info-item",
        ".contact-info-detail",
    ],
    platforms={
        HANDLE_PLATFORM: Platform(
            domains=["twitter.com", "x.com"],
            text_tokens=["twitter", "x.com"],
            icon_tokens=[
                "twitter", "x-twitter", "fa-twitter", "icon-twitter", "twitter-icon",
                "twitter-logo", "twitter.svg", "x.svg", "x-logo", "x-icon",
            ],
        ),
        PROFILE_PLATFORM: Platform(
            domains=["linkedin.com"],
            text_tokens=["linkedin"],
            icon_tokens=[
                "linkedin", "fa-linkedin", "icon-linkedin", "linkedin-icon",
                "linkedin-logo", "linkedin.svg",
            ],
        ),
    },
    contact_href_tokens=["/contact", "/about", "/support", "/help"],
    contact_text_tokens=["contact", "get in touch", "reach out", "support"],
    placeholder_domains=["example.com", "yourdomain.com", "domain.com", "email.com", "sentry.io"],
    placeholder_local_parts=[
        "email", "user", "username", "name", "your", "youremail", "someone",
        "john.doe", "jane.doe", "johndoe", "test",
    ],
    free_mail_domains=[
        "gmail.com", "googlemail.com", "yahoo.com", "hotmail.com", "outlook.com", "live.com",
        "icloud.com", "aol.com", "protonmail.com", "proton.me", "mail.com",
    ],
    role_priority=["contact", "info", "hello", "support", "help"],
    domain_guess_roles=["info", "contact", "hello", "support"],
    asset_suffixes=[".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".avif", ".css", ".js"],
    contact_element_selector=(
        '[class*="contact"], [class*="email"], [id*="contact"], [id*="email"], '
        "[data-contact], [data-email]"
    ),
    challenge_text_markers=[
        "captcha", "robot", "human verification", "are you a robot",
        "prove you are human", "security check",
    ],
    challenge_markup_markers=["recaptcha", "hcaptcha", "cloudflare"],
    challenge_iframe_markers=["captcha", "recaptcha", "hcaptcha"],
    block_text_markers=[
        "access denied", "403 forbidden", "404 not found", "blocked",
        "your ip has been blocked", "too many requests", "rate limited",
    ],
    block_url_markers=["error", "blocked", "denied"],
)


def load_lexicon(path: Union[str, Path, None]) -> Lexicon:
    """Load a lexicon override from YAML on top of the defaults.

    Top-level keys replace the matching default table; `platforms` entries are
    merged per platform so an override can add a network without restating
    the built-in ones.
    """
    if not path:
        return DEFAULT_LEXICON
    p = Path(path)
    if not p.exists() or not p.is_file():
        raise LexiconError(f"lexicon file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise LexiconError(f"invalid YAML in {p}: {e}") from e
    if not isinstance(data, dict):
        raise LexiconError(f"lexicon file must contain a mapping: {p}")

    merged = DEFAULT_LEXICON.model_dump()
    platforms = dict(merged["platforms"])
    platforms.update(data.pop("platforms", None) or {})
    merged.update(data)
    merged["platforms"] = platforms
    try:
        return Lexicon.model_validate(merged)
    except ValidationError as e:
        raise LexiconError(f"invalid lexicon in {p}: {e}") from e
