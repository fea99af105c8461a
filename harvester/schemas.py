"""
Launch Contact Harvester - Data Schemas

Core data models shared by the contact extraction pipeline: the per-site
ContactRecord, the transient PageState handed to extraction stages, the
tagged NavigationOutcome variants and the batch input/output rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ErrorKind(str, Enum):
    """Classified reasons an extraction attempt produced no page."""
    INVALID_URL = "invalid_url"
    TIMEOUT = "timeout"
    NAVIGATION = "navigation_error"
    DNS = "dns_error"
    CONNECTION_REFUSED = "connection_refused"
    SSL = "ssl_error"
    ABORTED = "aborted"
    UNKNOWN = "unknown"


class PageSignal(str, Enum):
    """Non-fatal signals attached to an otherwise loaded page."""
    CHALLENGE = "challenge"
    BLOCK = "block"


CONTACT_FIELDS: Tuple[str, ...] = ("email", "social_handle", "linkedin_url", "contact_page_url")


class ContactRecord(BaseModel):
    """
    Best-effort contact data for one external website.

    Every field is independently optional; an empty string means "not found".
    Records are immutable: combining two records always builds a new one.
    """
    model_config = ConfigDict(frozen=True)

    email: str = Field(default="", description="Email address found on the site")
    social_handle: str = Field(default="", description="Twitter/X handle, or the full URL when no handle is derivable")
    linkedin_url: str = Field(default="", description="LinkedIn page URL")
    contact_page_url: str = Field(default="", description="Absolute URL of a contact/about/support page")

    @field_validator("email", "social_handle", "linkedin_url", "contact_page_url", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        """Collapse None to the empty string so 'not found' has one spelling."""
        if v is None:
            return ""
        return str(v).strip()

    @classmethod
    def empty(cls) -> "ContactRecord":
        return cls()

    def is_empty(self) -> bool:
        return not any(getattr(self, f) for f in CONTACT_FIELDS)

    def missing_fields(self) -> List[str]:
        return [f for f in CONTACT_FIELDS if not getattr(self, f)]

    def found_fields(self) -> List[str]:
        return [f for f in CONTACT_FIELDS if getattr(self, f)]

    def fill_missing(self, other: "ContactRecord") -> "ContactRecord":
        """Return a new record taking values from `other` only where this one is empty."""
        return ContactRecord(**{f: (getattr(self, f) or getattr(other, f)) for f in CONTACT_FIELDS})


@dataclass(frozen=True)
class PageState:
    """Rendered document for one extraction pass.

    `page` is the live browser page the document was captured from; in-page
    probes need it, static stages only read `html` and `url`.
    """
    url: str
    html: str
    pass_name: str = "initial"
    page: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class CandidateLink:
    href: str
    text: str
    markup: str


@dataclass(frozen=True)
class Loaded:
    page_state: PageState
    attempts: int = 1


@dataclass(frozen=True)
class BlockedOrChallenged:
    page_state: PageState
    signals: Tuple[PageSignal, ...]
    reasons: Tuple[str, ...] = ()
    attempts: int = 1


@dataclass(frozen=True)
class Failed:
    kind: ErrorKind
    message: str = ""
    attempts: int = 0


NavigationOutcome = Union[Loaded, BlockedOrChallenged, Failed]


class ProductCandidate(BaseModel):
    """One launch listing supplied by the ranking-site scraper."""
    name: str = ""
    product_url: str = ""
    website_url: str = ""

    @field_validator("name", "product_url", "website_url", mode="before")
    @classmethod
    def strip_values(cls, v):
        if v is None:
            return ""
        return str(v).strip()


class EnrichedProduct(BaseModel):
    """Export row: candidate plus the merged contact record and diagnostics."""
    name: str
    product_url: str
    website_url: str
    email: str = ""
    social_handle: str = ""
    linkedin_url: str = ""
    contact_page_url: str = ""
    error_kind: Optional[str] = None
    signals: List[str] = Field(default_factory=list)

    @classmethod
    def from_parts(
        cls,
        candidate: ProductCandidate,
        record: ContactRecord,
        error_kind: Optional[ErrorKind] = None,
        signals: Tuple[PageSignal, ...] = (),
    ) -> "EnrichedProduct":
        return cls(
            name=candidate.name,
            product_url=candidate.product_url,
            website_url=candidate.website_url,
            email=record.email,
            social_handle=record.social_handle,
            linkedin_url=record.linkedin_url,
            contact_page_url=record.contact_page_url,
            error_kind=error_kind.value if error_kind else None,
            signals=[s.value for s in signals],
        )

    def contact(self) -> ContactRecord:
        return ContactRecord(
            email=self.email,
            social_handle=self.social_handle,
            linkedin_url=self.linkedin_url,
            contact_page_url=self.contact_page_url,
        )
