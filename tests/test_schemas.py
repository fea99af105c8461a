"""
Test suite for Launch Contact Harvester schemas.

Covers the immutable ContactRecord, the navigation outcome variants and the
batch export row.
"""

import pytest
from pydantic import ValidationError

from harvester.schemas import (
    CONTACT_FIELDS,
    ContactRecord,
    EnrichedProduct,
    ErrorKind,
    Failed,
    Loaded,
    PageSignal,
    PageState,
    ProductCandidate,
)


class TestContactRecord:
    """Test cases for ContactRecord."""

    def test_empty_record_has_all_fields_blank(self):
        rec = ContactRecord.empty()
        assert rec.is_empty()
        assert rec.missing_fields() == list(CONTACT_FIELDS)
        assert rec.found_fields() == []

    def test_none_collapses_to_empty_string(self):
        rec = ContactRecord(email=None, social_handle="  foocorp  ")
        assert rec.email == ""
        assert rec.social_handle == "foocorp"

    def test_record_is_immutable(self):
        rec = ContactRecord(email="hello@foo.io")
        with pytest.raises(ValidationError):
            rec.email = "other@foo.io"

    def test_fill_missing_never_overwrites(self):
        first = ContactRecord(email="hello@foo.io")
        second = ContactRecord(email="info@foo.io", social_handle="foocorp")
        merged = first.fill_missing(second)
        assert merged.email == "hello@foo.io"
        assert merged.social_handle == "foocorp"
        # originals untouched
        assert first.social_handle == ""
        assert merged is not first


class TestOutcomes:
    def test_failed_defaults(self):
        f = Failed(kind=ErrorKind.INVALID_URL)
        assert f.attempts == 0
        assert f.kind.value == "invalid_url"

    def test_page_state_equality_ignores_page_handle(self):
        a = PageState(url="https://foo.io/", html="<p>x</p>", page=object())
        b = PageState(url="https://foo.io/", html="<p>x</p>", page=object())
        assert a == b
        assert Loaded(page_state=a).attempts == 1


class TestEnrichedProduct:
    def test_from_parts_flattens_record_and_diagnostics(self):
        cand = ProductCandidate(name=" Foo ", product_url="https://ph.example/posts/foo", website_url="https://foo.io")
        row = EnrichedProduct.from_parts(
            cand,
            ContactRecord(email="hello@foo.io"),
            error_kind=None,
            signals=(PageSignal.CHALLENGE,),
        )
        assert row.name == "Foo"
        assert row.email == "hello@foo.io"
        assert row.signals == ["challenge"]
        assert row.error_kind is None
        assert row.contact() == ContactRecord(email="hello@foo.io")

    def test_from_parts_records_error_kind(self):
        cand = ProductCandidate(name="Bar", website_url="https://bar.invalid")
        row = EnrichedProduct.from_parts(cand, ContactRecord.empty(), error_kind=ErrorKind.DNS)
        assert row.error_kind == "dns_error"
        assert row.contact().is_empty()
