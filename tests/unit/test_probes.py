from unittest.mock import MagicMock

from harvester.pipeline.probes import (
    BODY_TEXT_JS,
    DOCUMENT_SCAN_JS,
    ICON_SCAN_JS,
    PageProbes,
    registrable_domain,
)
from harvester.schemas import ContactRecord, PageState


def _state(page, url="https://acme.io/"):
    return PageState(url=url, html="<html></html>", page=page)


def test_registrable_domain():
    assert registrable_domain("www.acme.io") == "acme.io"
    assert registrable_domain("shop.acme.co.uk") == "acme.co.uk"
    assert registrable_domain("localhost") == "localhost"


def test_probes_without_live_page_return_empty():
    probes = PageProbes()
    state = PageState(url="https://acme.io/", html="<p>hello@acme.io</p>")
    for probe in (probes.icon_scan, probes.document_scan, probes.script_scan,
                  probes.list_item_scan, probes.domain_guess):
        assert probe(state, ContactRecord.empty()).is_empty()


def test_icon_scan_passes_lexicon_tokens_and_reduces_handle():
    page = MagicMock()
    page.evaluate.return_value = {
        "twitter": "https://twitter.com/acme",
        "linkedin": "https://www.linkedin.com/company/acme",
    }
    rec = PageProbes().icon_scan(_state(page))
    assert rec.social_handle == "acme"
    assert rec.linkedin_url == "https://www.linkedin.com/company/acme"
    script, arg = page.evaluate.call_args[0]
    assert script == ICON_SCAN_JS
    assert "fa-twitter" in arg["platforms"]["twitter"]["tokens"]
    assert arg["platforms"]["twitter"]["domains"] == ["twitter.com", "x.com"]


def test_document_scan_applies_email_gate_and_priority():
    page = MagicMock()
    page.evaluate.return_value = {
        "text": "Write to test@example.com, jane@gmail.com or info@acme.io",
        "social": {"twitter": "https://x.com/acme_hq"},
        "contact": "https://acme.io/contact",
        "dataEmails": [],
    }
    rec = PageProbes().document_scan(_state(page))
    assert page.evaluate.call_args[0][0] == DOCUMENT_SCAN_JS
    assert rec.email == "info@acme.io"
    assert rec.social_handle == "acme_hq"
    assert rec.contact_page_url == "https://acme.io/contact"


def test_document_scan_falls_back_to_data_attributes():
    page = MagicMock()
    page.evaluate.return_value = {"text": "", "social": {}, "contact": "", "dataEmails": ["user@example.com", "team@acme.io"]}
    assert PageProbes().document_scan(_state(page)).email == "team@acme.io"


def test_script_scan_skips_placeholders():
    page = MagicMock()
    page.evaluate.return_value = ["var a='user@example.com'; var b='sales@acme.io';"]
    assert PageProbes().script_scan(_state(page)).email == "sales@acme.io"


def test_list_item_scan_reports_social_only():
    page = MagicMock()
    page.evaluate.return_value = {"twitter": "https://twitter.com/acme/"}
    rec = PageProbes().list_item_scan(_state(page))
    assert rec.social_handle == "acme"
    assert rec.email == ""


def test_domain_guess_requires_verbatim_match():
    page = MagicMock()
    page.evaluate.return_value = "Mail us at hello@acme.co.uk any time"
    rec = PageProbes().domain_guess(_state(page, url="https://www.acme.co.uk/pricing"))
    assert page.evaluate.call_args[0][0] == BODY_TEXT_JS
    assert rec.email == "hello@acme.co.uk"


def test_domain_guess_does_not_guess_without_evidence():
    page = MagicMock()
    page.evaluate.return_value = "No addresses on this page"
    assert PageProbes().domain_guess(_state(page)).email == ""


def test_guess_candidates_follow_role_list():
    assert PageProbes().guess_candidates("https://www.acme.io/x") == [
        "info@acme.io", "contact@acme.io", "hello@acme.io", "support@acme.io",
    ]
