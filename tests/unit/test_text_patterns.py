from harvester.pipeline.text_patterns import TextPatternExtractor, is_acceptable_email, sanitize_mailto
from harvester.schemas import PageState


def _state(html: str) -> PageState:
    return PageState(url="https://acme.com/", html=html)


def test_sanitize_mailto_strips_query_and_lowercases():
    assert sanitize_mailto("mailto:Hello@Foo.io?subject=hi") == "hello@foo.io"
    assert sanitize_mailto("mailto:team@foo.io#top") == "team@foo.io"
    assert sanitize_mailto("") is None


def test_placeholder_and_asset_addresses_rejected():
    for bad in [
        "test@foo.com",
        "john.doe@acme.com",
        "someone@example.com",
        "ops@sub.example.com",
        "you@yourdomain.com",
        "logo@2x.png",
        "not-an-email",
    ]:
        assert is_acceptable_email(bad) is False, bad
    assert is_acceptable_email("hello@foo.io") is True


def test_role_account_beats_consumer_provider():
    ex = TextPatternExtractor()
    text = "Reach jane@gmail.com or contact@acme.com for help"
    assert ex.pick_email(ex.candidate_emails(text)) == "contact@acme.com"


def test_role_priority_order_applies():
    ex = TextPatternExtractor()
    text = "hello@acme.com support@acme.com info@acme.com"
    assert ex.pick_email(ex.candidate_emails(text)) == "info@acme.com"


def test_business_non_role_beats_free_mail():
    ex = TextPatternExtractor()
    assert ex.pick_email(ex.candidate_emails("jane@gmail.com then sales@acme.com")) == "sales@acme.com"


def test_free_mail_used_when_nothing_else_survives():
    ex = TextPatternExtractor()
    assert ex.pick_email(ex.candidate_emails("Write to jane@gmail.com or test@example.com")) == "jane@gmail.com"


def test_only_placeholders_leaves_field_empty():
    ex = TextPatternExtractor()
    html = "<body><p>test@foo.com john.doe@acme.com x@example.com</p></body>"
    assert ex.extract(_state(html)).email == ""


def test_candidates_are_deduped_in_document_order():
    ex = TextPatternExtractor()
    assert ex.candidate_emails("B@acme.com a@acme.com b@acme.com") == ("b@acme.com", "a@acme.com")


def test_script_bodies_are_not_visible_text():
    ex = TextPatternExtractor()
    html = '<body><script>var e = "hidden@acme.com";</script><p>Nothing here</p></body>'
    assert ex.extract(_state(html)).email == ""


def test_visible_body_email_found():
    ex = TextPatternExtractor()
    html = "<body><footer><p>Questions? hello@acme.com</p></footer></body>"
    rec = ex.extract(_state(html))
    assert rec.email == "hello@acme.com"
    assert rec.social_handle == ""


def test_secondary_probe_reads_contact_elements():
    ex = TextPatternExtractor()
    html = '<body><div class="contact-box" data-email="team@acme.com"></div><p>No text emails</p></body>'
    assert ex.extract(_state(html)).email == "team@acme.com"


def test_email_split_across_inline_tags():
    ex = TextPatternExtractor()
    html = "<body><p>Write to info<span>@</span>acme.io today</p></body>"
    assert ex.extract(_state(html)).email == "info@acme.io"


def test_block_elements_stay_separated():
    ex = TextPatternExtractor()
    html = "<body><div>sales@acme.io</div><div>Opening hours</div></body>"
    assert ex.extract(_state(html)).email == "sales@acme.io"
