import pytest

from harvester.lexicons import (
    DEFAULT_LEXICON,
    HANDLE_PLATFORM,
    PROFILE_PLATFORM,
    LexiconError,
    load_lexicon,
)


def test_default_lexicon_has_core_tables():
    lex = DEFAULT_LEXICON
    assert HANDLE_PLATFORM in lex.platforms and PROFILE_PLATFORM in lex.platforms
    assert lex.role_priority == ["contact", "info", "hello", "support", "help"]
    assert "footer" in lex.region_selectors
    assert "x.com" in lex.handle_platform.domains
    assert lex.profile_platform.domains == ["linkedin.com"]


def test_load_lexicon_without_path_returns_defaults():
    assert load_lexicon(None) is DEFAULT_LEXICON


def test_override_replaces_tables_and_merges_platforms(tmp_path):
    p = tmp_path / "lex.yaml"
    p.write_text(
        "version: test-1\n"
        "role_priority: [support, info]\n"
        "platforms:\n"
        "  mastodon:\n"
        "    domains: [Mastodon.Social]\n"
        "    text_tokens: [mastodon]\n",
        encoding="utf-8",
    )
    lex = load_lexicon(p)
    assert lex.version == "test-1"
    assert lex.role_priority == ["support", "info"]
    assert lex.platforms["mastodon"].domains == ["mastodon.social"]
    # built-in platforms survive the override
    assert lex.handle_platform.domains == DEFAULT_LEXICON.handle_platform.domains
    # defaults are not mutated
    assert DEFAULT_LEXICON.role_priority[0] == "contact"


def test_missing_file_raises(tmp_path):
    with pytest.raises(LexiconError, match="not found"):
        load_lexicon(tmp_path / "nope.yaml")


def test_invalid_yaml_raises(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("role_priority: [unclosed\n", encoding="utf-8")
    with pytest.raises(LexiconError, match="invalid YAML"):
        load_lexicon(p)


def test_invalid_table_type_raises(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("role_priority: 5\n", encoding="utf-8")
    with pytest.raises(LexiconError, match="invalid lexicon"):
        load_lexicon(p)
