"""Tests for the shared text-preparation pipeline."""

from search_builder.engine.scoring import prepare_text, stem_token, tokenize


class TestTokenize:
    def test_lowercases_and_splits_on_punctuation(self):
        assert tokenize("Hello,  World!\tfoo-bar") == ["hello", "world", "foo", "bar"]

    def test_empty_text(self):
        assert tokenize("   ") == []


class TestStemToken:
    def test_plural_s(self):
        assert stem_token("cats") == "cat"
        assert stem_token("dogs") == "dog"

    def test_ies_becomes_y(self):
        assert stem_token("stories") == "story"

    def test_past_tense(self):
        assert stem_token("indexed") == "index"

    def test_protected_endings_kept(self):
        assert stem_token("class") == "class"
        assert stem_token("status") == "status"

    def test_short_words_kept(self):
        assert stem_token("sing") == "sing"
        assert stem_token("bus") == "bus"


class TestPrepareText:
    def test_full_pipeline(self):
        assert prepare_text("Cats and DOGS") == ["cat", "dog"]

    def test_stop_words_only(self):
        assert prepare_text("the and of") == []

    def test_none_and_empty(self):
        assert prepare_text(None) == []
        assert prepare_text("") == []

    def test_duplicates_kept_in_order(self):
        assert prepare_text("cats chase cats") == ["cat", "chase", "cat"]
