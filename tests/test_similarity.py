"""Tests for caption_relay.transcript.similarity."""
from caption_relay.transcript.similarity import (
    common_prefix_len,
    is_revision,
    normalize,
    shares_head,
    short_texts_related,
    speakers_compatible,
    token_overlap,
    tokenize,
)


class TestTokenize:
    def test_lowercases_and_strips_punctuation(self):
        assert tokenize("Hello, World!") == {"hello", "world"}

    def test_empty(self):
        assert tokenize("") == set()
        assert tokenize("  ...  ") == set()

    def test_normalize_keeps_word_order(self):
        assert normalize("Yes,  I do!") == "yes i do"
        assert normalize(" -- ") == ""


class TestOverlap:
    def test_token_overlap_above_threshold(self):
        a = "we should ship the release on friday"
        b = "we should ship the new release friday"
        assert token_overlap(a, b) > 0.8
        assert is_revision(a, b)

    def test_unrelated_sentences(self):
        assert not is_revision("good morning everyone here", "the budget numbers look fine")

    def test_too_few_tokens_gives_zero_overlap(self):
        assert token_overlap("hello world", "hello world again") == 0.0

    def test_threshold_is_tunable(self):
        a = "alpha beta gamma delta"
        b = "alpha beta epsilon zeta"
        assert not is_revision(a, b)
        assert is_revision(a, b, threshold=0.5)


class TestSpeakers:
    def test_compatible_when_either_is_empty(self):
        assert speakers_compatible("Alice", "")
        assert speakers_compatible("", "")

    def test_incompatible_when_both_differ(self):
        assert not speakers_compatible("Alice", "Bob")


class TestRevision:
    def test_growing_line_is_revision(self):
        assert is_revision("Hello wor", "Hello world")
        assert is_revision("Hi", "Hi there")

    def test_punctuation_does_not_break_prefix(self):
        assert is_revision("Yes I", "Yes, I do")
        assert is_revision("ok. So the plan", "Ok so the plan is done")

    def test_new_sentence_is_not_revision(self):
        assert not is_revision("Hello world", "Hi there")
        assert not is_revision("Yes", "No")

    def test_word_fix_is_revision(self):
        assert is_revision("I sea the ship today", "I see the ship today")

    def test_short_word_fix_is_revision(self):
        assert is_revision("I sea", "I see")

    def test_short_texts_related(self):
        assert short_texts_related("thanks", "okay thanks")
        assert short_texts_related("I sea", "I see")
        assert not short_texts_related("Hello world", "Hi there")
        assert not short_texts_related("", "Hi")

    def test_shares_head(self):
        assert shares_head("Hello world again", "Hello world", 10)
        assert not shares_head("I sea the ship", "I see the ship", 10)
        assert common_prefix_len("abcd", "abxy") == 2
