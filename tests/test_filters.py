"""Tests for caption text heuristics."""
import pytest

from caption_relay.capture.filters import (
    SpeakerRegistry,
    clean_text,
    is_likely_name,
    is_ui_text,
    looks_like_captions,
    looks_like_speaker_label,
)
from tests.pages import el, tree, txt


class TestLooksLikeCaptions:
    @pytest.mark.parametrize("text", [
        "Hello everyone, thanks for joining",
        "I think we should move the deadline",
        "ok",
    ])
    def test_speech_passes(self, text):
        assert looks_like_captions(text)

    @pytest.mark.parametrize("text", [
        None,
        "",
        "   ",
        "more_vert mic_off videocam",
        "mic_off",
        "Press Tab to navigate",
        "10:45 AM",
        "abc-defg-hij",
        "Turn off captions",
        "Ctrl + D",
        "https://meet.google.com/abc-defg-hij",
        "a b c d e f",
    ])
    def test_ui_chrome_fails(self, text):
        assert not looks_like_captions(text)


class TestUiText:
    def test_labels(self):
        assert is_ui_text("Raise hand")
        assert is_ui_text("https://example.com")
        assert is_ui_text("")
        assert not is_ui_text("Alice")

    def test_clean_text_strips_chrome(self):
        assert clean_text("Hello more_vert there 10:30 AM see https://x.y") == "Hello there see"
        assert clean_text(None) == ""


class TestSpeakerNames:
    def test_likely_names(self):
        assert is_likely_name("Alice Smith")
        assert not is_likely_name("I think so.")
        assert not is_likely_name("one two three four five")
        assert not is_likely_name("present now")
        assert not is_likely_name("x" * 41)

    def test_known_speaker_always_passes(self):
        speakers = SpeakerRegistry()
        speakers.remember(" Dr. Who ")
        assert "Dr. Who" in speakers
        assert len(speakers) == 1
        assert is_likely_name("Dr. Who", speakers)
        assert not is_likely_name("Dr. Who")
        speakers.clear()
        assert len(speakers) == 0

    def test_label_rejects_word_span_rows(self):
        spans = [el(f"s{i}", txt(f"t{i}", f"word{i}"), tag="span") for i in range(6)]
        page_tree = tree(el("row", *spans))
        node = page_tree.get("s0")
        assert not looks_like_speaker_label("word0", node)

    def test_single_word_label_rules(self):
        assert looks_like_speaker_label("Alice")
        assert not looks_like_speaker_label("Smith,")
        assert not looks_like_speaker_label("Supercalifragilisticexp")
        assert looks_like_speaker_label("Smith, John")
