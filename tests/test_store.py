"""Tests for TranscriptStore: commit rule, rebuild, corrections."""
import pytest

from caption_relay.transcript.models import CaptionObservation, CommitOutcome, CommittedBlock
from caption_relay.transcript.store import TranscriptStore


def obs(speaker: str, text: str) -> CaptionObservation:
    return CaptionObservation(speaker=speaker, text=text)


@pytest.fixture
def store():
    return TranscriptStore(similarity_threshold=0.6, min_tokens=3, head_chars=10)


class TestCommitRule:
    def test_first_commit_appends(self, store):
        assert store.commit(obs("A", "Hello there")) == CommitOutcome.APPENDED
        assert len(store) == 1

    def test_identical_text_is_ignored(self, store):
        store.commit(obs("A", "Hello there"))
        assert store.commit(obs("A", "Hello there")) == CommitOutcome.IGNORED
        assert len(store) == 1

    def test_same_speaker_revision_replaces(self, store):
        store.commit(obs("A", "Hello wor"))
        assert store.commit(obs("A", "Hello world")) == CommitOutcome.REPLACED
        assert len(store) == 1
        assert store.last_committed.text == "Hello world"

    def test_same_speaker_new_sentence_appends(self, store):
        store.commit(obs("A", "Hello world"))
        assert store.commit(obs("A", "Hi there")) == CommitOutcome.APPENDED
        assert [b.text for b in store.committed] == ["Hello world", "Hi there"]

    def test_shorter_truncation_keeps_longer_text(self, store):
        store.commit(obs("A", "Hello world again"))
        assert store.commit(obs("A", "Hello world")) == CommitOutcome.IGNORED
        assert store.last_committed.text == "Hello world again"

    def test_word_correction_with_different_head_replaces(self, store):
        store.commit(obs("A", "I sea the ship today"))
        assert store.commit(obs("A", "I see the ship today")) == CommitOutcome.REPLACED
        assert store.last_committed.text == "I see the ship today"

    def test_short_revision_with_punctuation_replaces(self, store):
        store.commit(obs("A", "Yes I"))
        assert store.commit(obs("A", "Yes, I do")) == CommitOutcome.REPLACED
        assert [(b.speaker, b.text) for b in store.committed] == [("A", "Yes, I do")]

    def test_short_word_fix_replaces(self, store):
        store.commit(obs("A", "I sea"))
        assert store.commit(obs("A", "I see")) == CommitOutcome.REPLACED
        assert [b.text for b in store.committed] == ["I see"]

    def test_short_unrelated_reply_appends(self, store):
        store.commit(obs("A", "Yes"))
        assert store.commit(obs("A", "No")) == CommitOutcome.APPENDED
        assert len(store) == 2

    def test_other_speaker_appends(self, store):
        store.commit(obs("A", "Hello wor"))
        assert store.commit(obs("B", "Hello world")) == CommitOutcome.APPENDED
        assert len(store) == 2

    def test_empty_text_is_ignored(self, store):
        assert store.commit(obs("A", "   ")) == CommitOutcome.IGNORED
        assert len(store) == 0

    def test_speaker_cannot_change_after_commit(self, store):
        store.commit(obs("A", "Hello there"))
        with pytest.raises(AttributeError):
            store.last_committed.speaker = "B"


class TestView:
    def test_visible_revision_updates_last_entry(self, store):
        store.commit(obs("A", "Good morning all"))
        store.set_visible([obs("A", "Good morning all of you")])
        view = store.view()
        assert len(view) == 1
        assert view[0].text == "Good morning all of you"
        assert view[0].provisional is True
        assert store.last_committed.text == "Good morning all"

    def test_same_speaker_new_sentence_updates_last_entry(self, store):
        store.commit(obs("A", "Hello world"))
        store.set_visible([obs("A", "Hi there")])
        assert [(e.speaker, e.text, e.provisional) for e in store.view()] == [("A", "Hi there", True)]
        assert store.last_committed.text == "Hello world"

    def test_consecutive_visible_lines_of_one_speaker_merge(self, store):
        store.set_visible([obs("A", "First part"), obs("A", "second part"), obs("B", "Reply")])
        assert [(e.speaker, e.text) for e in store.view()] == [("A", "second part"), ("B", "Reply")]

    def test_unrelated_visible_line_is_appended(self, store):
        store.commit(obs("A", "Good morning all"))
        store.set_visible([obs("B", "Hi")])
        view = store.view()
        assert [(e.speaker, e.text, e.provisional) for e in view] == [
            ("A", "Good morning all", False),
            ("B", "Hi", True),
        ]

    def test_tail_and_format(self, store):
        store.commit(obs("A", "First line"))
        store.commit(obs("B", "Second line"))
        store.set_visible([obs("", "live words")])
        assert store.tail(2) == [
            {"speaker": "B", "text": "Second line"},
            {"speaker": "", "text": "live words"},
        ]
        text, count = store.format_tail()
        assert text == "A: First line\n\nB: Second line\n\nlive words"
        assert count == 3
        assert store.format_tail(1) == ("live words", 1)
        assert store.tail(0) == []


class TestCorrection:
    def test_apply_when_unchanged(self, store):
        store.commit(obs("A", "I sea it"))
        block = store.last_committed
        assert store.apply_correction(block, "I sea it", "I see it")
        assert block.text == "I see it"

    def test_reject_when_text_moved_on(self, store):
        store.commit(obs("A", "I sea it"))
        block = store.last_committed
        assert not store.apply_correction(block, "something else", "I see it")
        assert block.text == "I sea it"

    def test_reject_after_clear(self, store):
        store.commit(obs("A", "I sea it"))
        block = store.last_committed
        store.clear()
        assert not store.apply_correction(block, "I sea it", "I see it")


class TestClearRestore:
    def test_clear_empties_everything(self, store):
        store.commit(obs("A", "Hello there"))
        store.set_visible([obs("A", "more")])
        store.clear()
        assert len(store) == 0
        assert store.view() == []

    def test_restore_requires_empty_store(self, store):
        store.restore([CommittedBlock(speaker="A", text="restored")])
        assert store.last_committed.text == "restored"
        with pytest.raises(RuntimeError):
            store.restore([CommittedBlock(speaker="B", text="again")])
