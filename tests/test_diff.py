"""Tests for DiffCommitEngine: commit on disappearance, idempotent re-delivery."""
import pytest

from caption_relay.transcript.diff import DiffCommitEngine
from caption_relay.transcript.models import CaptionObservation, CommitOutcome
from caption_relay.transcript.store import TranscriptStore


def obs(speaker: str, text: str) -> CaptionObservation:
    return CaptionObservation(speaker=speaker, text=text)


@pytest.fixture
def store():
    return TranscriptStore(similarity_threshold=0.6, min_tokens=3, head_chars=10)


@pytest.fixture
def diff(store):
    return DiffCommitEngine(store, similarity_threshold=0.6, min_tokens=3, prefix_min_chars=10)


class TestCommitOnDisappearance:
    def test_growing_line_commits_once_when_it_leaves(self, diff, store):
        """A line that grows and then vanishes yields one block with the final text."""
        diff.apply([])
        diff.apply([obs("A", "Hi")])
        diff.apply([obs("A", "Hi there")])
        assert len(store) == 0
        result = diff.apply([])
        assert result.changed
        assert result.commits == 1
        assert [(b.speaker, b.text) for b in store.committed] == [("A", "Hi there")]

    def test_short_punctuated_revision_commits_once(self, diff, store):
        diff.apply([obs("A", "Yes I")])
        result = diff.apply([obs("A", "Yes, I do")])
        assert result.commits == 0
        diff.apply([])
        assert [(b.speaker, b.text) for b in store.committed] == [("A", "Yes, I do")]

    def test_short_word_fix_commits_once(self, diff, store):
        diff.apply([obs("A", "I sea")])
        diff.apply([obs("A", "I see")])
        diff.apply([])
        assert [(b.speaker, b.text) for b in store.committed] == [("A", "I see")]

    def test_flickering_short_line_stays_one_block(self, diff, store):
        """The partial line vanishes for a tick, then its revision commits onto the same block."""
        diff.apply([obs("A", "Yes I")])
        diff.apply([])
        diff.apply([obs("A", "Yes, I do")])
        result = diff.apply([])
        assert [o for _, o in result.outcomes] == [CommitOutcome.REPLACED]
        assert [(b.speaker, b.text) for b in store.committed] == [("A", "Yes, I do")]

    def test_scrolled_off_line_commits(self, diff, store):
        diff.apply([obs("A", "line one of the talk"), obs("B", "second remark here")])
        result = diff.apply([obs("B", "second remark here"), obs("A", "third thing now")])
        assert [o for _, o in result.outcomes] == [CommitOutcome.APPENDED]
        assert store.last_committed.text == "line one of the talk"
        assert [o.text for o in store.visible] == ["second remark here", "third thing now"]

    def test_speaker_change_is_a_different_line(self, diff, store):
        diff.apply([obs("A", "Hello everyone")])
        diff.apply([obs("B", "Hello everyone")])
        assert [(b.speaker, b.text) for b in store.committed] == [("A", "Hello everyone")]

    def test_unlabeled_line_matches_labeled_one(self, diff, store):
        diff.apply([obs("", "Hello everyone")])
        diff.apply([obs("A", "Hello everyone and welcome")])
        assert len(store) == 0

    def test_long_shared_head_is_the_same_line(self, diff, store):
        diff.apply([obs("A", "The meeting will start at")])
        result = diff.apply([obs("A", "The meeting will begin soon")])
        assert result.changed
        assert result.commits == 0
        assert len(store) == 0


class TestIdempotence:
    def test_identical_snapshot_is_a_no_op(self, diff, store):
        snapshot = [obs("A", "Good morning"), obs("B", "Morning all")]
        assert diff.apply(snapshot).changed
        again = diff.apply(list(snapshot))
        assert not again.changed
        assert again.outcomes == []
        assert len(store) == 0

    def test_empty_lines_are_dropped_before_comparison(self, diff):
        assert not diff.apply([obs("A", "   ")]).changed

    def test_redelivery_after_commit_does_not_duplicate(self, diff, store):
        diff.apply([obs("A", "first sentence here")])
        diff.apply([])
        diff.apply([])
        assert len(store) == 1


class TestReset:
    def test_reset_forgets_previous_snapshot(self, diff, store):
        diff.apply([obs("A", "pending words")])
        diff.reset()
        assert diff.previous == []
        diff.apply([])
        assert len(store) == 0
