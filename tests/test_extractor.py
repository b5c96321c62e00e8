"""Tests for SnapshotExtractor tiers."""
import pytest

from caption_relay.capture.extractor import SnapshotExtractor
from caption_relay.capture.filters import SpeakerRegistry
from caption_relay.capture.platforms import GENERIC, TEAMS
from tests.pages import el, teams_entry, teams_page, tree, txt


def pairs(observations):
    return [(o.speaker, o.text) for o in observations]


def region(*children, tag="div"):
    return el("body", el("cap", *children, tag=tag), tag="body")


@pytest.fixture
def speakers():
    return SpeakerRegistry()


class TestStructured:
    def test_teams_entries_with_default_speaker(self, speakers):
        extractor = SnapshotExtractor(TEAMS, speakers)
        extractor.attach("wrap")
        snapshot = tree(teams_page(
            teams_entry("e1", "Hello everyone, welcome to the call", speaker="Alice"),
            teams_entry("e2", "Thanks for having me here"),
        ))
        assert pairs(extractor.extract(snapshot)) == [
            ("Alice", "Hello everyone, welcome to the call"),
            ("Participant", "Thanks for having me here"),
        ]
        assert extractor.last_tier == "structured"
        assert "Alice" in speakers


class TestLineGrouping:
    def test_label_lines_group_speech(self, speakers):
        extractor = SnapshotExtractor(GENERIC, speakers)
        extractor.attach("cap")
        snapshot = tree(region(
            el("l1", txt("a", "Alice")),
            el("l2", txt("b", "Good morning everyone")),
            el("l3", txt("c", "Bob")),
            el("l4", txt("d", "Morning Alice, shall we start")),
        ))
        assert pairs(extractor.extract(snapshot)) == [
            ("Alice", "Good morning everyone"),
            ("Bob", "Morning Alice, shall we start"),
        ]
        assert extractor.last_tier == "line-grouping"

    def test_short_reply_after_label_is_speech(self, speakers):
        extractor = SnapshotExtractor(GENERIC, speakers)
        extractor.attach("cap")
        snapshot = tree(region(
            el("l1", txt("a", "Alice")),
            el("l2", txt("b", "Yes exactly")),
            el("l3", txt("c", "Bob")),
            el("l4", txt("d", "Sure thing")),
        ))
        assert pairs(extractor.extract(snapshot)) == [("Alice", "Yes exactly"), ("Bob", "Sure thing")]


class TestFallbackTiers:
    def test_tree_walk_reads_inline_label(self, speakers):
        extractor = SnapshotExtractor(GENERIC, speakers)
        extractor.attach("cap")
        snapshot = tree(region(
            el("s1", txt("a", "Carol"), tag="span"),
            el("s2", txt("b", "I agree with that plan"), tag="span"),
        ))
        assert pairs(extractor.extract(snapshot)) == [("Carol", "I agree with that plan")]
        assert extractor.last_tier == "tree-walk"
        assert "Carol" in speakers

    def test_raw_region_text(self, speakers):
        extractor = SnapshotExtractor(GENERIC, speakers)
        extractor.attach("cap")
        snapshot = tree(region(el("s", txt("a", "just some caption words here"), tag="span")))
        assert pairs(extractor.extract(snapshot)) == [("", "just some caption words here")]
        assert extractor.last_tier == "raw"


class TestExtractState:
    def test_empty_region_gives_empty_list(self, speakers):
        extractor = SnapshotExtractor(GENERIC, speakers)
        extractor.attach("cap")
        assert extractor.extract(tree(region(el("s", txt("a", ""))))) == []
        assert extractor.last_tier is None

    def test_unattached_or_missing_region_gives_none(self, speakers):
        extractor = SnapshotExtractor(GENERIC, speakers)
        snapshot = tree(region(el("s", txt("a", "some words"))))
        assert extractor.extract(snapshot) is None
        extractor.attach("gone")
        assert extractor.extract(snapshot) is None
        extractor.detach()
        assert extractor.attached_id is None
