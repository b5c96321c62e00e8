"""Tests for the page snapshot model."""
import pytest

from caption_relay.capture.dom import Descriptor, PageTree, Rect
from tests.pages import el, page, tree, txt


@pytest.fixture
def sample():
    return tree(el(
        "root",
        el("a", txt("t1", "Alice")),
        el("b", txt("t2", "Hello"), el("i", txt("t3", "world"), tag="span")),
        el("h", txt("t4", "hidden"), visible=False),
        el("s", txt("t5", "var x"), tag="script"),
        attrs={"aria-label": "Live Captions", "class": "panel wide"},
        rect=(600, 10, 800, 120),
    ))


class TestPageNode:
    def test_inner_text_lines(self, sample):
        assert sample.root.inner_text == "Alice\nHello world"

    def test_text_content_includes_hidden(self, sample):
        assert sample.root.text_content == "Alice Hello world hidden"

    def test_br_breaks_line(self):
        t = tree(el("p", txt("a", "one"), el("br1", tag="br"), txt("b", "two"), tag="p"))
        assert t.root.inner_text == "one\ntwo"

    def test_structure(self, sample):
        node = sample.get("t3")
        assert node.is_text
        assert [a.id for a in node.ancestors()] == ["i", "b", "root"]
        assert sample.root.classes == ["panel", "wide"]
        assert [c.id for c in sample.get("b").element_children] == ["i"]
        assert sample.root.rect.bottom == 720
        assert Rect.from_dict(None).area == 0


class TestDescriptor:
    def test_matching(self, sample):
        aria = Descriptor(attr="aria-label", value="captions", match="contains", case_insensitive=True)
        assert aria.matches(sample.root)
        assert not Descriptor(attr="aria-label", value="captions", match="contains").matches(sample.root)
        assert Descriptor(attr="aria-label", value="Live", match="prefix").matches(sample.root)
        assert Descriptor(class_name="wide").matches(sample.root)
        assert Descriptor(tag="span").matches(sample.get("i"))
        assert not Descriptor(tag="span").matches(sample.get("t3"))

    def test_str(self):
        assert str(Descriptor()) == "*"
        assert str(Descriptor(tag="div", class_name="x")) == "div.x"
        assert str(Descriptor(attr="data-tid")) == "[data-tid]"
        assert str(Descriptor(attr="aria-label", value="c", match="contains", case_insensitive=True)) == '[aria-label*="c" i]'


class TestPageTree:
    def test_query(self, sample):
        span = Descriptor(tag="span")
        assert sample.query(span).id == "i"
        assert sample.query(span, within=sample.get("a")) is None
        assert [n.id for n in sample.query_all(Descriptor(tag="div"))] == ["root", "a", "b", "h"]
        assert sample.contains("t5")
        assert not sample.contains(None)

    def test_payload_without_root(self):
        with pytest.raises(ValueError):
            PageTree.from_payload({"type": "page", "url": "x"})

    def test_payload_fields_and_mutations(self):
        payload = page(
            el("root"),
            url="https://meet.google.com/abc",
            height=720,
            mutations=[
                {"type": "characterData", "target": "t1"},
                {"type": "attributes", "target": "x"},
                {"type": "childList"},
                "junk",
                {"type": "childList", "target": 5, "added_text": 1},
            ],
        )
        t = PageTree.from_payload(payload)
        assert t.url == "https://meet.google.com/abc"
        assert t.viewport_height == 720
        assert [(m.type, m.target, m.added_text) for m in t.mutations] == [
            ("characterData", "t1", False),
            ("childList", "5", True),
        ]
