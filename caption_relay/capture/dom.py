"""
Page model: serialized page snapshots sent by the browser agent.

A snapshot is a tree of element nodes ({"id", "tag", "attrs", "rect", "visible",
"children"}) and text nodes ({"id", "text"}). Node ids are stable across
snapshots, so "node X is still attached" means "id X is in the latest tree".
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Literal, Optional

TEXT_TAG = "#text"

# Elements whose innerText starts on a new line
BLOCK_TAGS = frozenset({
    "address", "article", "aside", "blockquote", "dd", "div", "dl", "dt", "fieldset",
    "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6",
    "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section", "table",
    "tbody", "td", "th", "thead", "tr", "ul",
})
SKIP_TAGS = frozenset({"script", "style", "noscript", "template"})


@dataclass(frozen=True)
class Rect:
    top: float = 0.0
    left: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Rect":
        if not data:
            return cls()
        return cls(
            top=float(data.get("top", 0) or 0),
            left=float(data.get("left", 0) or 0),
            width=float(data.get("width", 0) or 0),
            height=float(data.get("height", 0) or 0),
        )


@dataclass(eq=False)
class PageNode:
    id: str
    tag: str
    attrs: dict[str, str] = field(default_factory=dict)
    rect: Rect = field(default_factory=Rect)
    visible: bool = True
    text: str = ""
    children: list["PageNode"] = field(default_factory=list)
    parent: Optional["PageNode"] = field(default=None, repr=False)

    @property
    def is_text(self) -> bool:
        return self.tag == TEXT_TAG

    @property
    def classes(self) -> list[str]:
        return (self.attrs.get("class") or "").split()

    @property
    def element_children(self) -> list["PageNode"]:
        return [c for c in self.children if not c.is_text]

    @property
    def text_content(self) -> str:
        """All descendant text, hidden or not, space-joined."""
        if self.is_text:
            return self.text.strip()
        parts = [c.text_content for c in self.children if c.tag not in SKIP_TAGS]
        return " ".join(p for p in parts if p)

    @property
    def inner_text(self) -> str:
        """Rendered text: visible only, block children on their own lines."""
        if self.is_text:
            return " ".join(self.text.split())
        if not self.visible or self.tag in SKIP_TAGS:
            return ""
        lines: list[str] = []
        current: list[str] = []

        def end_line() -> None:
            if current:
                line = " ".join(current).strip()
                if line:
                    lines.append(line)
                current.clear()

        for child in self.children:
            if child.tag == "br":
                end_line()
                continue
            text = child.inner_text
            if not text:
                continue
            if child.tag in BLOCK_TAGS:
                end_line()
                lines.extend(text.split("\n"))
            else:
                head, *rest = text.split("\n")
                current.append(head)
                if rest:
                    end_line()
                    lines.extend(rest[:-1])
                    current.append(rest[-1])
        end_line()
        return "\n".join(l for l in lines if l.strip())

    def iter_descendants(self) -> Iterator["PageNode"]:
        """Depth-first, document order, self excluded."""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def ancestors(self) -> Iterator["PageNode"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent


@dataclass(frozen=True)
class MutationRecord:
    type: Literal["characterData", "childList"]
    target: str
    added_text: bool = False


@dataclass(frozen=True)
class Descriptor:
    """
    Declarative element matcher (the subset of CSS selectors the platforms need).

    tag: element tag or None for any. attr + value + match: attribute test
    ("equals", "contains", "prefix", or "present" when value is None).
    class_name: exact class token.
    """

    tag: Optional[str] = None
    attr: Optional[str] = None
    value: Optional[str] = None
    match: Literal["equals", "contains", "prefix", "present"] = "equals"
    class_name: Optional[str] = None
    case_insensitive: bool = False

    def matches(self, node: PageNode) -> bool:
        if node.is_text:
            return False
        if self.tag and node.tag != self.tag:
            return False
        if self.class_name and self.class_name not in node.classes:
            return False
        if self.attr:
            actual = node.attrs.get(self.attr)
            if actual is None:
                return False
            if self.value is None or self.match == "present":
                return True
            expected = self.value
            if self.case_insensitive:
                actual, expected = actual.lower(), expected.lower()
            if self.match == "equals":
                return actual == expected
            if self.match == "contains":
                return expected in actual
            if self.match == "prefix":
                return actual.startswith(expected)
            return False
        return True

    def __str__(self) -> str:
        out = self.tag or ""
        if self.class_name:
            out += f".{self.class_name}"
        if self.attr:
            op = {"equals": "=", "contains": "*=", "prefix": "^=", "present": ""}[self.match]
            flag = " i" if self.case_insensitive else ""
            out += f"[{self.attr}{op}\"{self.value}\"{flag}]" if self.value is not None and op else f"[{self.attr}]"
        return out or "*"


class PageTree:
    """One page snapshot, indexed by node id."""

    def __init__(
        self,
        root: PageNode,
        url: str = "",
        viewport_width: float = 0.0,
        viewport_height: float = 0.0,
        mutations: Optional[list[MutationRecord]] = None,
    ) -> None:
        self.root = root
        self.url = url
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.mutations = mutations or []
        self._by_id: dict[str, PageNode] = {root.id: root}
        for node in root.iter_descendants():
            self._by_id[node.id] = node

    def __len__(self) -> int:
        return len(self._by_id)

    def get(self, node_id: Optional[str]) -> Optional[PageNode]:
        if node_id is None:
            return None
        return self._by_id.get(node_id)

    def contains(self, node_id: Optional[str]) -> bool:
        return node_id is not None and node_id in self._by_id

    def elements(self) -> Iterator[PageNode]:
        if not self.root.is_text:
            yield self.root
        for node in self.root.iter_descendants():
            if not node.is_text:
                yield node

    def query_all(self, descriptor: Descriptor, within: Optional[PageNode] = None) -> list[PageNode]:
        scope = within.iter_descendants() if within is not None else self.elements()
        return [n for n in scope if descriptor.matches(n)]

    def query(self, descriptor: Descriptor, within: Optional[PageNode] = None) -> Optional[PageNode]:
        scope = within.iter_descendants() if within is not None else self.elements()
        for node in scope:
            if descriptor.matches(node):
                return node
        return None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PageTree":
        """Build from the agent's JSON message. Raises ValueError on a missing root."""
        root_data = payload.get("root")
        if not isinstance(root_data, dict):
            raise ValueError("page snapshot has no root node")
        viewport = payload.get("viewport") or {}
        mutations = []
        for m in payload.get("mutations") or []:
            if not isinstance(m, dict) or m.get("target") is None:
                continue
            kind = m.get("type")
            if kind not in ("characterData", "childList"):
                continue
            mutations.append(MutationRecord(type=kind, target=str(m["target"]), added_text=bool(m.get("added_text"))))
        return cls(
            root=_parse_node(root_data, None),
            url=str(payload.get("url") or ""),
            viewport_width=float(viewport.get("width", 0) or 0),
            viewport_height=float(viewport.get("height", 0) or 0),
            mutations=mutations,
        )


def _parse_node(data: dict[str, Any], parent: Optional[PageNode]) -> PageNode:
    node_id = str(data.get("id", ""))
    if "text" in data and "tag" not in data:
        return PageNode(id=node_id, tag=TEXT_TAG, text=str(data.get("text") or ""), parent=parent)
    node = PageNode(
        id=node_id,
        tag=str(data.get("tag") or "div").lower(),
        attrs={str(k): str(v) for k, v in (data.get("attrs") or {}).items()},
        rect=Rect.from_dict(data.get("rect")),
        visible=bool(data.get("visible", True)),
        parent=parent,
    )
    node.children = [_parse_node(c, node) for c in data.get("children") or [] if isinstance(c, dict)]
    return node
