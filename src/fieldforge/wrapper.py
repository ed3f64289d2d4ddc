"""Rendered element tree and wrapper composition.

Implementations return an Element; when a field declares a ``wrapper``
the element is placed inside the wrapper container as its only child.

A wrapper is either markup (``'<div class="form-group"></div>'``) or a
descriptor mapping (``{"tag": "div", "attrs": {"class": "form-group"}}``).
Either form must describe exactly one root container.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Any

from fieldforge.errors import InvalidWrapperError

# Elements that cannot hold children.
VOID_TAGS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "source", "track", "wbr",
})


@dataclass(eq=False)
class Element:
    """A node in a rendered subtree.

    Elements compare by identity so a composed tree can be checked for the
    exact element an implementation returned.
    """

    tag: str
    attrs: dict[str, str] = field(default_factory=dict)
    children: list["Element | str"] = field(default_factory=list)
    value: Any = None
    parent: "Element | None" = field(default=None, repr=False)

    @property
    def id(self) -> str | None:
        return self.attrs.get("id")

    @property
    def first_child(self) -> "Element | str | None":
        return self.children[0] if self.children else None

    @property
    def text_content(self) -> str:
        parts = []
        for child in self.children:
            parts.append(child if isinstance(child, str) else child.text_content)
        return "".join(parts)

    def append(self, child: "Element | str") -> "Element | str":
        if isinstance(child, Element):
            child.detach()
            child.parent = self
        self.children.append(child)
        return child

    def detach(self) -> None:
        if self.parent is not None:
            self.parent.children = [c for c in self.parent.children if c is not self]
            self.parent = None

    def iter(self) -> Iterator["Element"]:
        yield self
        for child in self.children:
            if isinstance(child, Element):
                yield from child.iter()

    def find_by_id(self, element_id: str) -> "Element | None":
        for element in self.iter():
            if element.id == element_id:
                return element
        return None


class _MarkupBuilder(HTMLParser):
    """Builds Elements from markup, tracking top-level nodes."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.roots: list[Element | str] = []
        self._stack: list[Element] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        element = Element(tag, {name: value or "" for name, value in attrs})
        self._add(element)
        if tag not in VOID_TAGS:
            self._stack.append(element)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._add(Element(tag, {name: value or "" for name, value in attrs}))

    def handle_endtag(self, tag: str) -> None:
        if tag in VOID_TAGS:
            return
        if not self._stack or self._stack[-1].tag != tag:
            raise InvalidWrapperError(f"Unexpected closing tag </{tag}> in wrapper")
        self._stack.pop()

    def handle_data(self, data: str) -> None:
        if self._stack:
            self._stack[-1].append(data)
        elif data.strip():
            self.roots.append(data)

    def _add(self, element: Element) -> None:
        if self._stack:
            self._stack[-1].append(element)
        else:
            self.roots.append(element)


def parse_wrapper(wrapper: str | Mapping[str, Any]) -> Element:
    """Build the wrapper container.

    Raises:
        InvalidWrapperError: If the wrapper is not exactly one container
    """
    if isinstance(wrapper, Mapping):
        return _from_descriptor(wrapper)
    if not isinstance(wrapper, str):
        raise InvalidWrapperError(
            f"Wrapper must be markup or a descriptor, got {type(wrapper).__name__}"
        )

    builder = _MarkupBuilder()
    builder.feed(wrapper)
    builder.close()

    if len(builder.roots) != 1 or not isinstance(builder.roots[0], Element):
        raise InvalidWrapperError(
            f"Wrapper must have exactly one root element, got {len(builder.roots)} "
            f"top-level node(s): {wrapper!r}"
        )
    root = builder.roots[0]
    if root.tag in VOID_TAGS:
        raise InvalidWrapperError(f"<{root.tag}> cannot contain a field")
    return root


def _from_descriptor(descriptor: Mapping[str, Any]) -> Element:
    tag = descriptor.get("tag")
    if not isinstance(tag, str) or not tag:
        raise InvalidWrapperError(f"Wrapper descriptor needs a 'tag': {dict(descriptor)!r}")
    if tag in VOID_TAGS:
        raise InvalidWrapperError(f"<{tag}> cannot contain a field")
    attrs = descriptor.get("attrs") or {}
    if not isinstance(attrs, Mapping):
        raise InvalidWrapperError("Wrapper descriptor 'attrs' must be a mapping")
    return Element(tag, {str(k): str(v) for k, v in attrs.items()})


def compose(element: Element, wrapper: str | Mapping[str, Any] | None = None) -> Element:
    """Wrap ``element`` in ``wrapper``, or return it unchanged when there is none."""
    if wrapper is None:
        return element

    container = parse_wrapper(wrapper)
    for child in container.children:
        if isinstance(child, Element):
            child.parent = None
    container.children = []
    container.append(element)
    return container
