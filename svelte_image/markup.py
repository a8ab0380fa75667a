"""Component markup parsing with attribute offsets into the original text."""

from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Set, Tuple

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from .errors import DocumentParseError
from .models import (
    Attribute,
    AttributeValue,
    DynamicValue,
    Node,
    NodeKind,
    SourceDocument,
    StaticValue,
)

logger = logging.getLogger("svelte_image.markup")

IMAGE_NODE_KINDS = frozenset({NodeKind.ELEMENT, NodeKind.FRAGMENT, NodeKind.INLINE_COMPONENT})

_TAG_OPEN = re.compile(r"<([A-Za-z][\w:.\-]*)")
_ATTR_NAME = re.compile(r"[^\s=/>\"'{}]+")
_UNQUOTED_VALUE = re.compile(r"[^\s\"'=<>`]+")
_RAW_TEXT = re.compile(r"<(script|style)(?=[\s/>])", re.IGNORECASE)


def has_image_markers(text: str, tag_name: str) -> bool:
    """Cheap check that a document may contain image nodes at all."""
    return "<img" in text or f"<{tag_name}" in text


def parse(text: str, tag_name: str = "Image") -> SourceDocument:
    """Parse component markup into an immutable node tree.

    Expressions in text content (``{#if a<b}``, ``{@html '<img>'}``) are
    blanked before the HTML parser sees them, so markup inside them never
    becomes a node. A start tag that cannot be read is dropped (its children
    are kept) unless it is an ``img`` or ``tag_name`` node, which raises
    :class:`DocumentParseError`.
    """
    masked = mask_expressions(text)
    try:
        soup = BeautifulSoup(masked, "html.parser")
    except ParserRejectedMarkup as exc:
        raise DocumentParseError(f"Markup rejected by parser: {exc}") from exc

    source = _Source(text, masked, _line_starts(text), {"img", tag_name.lower()})
    children = tuple(
        node
        for child in soup.children
        if isinstance(child, Tag)
        for node in _build_nodes(child, source)
    )
    root = Node(kind=NodeKind.FRAGMENT, name="", children=children, start=0, end=len(text))
    return SourceDocument(text=text, root=root)


def mask_expressions(text: str) -> str:
    """Replace ``{...}`` expressions outside tags with spaces.

    Offsets and line breaks are preserved. ``<script>``, ``<style>`` and
    comments are left untouched, as are expressions inside start tags.
    """
    chars = list(text)
    length = len(text)
    i = 0
    while i < length:
        char = text[i]
        if char == "{":
            try:
                close = _match_brace(text, i)
            except DocumentParseError:
                break
            for j in range(i, close + 1):
                if chars[j] != "\n":
                    chars[j] = " "
            i = close + 1
        elif text.startswith("<!--", i):
            end = text.find("-->", i + 4)
            i = length if end == -1 else end + 3
        elif char == "<" and text[i + 1 : i + 2].isalpha():
            raw = _RAW_TEXT.match(text, i)
            i = _skip_tag(text, i)
            if raw:
                closing = re.compile(r"</" + raw.group(1) + r"\s*>", re.IGNORECASE)
                match = closing.search(text, i)
                i = length if match is None else match.end()
        else:
            i += 1
    return "".join(chars)


def _skip_tag(text: str, i: int) -> int:
    """Offset just past the start tag opened at ``i``."""
    j = i + 1
    try:
        while j < len(text):
            char = text[j]
            if char == ">":
                return j + 1
            if char in "\"'":
                j += 1
                while j < len(text) and text[j] != char:
                    j = _match_brace(text, j) + 1 if text[j] == "{" else j + 1
                j += 1
            elif char == "{":
                j = _match_brace(text, j) + 1
            else:
                j += 1
    except DocumentParseError:
        # Unbalanced tag; treat "<" as text and keep scanning.
        return i + 1
    return len(text)


def collect_candidates(root: Node, tag_name: str) -> Tuple[Node, ...]:
    """Return ``img`` and ``tag_name`` nodes in document order."""
    names = {"img", tag_name}
    return tuple(sorted(_walk(root, names), key=lambda node: node.start))


def _walk(node: Node, names: set) -> Iterator[Node]:
    for child in node.children:
        if child.kind in IMAGE_NODE_KINDS and child.name in names:
            yield child
        yield from _walk(child, names)


def node_kind(name: str) -> NodeKind:
    if name == "svelte:fragment":
        return NodeKind.FRAGMENT
    if name[:1].isupper() or "." in name:
        return NodeKind.INLINE_COMPONENT
    return NodeKind.ELEMENT


def _line_starts(text: str) -> List[int]:
    starts = [0]
    for match in re.finditer("\n", text):
        starts.append(match.end())
    return starts


@dataclass(frozen=True)
class _Source:
    text: str
    masked: str
    line_starts: List[int]
    candidates: Set[str]


def _build_nodes(tag: Tag, source: _Source) -> Tuple[Node, ...]:
    children = tuple(
        node
        for child in tag.children
        if isinstance(child, Tag)
        for node in _build_nodes(child, source)
    )
    try:
        start = _locate(tag, source.masked, source.line_starts)
        name, attributes, end = scan_start_tag(source.text, start)
    except DocumentParseError as exc:
        if tag.name.lower() in source.candidates:
            raise
        logger.debug("Ignoring unreadable <%s>: %s", tag.name, exc)
        return children
    return (
        Node(
            kind=node_kind(name),
            name=name,
            attributes=attributes,
            children=children,
            start=start,
            end=end,
        ),
    )


def _locate(tag: Tag, text: str, line_starts: List[int]) -> int:
    """Translate the parser's (line, column) into an absolute offset."""
    if tag.sourceline is None or tag.sourcepos is None:
        raise DocumentParseError(f"No source position recorded for <{tag.name}>")
    line_index = min(tag.sourceline - 1, len(line_starts) - 1)
    offset = line_starts[line_index] + tag.sourcepos
    if text.startswith("<", offset):
        return offset
    # Fall back to the first matching tag opener on the reported line.
    pattern = re.compile(r"<" + re.escape(tag.name) + r"(?=[\s/>])", re.IGNORECASE)
    match = pattern.search(text, line_starts[line_index])
    if match is None:
        raise DocumentParseError(
            f"Could not locate <{tag.name}> at line {tag.sourceline}"
        )
    logger.debug("Relocated <%s> from %d to %d", tag.name, offset, match.start())
    return match.start()


def scan_start_tag(text: str, pos: int) -> Tuple[str, Tuple[Attribute, ...], int]:
    """Read the start tag at ``pos``; return name, attributes and end offset."""
    match = _TAG_OPEN.match(text, pos)
    if match is None:
        raise DocumentParseError(f"Expected a start tag at offset {pos}")
    name = match.group(1)
    attributes: List[Attribute] = []
    length = len(text)
    i = match.end()
    while i < length:
        i = _skip_space(text, i)
        if i >= length:
            break
        char = text[i]
        if char == ">":
            return name, tuple(attributes), i + 1
        if text.startswith("/>", i):
            return name, tuple(attributes), i + 2
        if char == "/":
            i += 1
            continue
        if char == "{":
            close = _match_brace(text, i)
            inner = text[i + 1 : close].strip()
            # Spread attributes ({...props}) name nothing we can inspect.
            if inner and not inner.startswith("..."):
                attributes.append(
                    Attribute(inner, DynamicValue("AttributeShorthand"), i, close + 1)
                )
            i = close + 1
            continue
        name_match = _ATTR_NAME.match(text, i)
        if name_match is None:
            raise DocumentParseError(f"Unexpected {char!r} in <{name}> at offset {i}")
        attr_end = name_match.end()
        cursor = _skip_space(text, attr_end)
        if cursor < length and text[cursor] == "=":
            value, attr_end = _scan_value(text, _skip_space(text, cursor + 1))
        else:
            value = StaticValue("", attr_end, attr_end)
        attributes.append(Attribute(name_match.group(0), value, i, attr_end))
        i = attr_end
    raise DocumentParseError(f"Unterminated <{name}> starting at offset {pos}")


def _skip_space(text: str, i: int) -> int:
    while i < len(text) and text[i].isspace():
        i += 1
    return i


def _scan_value(text: str, i: int) -> Tuple[AttributeValue, int]:
    if i >= len(text):
        raise DocumentParseError("Attribute value missing at end of input")
    char = text[i]
    if char in "\"'":
        close = i + 1
        while close < len(text) and text[close] != char:
            close = _match_brace(text, close) + 1 if text[close] == "{" else close + 1
        if close >= len(text):
            raise DocumentParseError(f"Unterminated attribute value at offset {i}")
        literal = text[i + 1 : close]
        if "{" in literal:
            return DynamicValue("MustacheTag"), close + 1
        return StaticValue(literal, i + 1, close), close + 1
    if char == "{":
        close = _match_brace(text, i)
        return DynamicValue("MustacheTag"), close + 1
    match = _UNQUOTED_VALUE.match(text, i)
    if match is None:
        raise DocumentParseError(f"Invalid attribute value at offset {i}")
    end = match.end()
    if text.startswith("/>", end - 1):
        end -= 1
    literal = text[i:end]
    if "{" in literal:
        return DynamicValue("MustacheTag"), end
    return StaticValue(literal, i, end), end


def _match_brace(text: str, i: int) -> int:
    """Index of the ``}`` closing the expression opened at ``i``."""
    depth = 0
    quote = ""
    j = i
    while j < len(text):
        char = text[j]
        if quote:
            if char == "\\":
                j += 2
                continue
            if char == quote:
                quote = ""
        elif char in "\"'`":
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return j
        j += 1
    raise DocumentParseError(f"Unbalanced expression starting at offset {i}")


def line_of(text: str, offset: int) -> int:
    """1-based line number of ``offset``, for diagnostics."""
    return bisect.bisect_right(_line_starts(text), offset)
