"""Output document tree and the path expressions used to address it.

Documents are plain ``dict``/``list`` trees; insertion order of object keys
is significant because the action binder chains actions in that order.

Supported path grammar::

    $                   root (optional)
    .name               child
    ..name  ..*         deep scan, document order
    ['name'] ["name"]   bracket child
    .['name']           same as ['name']
    [n]                 array index (negative counts from the end)
    [*]  .*             every child
    [?(@.field == x)]   filter array elements (or object values); also !=

Filter literals are quoted strings, numbers, ``true``, ``false`` or ``null``.
"""

import json
import re
from functools import lru_cache
from typing import Any, Dict, Iterator, List, Optional, Tuple

from workflowgen.generator.errors import DocumentError, DuplicateKeyError, PathSyntaxError

_MISSING = object()
_FILTER_PATTERN = re.compile(r"^\s*@\.([^\s=!]+)\s*(==|!=)\s*(.+?)\s*$")
_NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?([eE][+-]?\d+)?$")


# ============================================================================
# PATH PARSING
# ============================================================================

def _read_name(path: str, position: int) -> Tuple[str, int]:
    end = position
    while end < len(path) and path[end] not in ".[":
        end += 1
    return path[position:end], end


def _read_quoted(path: str, position: int) -> Tuple[str, int]:
    quote = path[position]
    chars = []
    index = position + 1
    while index < len(path):
        char = path[index]
        if char == "\\" and index + 1 < len(path):
            chars.append(path[index + 1])
            index += 2
            continue
        if char == quote:
            return "".join(chars), index + 1
        chars.append(char)
        index += 1
    raise PathSyntaxError(path, position, "unterminated string")


def _parse_literal(path: str, position: int, text: str) -> Any:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
        return text[1:-1]
    if text == "true":
        return True
    if text == "false":
        return False
    if text == "null":
        return None
    if _NUMBER_PATTERN.match(text):
        return float(text) if any(c in text for c in ".eE") else int(text)
    raise PathSyntaxError(path, position, f"invalid literal {text!r}")


def _read_filter(path: str, position: int) -> Tuple[tuple, int]:
    # position points just after '[?'
    if position >= len(path) or path[position] != "(":
        raise PathSyntaxError(path, position, "expected '(' after '?'")
    index = position + 1
    quote = None
    while index < len(path):
        char = path[index]
        if quote:
            if char == "\\":
                index += 1
            elif char == quote:
                quote = None
        elif char in "'\"":
            quote = char
        elif char == ")":
            break
        index += 1
    else:
        raise PathSyntaxError(path, position, "unterminated filter")

    expression = path[position + 1:index]
    match = _FILTER_PATTERN.match(expression)
    if not match:
        raise PathSyntaxError(path, position, f"unsupported filter {expression!r}")

    field_path = tuple(match.group(1).split("."))
    literal = _parse_literal(path, position, match.group(3))
    index += 1
    if index >= len(path) or path[index] != "]":
        raise PathSyntaxError(path, index, "expected ']' after filter")
    return ("filter", field_path, match.group(2), literal), index + 1


def _read_bracket(path: str, position: int) -> Tuple[tuple, int]:
    index = position + 1
    if index >= len(path):
        raise PathSyntaxError(path, position, "unterminated bracket")

    char = path[index]
    if char in "'\"":
        name, index = _read_quoted(path, index)
        segment = ("child", name)
    elif char == "*":
        index += 1
        segment = ("wildcard",)
    elif char == "?":
        return _read_filter(path, index + 1)
    else:
        end = path.find("]", index)
        if end < 0:
            raise PathSyntaxError(path, position, "unterminated bracket")
        text = path[index:end].strip()
        if not re.match(r"^-?\d+$", text):
            raise PathSyntaxError(path, index, f"invalid index {text!r}")
        segment = ("index", int(text))
        index = end

    if index >= len(path) or path[index] != "]":
        raise PathSyntaxError(path, index, "expected ']'")
    return segment, index + 1


@lru_cache(maxsize=256)
def parse_path(path: str) -> Tuple[tuple, ...]:
    """Parse a path expression into a tuple of segments."""
    if not isinstance(path, str) or not path.strip():
        raise PathSyntaxError(str(path), 0, "empty path")

    path = path.strip()
    segments = []
    index = 1 if path.startswith("$") else 0

    while index < len(path):
        char = path[index]
        if path.startswith("..", index):
            if index + 2 < len(path) and path[index + 2] == "[":
                raise PathSyntaxError(path, index, "deep scan requires a name")
            name, index = _read_name(path, index + 2)
            if not name:
                raise PathSyntaxError(path, index, "deep scan requires a name")
            segments.append(("deep", name))
        elif path.startswith(".[", index):
            segment, index = _read_bracket(path, index + 1)
            segments.append(segment)
        elif char == ".":
            name, index = _read_name(path, index + 1)
            if not name:
                raise PathSyntaxError(path, index, "expected a name after '.'")
            segments.append(("wildcard",) if name == "*" else ("child", name))
        elif char == "[":
            segment, index = _read_bracket(path, index)
            segments.append(segment)
        elif index == 0:
            name, index = _read_name(path, 0)
            segments.append(("wildcard",) if name == "*" else ("child", name))
        else:
            raise PathSyntaxError(path, index, f"unexpected character {char!r}")

    return tuple(segments)


# ============================================================================
# EVALUATION
# ============================================================================

def _children(node: Any) -> Iterator[Any]:
    if isinstance(node, dict):
        yield from node.values()
    elif isinstance(node, list):
        yield from node


def _deep_scan(node: Any, name: str) -> Iterator[Any]:
    if isinstance(node, dict):
        for key, value in node.items():
            if name == "*" or key == name:
                yield value
            yield from _deep_scan(value, name)
    elif isinstance(node, list):
        for item in node:
            if name == "*":
                yield item
            yield from _deep_scan(item, name)


def _field_value(node: Any, field_path: Tuple[str, ...]) -> Any:
    for part in field_path:
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node


def _equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _apply(segment: tuple, node: Any) -> Iterator[Any]:
    kind = segment[0]
    if kind == "child":
        if isinstance(node, dict) and segment[1] in node:
            yield node[segment[1]]
    elif kind == "index":
        if isinstance(node, list):
            try:
                yield node[segment[1]]
            except IndexError:
                return
    elif kind == "wildcard":
        yield from _children(node)
    elif kind == "deep":
        yield from _deep_scan(node, segment[1])
    elif kind == "filter":
        _, field_path, operator, literal = segment
        for child in _children(node):
            value = _field_value(child, field_path)
            if value is _MISSING:
                continue
            if _equals(value, literal) == (operator == "=="):
                yield child


def select_all(node: Any, path: str) -> List[Any]:
    """Return every node matched by ``path``, in document order."""
    current = [node]
    for segment in parse_path(path):
        current = [match for item in current for match in _apply(segment, item)]
        if not current:
            break
    return current


def select(node: Any, path: str) -> Optional[Any]:
    """Return the first node matched by ``path`` or None."""
    matches = select_all(node, path)
    return matches[0] if matches else None


# ============================================================================
# MUTATION
# ============================================================================

def append(node: Dict[str, Any], key: str, value: Any) -> None:
    """Add ``key`` to ``node``; an existing key is an error."""
    if not isinstance(node, dict):
        raise DocumentError(f"Cannot add property '{key}' to a {type(node).__name__}")
    if key in node:
        raise DuplicateKeyError(key)
    node[key] = value


def append_if_absent(node: Dict[str, Any], key: str, value: Any) -> bool:
    """Add ``key`` unless already present; returns True if it was added."""
    if not isinstance(node, dict):
        raise DocumentError(f"Cannot add property '{key}' to a {type(node).__name__}")
    if key in node:
        return False
    node[key] = value
    return True


def merge_missing(existing: Dict[str, Any], incoming: Dict[str, Any]) -> List[str]:
    """Copy keys of ``incoming`` that ``existing`` lacks. First write wins."""
    added = []
    for key, value in incoming.items():
        if key not in existing:
            existing[key] = value
            added.append(key)
    return added


def first_property(obj: Any) -> Optional[Tuple[str, Any]]:
    """First ``(name, value)`` pair of an object, or None."""
    if isinstance(obj, dict):
        for key, value in obj.items():
            return key, value
    return None


class Document:
    """A generated document owned by one process manager."""

    def __init__(self, root: Dict[str, Any]):
        if not isinstance(root, dict):
            raise DocumentError("A document root must be an object")
        self.root = root

    def resolve(self, path: str) -> Optional[Any]:
        return select(self.root, path)

    def resolve_object(self, path: str) -> Optional[Dict[str, Any]]:
        """Like resolve, but only returns object nodes."""
        node = self.resolve(path)
        return node if isinstance(node, dict) else None

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.root, indent=indent, ensure_ascii=False)
