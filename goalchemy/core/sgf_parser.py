"""SGF reading and writing.

Parses SGF text into a tree of SGFNode property bags and writes it back. Only the
first game of a collection is read. Values are kept as raw strings, unescaped; the
game tree layer decides what they mean.
"""

import logging
import re
from typing import Any, Dict, List, Optional

import chardet

from goalchemy.core.constants import DEFAULT_BOARD_SIZE
from goalchemy.core.errors import MalformedSgfError

_log = logging.getLogger(__name__)

_TOKEN = re.compile(
    r"""\s*(?:
        (?P<open>\()
        | (?P<close>\))
        | (?P<node>;)
        | (?P<ident>\w+) (?P<values>(?:\s*\[(?:[^\]\\]|\\.)*\])+)
    )""",
    re.DOTALL | re.VERBOSE,
)
_VALUE = re.compile(r"\[((?:[^\]\\]|\\.)*)\]", re.DOTALL)
_CHARSET = re.compile(rb"CA\[([^\]]*)\]")

# chardet names that decode better as a superset codec
_ENCODING_ALIASES = {"GB2312": "GBK"}


class ParseError(MalformedSgfError):
    """The text is not valid SGF."""

    pass


def escape_value(value: str) -> str:
    return re.sub(r"([\]\\])", r"\\\1", value)


def unescape_value(value: str) -> str:
    return re.sub(r"\\([\]\\])", r"\1", value)


class SGFNode:
    """Property bag with ordered children, as read from or written to SGF text."""

    def __init__(self, parent: Optional["SGFNode"] = None, properties: Optional[Dict[str, Any]] = None) -> None:
        self.parent = parent
        self.children: List[SGFNode] = []
        self.properties: Dict[str, List[str]] = {}
        for key, value in (properties or {}).items():
            self.set_property(key, value)
        if parent is not None:
            parent.children.append(self)

    def __repr__(self) -> str:
        return f"SGFNode({self.properties})"

    @property
    def root(self) -> "SGFNode":
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def add_list_property(self, key: str, values: List[str]) -> None:
        # long names of old SGF versions: AddBlack -> AB
        key = re.sub("[a-z]", "", key)
        self.properties.setdefault(key, []).extend(values)

    def set_property(self, key: str, value: Any) -> None:
        values = value if isinstance(value, list) else [value]
        self.properties[key] = [str(v) for v in values]

    def get_property(self, key: str, default: Any = None) -> Any:
        values = self.properties.get(key)
        return values[0] if values else default

    def get_list_property(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)

    @property
    def board_size(self) -> int:
        """Root SZ value, 19 when absent. Only square boards are supported."""
        size = str(self.root.get_property("SZ", DEFAULT_BOARD_SIZE))
        width, _, height = size.partition(":")
        try:
            width_value = int(width)
            height_value = int(height) if height else width_value
        except ValueError:
            raise MalformedSgfError(f"Invalid board size {size!r}")
        if width_value != height_value:
            raise MalformedSgfError(f"Rectangular board {size} is not supported")
        return width_value

    @property
    def nodes_in_tree(self) -> List["SGFNode"]:
        """This node and all its descendants, breadth first."""
        nodes = [self]
        for node in nodes:
            nodes.extend(node.children)
        return nodes

    def _node_text(self) -> str:
        return ";" + "".join(
            key + "".join(f"[{escape_value(v)}]" for v in values) for key, values in self.properties.items() if values
        )

    def sgf(self) -> str:
        """SGF text of the tree rooted here. A single child continues the sequence, several become variations."""
        parts = []
        pending: List[Any] = [")", self, "("]
        while pending:
            item = pending.pop()
            if isinstance(item, str):
                parts.append(item)
                continue
            parts.append(item._node_text())
            if len(item.children) == 1:
                pending.append(item.children[0])
            else:
                for child in reversed(item.children):
                    pending.extend([")", child, "("])
        return "".join(parts)


class SGF:
    DEFAULT_ENCODING = "UTF-8"

    def __init__(self, contents: str) -> None:
        self.contents = contents
        self.root = self._read()

    def _read(self) -> SGFNode:
        text = self.contents
        pos = text.find("(")
        if pos < 0:
            raise ParseError(f"Expected '(' at start of SGF, found {text[:50]!r}")

        root: Optional[SGFNode] = None
        current: Optional[SGFNode] = None
        branch_points: List[Optional[SGFNode]] = []
        opened = False
        while pos < len(text):
            token = _TOKEN.match(text, pos)
            if token is None:
                break
            pos = token.end()
            if token["open"]:
                branch_points.append(current)
                opened = True
            elif token["close"]:
                if not branch_points:
                    break
                current = branch_points.pop()
                if not branch_points:
                    return root if root is not None else SGFNode()
            elif token["node"]:
                # tolerate empty nodes (";;") and a trailing ";)" from old writers
                if not opened and current is not None:
                    if not current.properties or text[pos:].lstrip().startswith(")"):
                        continue
                current = SGFNode(parent=current)
                root = root or current
                opened = False
            else:
                if current is None:
                    raise ParseError(f"Property {token['ident']} outside of a node")
                values = [unescape_value(v) for v in _VALUE.findall(token["values"])]
                current.add_list_property(token["ident"], values)

        if pos < len(text) and text[pos:].strip():
            raise ParseError(f"Unexpected character at {text[pos:pos + 25]!r}")
        raise ParseError("Expected ')' at end of SGF")

    @classmethod
    def parse_sgf(cls, input_str: str) -> SGFNode:
        """Parses the first game of an SGF string."""
        return cls(input_str).root

    @classmethod
    def decode(cls, bin_contents: bytes, encoding: Optional[str] = None) -> str:
        """Decodes file contents with ``encoding``, else the CA property, else a detected encoding."""
        if not encoding:
            declared = _CHARSET.search(bin_contents)
            if declared:
                encoding = declared[1].decode("ascii", errors="ignore").strip()
            else:
                detected = chardet.detect(bin_contents[:300])["encoding"]
                encoding = _ENCODING_ALIASES.get(detected, detected) or cls.DEFAULT_ENCODING
                _log.debug("Detected encoding %s", encoding)
        try:
            return bin_contents.decode(encoding, errors="ignore")
        except LookupError:
            _log.debug("Unknown encoding %s, falling back to %s", encoding, cls.DEFAULT_ENCODING)
            return bin_contents.decode(cls.DEFAULT_ENCODING, errors="ignore")

    @classmethod
    def read_file(cls, filename: str, encoding: Optional[str] = None) -> str:
        with open(filename, "rb") as f:
            return cls.decode(f.read(), encoding)

    @classmethod
    def parse_file(cls, filename: str, encoding: Optional[str] = None) -> SGFNode:
        return cls.parse_sgf(cls.read_file(filename, encoding))
