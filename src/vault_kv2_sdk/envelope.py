"""
Response envelope decoding.

Every reply from the secret store shares one outer shape (``request_id``,
``data``, ``warnings``, ``errors``...) while the contents of ``data`` vary by
endpoint. Rather than declaring a schema per endpoint, the body is decoded
into a small tagged value tree and callers pull typed values out of it by
dot path::

    envelope.extract(int, "data.metadata.version")
    envelope.extract(List[str], "data.keys")
    envelope.extract(SecretMetadata, "data")
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union, get_args, get_origin

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .exceptions import NavigationError, NavigationErrorKind

logger = logging.getLogger(__name__)


class ValueKind(str, Enum):
    """Variant tags of a decoded JSON value."""
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    MAP = "map"


@dataclass(frozen=True)
class Node:
    """One node of a decoded value tree.

    ``value`` holds a Python scalar for scalar kinds, a tuple of nodes for
    ``LIST`` and a dict of nodes for ``MAP``.
    """

    kind: ValueKind
    value: Any = None

    @classmethod
    def from_json(cls, obj: Any) -> "Node":
        if obj is None:
            return cls(ValueKind.NULL)
        if isinstance(obj, bool):
            return cls(ValueKind.BOOL, obj)
        if isinstance(obj, (int, float)):
            return cls(ValueKind.NUMBER, obj)
        if isinstance(obj, str):
            return cls(ValueKind.STRING, obj)
        if isinstance(obj, (list, tuple)):
            return cls(ValueKind.LIST, tuple(cls.from_json(item) for item in obj))
        if isinstance(obj, dict):
            return cls(ValueKind.MAP, {str(k): cls.from_json(v) for k, v in obj.items()})
        raise TypeError(f"Cannot build a value node from {type(obj).__name__}")

    def child(self, name: str) -> Optional["Node"]:
        """Return the named field of a map node, or None."""
        if self.kind is not ValueKind.MAP:
            return None
        return self.value.get(name)

    def to_python(self) -> Any:
        if self.kind is ValueKind.LIST:
            return [item.to_python() for item in self.value]
        if self.kind is ValueKind.MAP:
            return {k: v.to_python() for k, v in self.value.items()}
        return self.value


NULL_NODE = Node(ValueKind.NULL)

_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp, trimming sub-microsecond precision.

    Empty strings and None mean "not set" and return None.
    """
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected a timestamp string, got {type(value).__name__}")
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


# Converters

Converter = Callable[[Node], Any]


class _Mismatch(Exception):
    pass


def _to_int(node: Node) -> int:
    if node.kind is ValueKind.NUMBER:
        if isinstance(node.value, float) and not node.value.is_integer():
            raise _Mismatch(f"{node.value!r} is not an integer")
        return int(node.value)
    if node.kind is ValueKind.STRING:
        text = node.value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            raise _Mismatch(f"{node.value!r} is not an integer")
        if not number.is_integer():
            raise _Mismatch(f"{node.value!r} is not an integer")
        return int(number)
    raise _Mismatch(f"expected a number, found {node.kind.value}")


def _to_float(node: Node) -> float:
    if node.kind is ValueKind.NUMBER:
        return float(node.value)
    if node.kind is ValueKind.STRING:
        try:
            return float(node.value.strip())
        except ValueError:
            raise _Mismatch(f"{node.value!r} is not a number")
    raise _Mismatch(f"expected a number, found {node.kind.value}")


def _to_str(node: Node) -> str:
    if node.kind is ValueKind.STRING:
        return node.value
    if node.kind is ValueKind.NUMBER:
        return str(node.value)
    raise _Mismatch(f"expected a string, found {node.kind.value}")


def _to_bool(node: Node) -> bool:
    if node.kind is ValueKind.BOOL:
        return node.value
    if node.kind is ValueKind.STRING and node.value.lower() in ("true", "false"):
        return node.value.lower() == "true"
    raise _Mismatch(f"expected a boolean, found {node.kind.value}")


def _to_datetime(node: Node) -> Optional[datetime]:
    if node.kind is ValueKind.NULL:
        return None
    if node.kind is not ValueKind.STRING:
        raise _Mismatch(f"expected a timestamp, found {node.kind.value}")
    try:
        return parse_timestamp(node.value)
    except ValueError as e:
        raise _Mismatch(str(e))


def _to_dict(node: Node) -> Dict[str, Any]:
    if node.kind is not ValueKind.MAP:
        raise _Mismatch(f"expected a map, found {node.kind.value}")
    return node.to_python()


def _to_list(node: Node) -> List[Any]:
    if node.kind is not ValueKind.LIST:
        raise _Mismatch(f"expected a list, found {node.kind.value}")
    return node.to_python()


class AttributeMap(Dict[str, str]):
    """Shape of a string map whose non-string values are rendered as JSON text.

    Secrets written by other clients may hold booleans, numbers or nested
    values; they read back as ``"true"``, ``"5432"`` or ``'{"k": 1}'``.
    """


def _to_text(node: Node) -> str:
    if node.kind is ValueKind.STRING:
        return node.value
    return json.dumps(node.to_python())


def _to_attributes(node: Node) -> Dict[str, str]:
    if node.kind is not ValueKind.MAP:
        raise _Mismatch(f"expected a map, found {node.kind.value}")
    return {k: _to_text(v) for k, v in node.value.items()}


_CONVERTERS: Dict[Any, Converter] = {
    int: _to_int,
    float: _to_float,
    str: _to_str,
    bool: _to_bool,
    datetime: _to_datetime,
    dict: _to_dict,
    list: _to_list,
    AttributeMap: _to_attributes,
}


def register_converter(shape: Any, converter: Converter) -> None:
    """Register (or replace) the converter used for ``shape``."""
    _CONVERTERS[shape] = converter


def convert(node: Node, shape: Any) -> Any:
    """Convert ``node`` into ``shape`` or raise ``_Mismatch``."""
    converter = _CONVERTERS.get(shape)
    if converter is not None:
        return converter(node)

    origin = get_origin(shape)
    args = get_args(shape)

    if origin is Union:
        if node.kind is ValueKind.NULL and type(None) in args:
            return None
        for arg in args:
            if arg is type(None):
                continue
            try:
                return convert(node, arg)
            except _Mismatch:
                continue
        raise _Mismatch(f"value does not match any of {shape}")

    if origin in (list, List):
        if node.kind is not ValueKind.LIST:
            raise _Mismatch(f"expected a list, found {node.kind.value}")
        item_shape = args[0] if args else Any
        return [convert(item, item_shape) for item in node.value]

    if origin in (dict, Dict):
        if node.kind is not ValueKind.MAP:
            raise _Mismatch(f"expected a map, found {node.kind.value}")
        value_shape = args[1] if len(args) == 2 else Any
        return {k: convert(v, value_shape) for k, v in node.value.items()}

    if shape is Any:
        return node.to_python()

    if isinstance(shape, type) and issubclass(shape, BaseModel):
        if node.kind is not ValueKind.MAP:
            raise _Mismatch(f"expected a map for {shape.__name__}, found {node.kind.value}")
        try:
            return shape.model_validate(node.to_python())
        except PydanticValidationError as e:
            raise _Mismatch(str(e))

    raise _Mismatch(f"no converter registered for {shape!r}")


class ResponseEnvelope:
    """
    A status code plus a lazily decoded response body.
    """

    def __init__(self, status_code: int, body: Union[bytes, str, None] = None):
        self.status_code = status_code
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        self.text: str = body or ""
        self._tree: Optional[Node] = None
        self._decoded = False

    def __repr__(self) -> str:
        return f"<ResponseEnvelope status={self.status_code}>"

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_json(self) -> bool:
        return self._decode() is not None

    @property
    def tree(self) -> Node:
        """The decoded body; a null node when the body is empty or not JSON."""
        return self._decode() or NULL_NODE

    def _decode(self) -> Optional[Node]:
        if not self._decoded:
            self._decoded = True
            if self.text.strip():
                try:
                    self._tree = Node.from_json(json.loads(self.text))
                except ValueError:
                    logger.debug(f"Response body with status {self.status_code} is not JSON")
        return self._tree

    def _walk(self, path: str) -> Node:
        node = self.tree
        if not path:
            return node
        walked = []
        for segment in path.split("."):
            walked.append(segment)
            if node.kind is not ValueKind.MAP:
                raise NavigationError(
                    f"Cannot descend into '{segment}': '{'.'.join(walked[:-1]) or '<root>'}' is a {node.kind.value}",
                    NavigationErrorKind.PATH_NOT_FOUND,
                    path,
                )
            child = node.child(segment)
            if child is None:
                raise NavigationError(
                    f"Field '{'.'.join(walked)}' not found",
                    NavigationErrorKind.PATH_NOT_FOUND,
                    path,
                )
            node = child
        return node

    def has_field(self, path: str) -> bool:
        try:
            self._walk(path)
        except NavigationError:
            return False
        return True

    def extract(self, shape: Any, path: str = "") -> Any:
        """
        Navigate to ``path`` and convert the value found there into ``shape``.

        Args:
            shape: Target type (scalar, typed list/dict, or pydantic model)
            path: Dot separated field names; empty for the whole body

        Raises:
            NavigationError: The path is missing or the value has the wrong type
        """
        node = self._walk(path)
        try:
            return convert(node, shape)
        except _Mismatch as e:
            raise NavigationError(
                f"Value at '{path or '<root>'}' cannot be read as {getattr(shape, '__name__', shape)}: {e}",
                NavigationErrorKind.TYPE_MISMATCH,
                path,
            )

    @property
    def request_id(self) -> Optional[str]:
        node = self.tree.child("request_id")
        return node.value if node is not None and node.kind is ValueKind.STRING else None

    @property
    def warnings(self) -> List[str]:
        node = self.tree.child("warnings")
        if node is None or node.kind is not ValueKind.LIST:
            return []
        return [item.value for item in node.value if item.kind is ValueKind.STRING]

    def error_messages(self) -> List[str]:
        """Error strings from the body, falling back to the raw text."""
        node = self.tree.child("errors")
        if node is not None and node.kind is ValueKind.LIST:
            return [_to_str(item) for item in node.value if item.kind in (ValueKind.STRING, ValueKind.NUMBER)]
        if not self.is_json and self.text.strip():
            return [self.text.strip()]
        return []

    @property
    def message(self) -> str:
        return "; ".join(self.error_messages())
