"""
message.py - Message envelope and payload model

Wire format (one JSON object per line):
    {"src": "c1", "dest": "n1",
     "body": {"msg_id": 1, "in_reply_to": 0, "type": "echo", "echo": "hi"}}

Design:
    - Message and Body are frozen; a reply is always a new Message
    - Each payload variant is a frozen dataclass with a TYPE tag
    - A PayloadSet is the closed set of variants one node program speaks,
      keyed by the "type" discriminator
    - Init / InitOk are reserved and owned by the node orchestrator
"""

import json
from dataclasses import dataclass, fields, replace, MISSING
from typing import (
    Any, ClassVar, Dict, Iterator, List, Optional, Type, Union,
    get_args, get_origin, get_type_hints
)

from .errors import DecodeError, EncodeError


# Keys owned by the body envelope; payload fields may not reuse them
BODY_KEYS = ('type', 'msg_id', 'in_reply_to')

# Field annotations a payload may use: JSON scalars, Any, Optional/Union,
# and List[...] / Dict[str, ...] of those
JSON_SCALARS = (str, int, float, bool)


def _supported(hint: Any) -> bool:
    """Check a field annotation maps onto JSON values."""
    if hint is Any or hint is type(None) or hint in JSON_SCALARS or hint in (list, dict):
        return True

    origin = get_origin(hint)
    args = get_args(hint)
    if origin is Union:
        return all(_supported(arg) for arg in args)
    if origin is list:
        return all(_supported(arg) for arg in args)
    if origin is dict:
        return not args or (args[0] is str and _supported(args[1]))
    return False


def _matches(value: Any, hint: Any) -> bool:
    """Check a decoded JSON value against a supported field annotation."""
    if hint is Any:
        return True
    if hint is type(None):
        return value is None

    origin = get_origin(hint)
    if origin is Union:
        return any(_matches(value, arg) for arg in get_args(hint))
    if origin in (list, List):
        if not isinstance(value, list):
            return False
        args = get_args(hint)
        return not args or all(_matches(item, args[0]) for item in value)
    if origin in (dict, Dict):
        if not isinstance(value, dict):
            return False
        args = get_args(hint)
        return not args or all(_matches(item, args[1]) for item in value.values())

    # bool is a subclass of int; JSON keeps them apart
    if hint is bool:
        return isinstance(value, bool)
    if hint is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if hint is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if hint in (str, list, dict):
        return isinstance(value, hint)
    raise TypeError(f"Unsupported payload field annotation: {hint!r}")


def _reject_constant(name: str):
    # json.loads accepts NaN/Infinity by default; they are not JSON
    raise ValueError(f"non-standard JSON constant {name}")


@dataclass(frozen=True)
class Payload:
    """
    Base class for payload variants.

    Subclasses are frozen dataclasses that set TYPE to their wire tag:

        @dataclass(frozen=True)
        class Echo(Payload):
            TYPE = "echo"
            echo: str
    """
    TYPE: ClassVar[str] = ""

    def to_dict(self) -> Dict[str, Any]:
        """Flatten to the body fields, discriminator first."""
        data = {'type': self.TYPE}
        for f in fields(self):
            data[f.name] = getattr(self, f.name)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], raw: Optional[str] = None) -> 'Payload':
        """
        Build the variant from body fields.

        Fields the variant does not declare are ignored.

        Raises:
            DecodeError: If a declared field is missing or has the wrong type
        """
        hints = get_type_hints(cls)
        kwargs = {}
        for f in fields(cls):
            if f.name not in data:
                if f.default is MISSING and f.default_factory is MISSING:
                    raise DecodeError(f"'{cls.TYPE}' body missing field '{f.name}'", raw)
                continue
            value = data[f.name]
            if not _matches(value, hints[f.name]):
                raise DecodeError(
                    f"'{cls.TYPE}' field '{f.name}' has wrong type "
                    f"({type(value).__name__})",
                    raw
                )
            kwargs[f.name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class Init(Payload):
    """Handshake request: this node's id and the full cluster membership."""
    TYPE = "init"
    node_id: str
    node_ids: List[str]


@dataclass(frozen=True)
class InitOk(Payload):
    """Handshake acknowledgment."""
    TYPE = "init_ok"


class PayloadSet:
    """
    Closed set of payload variants, keyed by their TYPE tag.

    Usage:
        payloads = PayloadSet(Echo, EchoOk)
        payload = payloads.decode({"type": "echo", "echo": "hi"})
    """

    def __init__(self, *variants: Type[Payload]):
        self._variants: Dict[str, Type[Payload]] = {}
        for variant in variants:
            self._add(variant)

    def _add(self, variant: Type[Payload]):
        if not (isinstance(variant, type) and issubclass(variant, Payload)):
            raise TypeError(f"Payload variants must subclass Payload, got {variant!r}")
        tag = variant.TYPE
        if not isinstance(tag, str) or not tag:
            raise ValueError(f"{variant.__name__} must define a non-empty TYPE tag")
        if tag in self._variants:
            raise ValueError(
                f"Duplicate payload type '{tag}': "
                f"{self._variants[tag].__name__} and {variant.__name__}"
            )
        for f in fields(variant):
            if f.name in BODY_KEYS:
                raise ValueError(f"{variant.__name__}: field name '{f.name}' is reserved")
        hints = get_type_hints(variant)
        for f in fields(variant):
            if not _supported(hints[f.name]):
                raise TypeError(
                    f"{variant.__name__}: field '{f.name}' has unsupported type {hints[f.name]!r}"
                )
        self._variants[tag] = variant

    @property
    def tags(self) -> List[str]:
        return list(self._variants)

    def __contains__(self, tag: str) -> bool:
        return tag in self._variants

    def __iter__(self) -> Iterator[Type[Payload]]:
        return iter(self._variants.values())

    def __len__(self) -> int:
        return len(self._variants)

    def __repr__(self):
        return f"PayloadSet({', '.join(self._variants)})"

    def merge(self, other: 'PayloadSet') -> 'PayloadSet':
        """
        Combine two sets into a new one.

        Raises:
            ValueError: If a tag appears in both sets
        """
        return PayloadSet(*self, *other)

    def decode(self, body: Dict[str, Any], raw: Optional[str] = None) -> Payload:
        """
        Decode the payload part of a body using its "type" discriminator.

        Raises:
            DecodeError: If the tag is missing or unknown, or fields don't match
        """
        tag = body.get('type')
        if not isinstance(tag, str):
            raise DecodeError("body missing string field 'type'", raw)
        variant = self._variants.get(tag)
        if variant is None:
            raise DecodeError(f"unknown payload type '{tag}'", raw)
        return variant.from_dict(body, raw)


INIT_PAYLOADS = PayloadSet(Init, InitOk)


def _optional_uint(data: Dict[str, Any], key: str, raw: Optional[str]) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise DecodeError(f"body field '{key}' must be an unsigned integer, got {value!r}", raw)
    return value


@dataclass(frozen=True)
class Body:
    """Sequence metadata plus the application payload."""
    payload: Payload
    msg_id: Optional[int] = None
    in_reply_to: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.msg_id is not None:
            data['msg_id'] = self.msg_id
        if self.in_reply_to is not None:
            data['in_reply_to'] = self.in_reply_to
        data.update(self.payload.to_dict())
        return data

    @staticmethod
    def from_dict(data: Any, payloads: PayloadSet, raw: Optional[str] = None) -> 'Body':
        if not isinstance(data, dict):
            raise DecodeError("'body' must be a JSON object", raw)
        return Body(
            payload=payloads.decode(data, raw),
            msg_id=_optional_uint(data, 'msg_id', raw),
            in_reply_to=_optional_uint(data, 'in_reply_to', raw)
        )


@dataclass(frozen=True)
class Message:
    """
    Message envelope.

    Attributes:
        src: Sender node id
        dest: Receiver node id
        body: Sequence metadata and payload
    """
    src: str
    dest: str
    body: Body

    @property
    def payload(self) -> Payload:
        return self.body.payload

    @property
    def msg_id(self) -> Optional[int]:
        return self.body.msg_id

    @property
    def in_reply_to(self) -> Optional[int]:
        return self.body.in_reply_to

    def reply(self, payload: Payload) -> 'Message':
        """
        Build a reply to this message.

        src/dest are swapped and in_reply_to is set to this message's msg_id
        (left unset when this message has none). msg_id is left for the
        writer to assign.
        """
        return Message(
            src=self.dest,
            dest=self.src,
            body=Body(payload=payload, in_reply_to=self.body.msg_id)
        )

    def with_msg_id(self, msg_id: int) -> 'Message':
        return replace(self, body=replace(self.body, msg_id=msg_id))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'src': self.src,
            'dest': self.dest,
            'body': self.body.to_dict()
        }

    def to_json(self) -> str:
        """
        Serialize to one compact JSON line (no trailing newline).

        Raises:
            EncodeError: If the payload holds values JSON can't represent
        """
        try:
            return json.dumps(self.to_dict(), separators=(',', ':'), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise EncodeError(f"Cannot serialize '{self.payload.TYPE}' message: {e}") from e

    @staticmethod
    def from_dict(data: Any, payloads: PayloadSet, raw: Optional[str] = None) -> 'Message':
        """
        Create Message from a decoded JSON value.

        Raises:
            DecodeError: If the value doesn't match the envelope shape
        """
        if not isinstance(data, dict):
            raise DecodeError(f"message must be a JSON object, got {type(data).__name__}", raw)
        for key in ('src', 'dest'):
            if not isinstance(data.get(key), str):
                raise DecodeError(f"message missing string field '{key}'", raw)
        if 'body' not in data:
            raise DecodeError("message missing field 'body'", raw)
        return Message(
            src=data['src'],
            dest=data['dest'],
            body=Body.from_dict(data['body'], payloads, raw)
        )

    @staticmethod
    def from_json(text: str, payloads: PayloadSet) -> 'Message':
        """
        Parse one JSON unit.

        Raises:
            DecodeError: On invalid JSON or a shape mismatch
        """
        try:
            data = json.loads(text, parse_constant=_reject_constant)
        except ValueError as e:
            raise DecodeError(f"invalid JSON: {e}", text) from e
        return Message.from_dict(data, payloads, text)
