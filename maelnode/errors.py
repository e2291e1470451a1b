"""
errors.py - Node error taxonomy

Every condition in this module is fatal to the node loop. Errors propagate
out of Node.run() and the entry point turns them into a non-zero exit status.
"""

from typing import Optional


class NodeError(Exception):
    """Base class for all fatal node errors."""


class TransportError(NodeError):
    """Reading from stdin or writing to stdout failed."""


class DecodeError(NodeError):
    """
    An inbound unit is not valid JSON or does not match the message shape.

    Attributes:
        raw: The offending line as received (without trailing newline)
    """

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw

    def __str__(self):
        base = super().__str__()
        if self.raw is None:
            return base
        return f"{base} (input: {self.raw!r})"


class EncodeError(NodeError):
    """An outbound message could not be serialized to JSON."""


class ProtocolError(NodeError):
    """The init handshake was violated (missing, out of order or repeated)."""


class StepError(NodeError):
    """The state machine failed while processing a message."""
