"""
reader.py - Line-delimited JSON message reader

Reads one message per line from the inbound stream (stdin by default).
Single pass, forward only: once the stream is exhausted or a unit fails to
decode, the reader is done.
"""

import logging
from typing import IO, Iterator, Optional, Union

from .errors import DecodeError, TransportError
from .message import Message, PayloadSet

logger = logging.getLogger(__name__)


class MessageReader:
    """
    Lazily decodes messages from a text or binary stream.

    Usage:
        reader = MessageReader(sys.stdin, payloads)
        for message in reader:
            handle(message)
    """

    def __init__(self, stream: IO, payloads: PayloadSet):
        """
        Args:
            stream: Inbound stream (text or binary, line oriented)
            payloads: Variants accepted in message bodies
        """
        self.stream = stream
        self.payloads = payloads
        self.units_read = 0

    def _read_line(self) -> Union[str, bytes]:
        try:
            return self.stream.readline()
        except UnicodeDecodeError as e:
            raise DecodeError(f"inbound data is not valid UTF-8: {e}", repr(e.object)) from e
        except OSError as e:
            raise TransportError(f"Reading input failed: {e}") from e

    def recv(self) -> Optional[Message]:
        """
        Block until the next message is available.

        Returns:
            The decoded message, or None at end-of-stream

        Raises:
            DecodeError: If the unit is not a valid message
            TransportError: If the read itself fails
        """
        while True:
            line = self._read_line()
            if not line:
                return None

            if isinstance(line, bytes):
                try:
                    line = line.decode('utf-8')
                except UnicodeDecodeError as e:
                    raise DecodeError(f"inbound data is not valid UTF-8: {e}", repr(line)) from e

            text = line.rstrip('\r\n')
            # Whitespace-only lines carry no unit
            if not text.strip():
                continue

            self.units_read += 1
            message = Message.from_json(text, self.payloads)
            logger.debug(f"Received: {text}")
            return message

    def __iter__(self) -> Iterator[Message]:
        return self

    def __next__(self) -> Message:
        message = self.recv()
        if message is None:
            raise StopIteration
        return message
