"""
writer.py - Line-delimited JSON message writer

The writer is the only component that touches the outbound stream. It owns
the msg_id counter: ids start at 0 and go up by one per message sent.
"""

import logging
from typing import IO

from .errors import TransportError
from .message import Message, Payload

logger = logging.getLogger(__name__)


class MessageWriter:
    """
    Stamps outbound messages with a msg_id and writes them one per line.

    Usage:
        writer = MessageWriter(sys.stdout)
        writer.send(message.reply(EchoOk(echo=message.payload.echo)))
    """

    def __init__(self, stream: IO):
        """
        Args:
            stream: Outbound text stream (stdout by default)
        """
        self.stream = stream
        self.next_msg_id = 0
        self.sent_count = 0

    def send(self, message: Message) -> Message:
        """
        Assign the next msg_id and write the message.

        Args:
            message: Message to send (any msg_id it carries is overwritten)

        Returns:
            The message as written, with its assigned msg_id

        Raises:
            EncodeError: If the payload can't be serialized
            TransportError: If writing or flushing the stream fails
        """
        stamped = message.with_msg_id(self.next_msg_id)
        line = stamped.to_json()
        self.next_msg_id += 1

        try:
            self.stream.write(line + '\n')
            self.stream.flush()
        except (OSError, ValueError) as e:
            # ValueError: write to a closed file
            raise TransportError(f"Writing output failed: {e}") from e

        self.sent_count += 1
        logger.debug(f"Sent: {line}")
        return stamped

    def reply(self, original: Message, payload: Payload) -> Message:
        """Send payload as a reply to original."""
        return self.send(original.reply(payload))
