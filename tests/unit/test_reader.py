"""
test_reader.py - Unit Tests for MessageReader

Uses StringIO/BytesIO in place of stdin.
"""

import sys
from dataclasses import dataclass
from io import BytesIO, StringIO, TextIOWrapper
from pathlib import Path

import pytest

# Add project root to path
_project_root = Path(__file__).parent.parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from maelnode.errors import DecodeError, TransportError
from maelnode.message import INIT_PAYLOADS, Init, Payload, PayloadSet
from maelnode.reader import MessageReader


@dataclass(frozen=True)
class Echo(Payload):
    TYPE = "echo"
    echo: str


PAYLOADS = INIT_PAYLOADS.merge(PayloadSet(Echo))

INIT_LINE = '{"src":"c1","dest":"n1","body":{"msg_id":1,"type":"init","node_id":"n1","node_ids":["n1"]}}\n'


def echo_line(msg_id, text):
    return f'{{"src":"c1","dest":"n1","body":{{"msg_id":{msg_id},"type":"echo","echo":"{text}"}}}}\n'


class FailingStream:
    """Stream whose reads fail like a broken pipe."""

    def readline(self):
        raise OSError(5, "Input/output error")


class TestMessageReader:
    """Test MessageReader decoding and stream handling."""

    def test_empty_stream(self):
        """Test zero bytes of input means end-of-stream."""
        reader = MessageReader(StringIO(""), PAYLOADS)

        assert reader.recv() is None
        assert list(reader) == []

    def test_reads_one_message_per_line(self):
        """Test each line decodes to one message, in order."""
        stream = StringIO(INIT_LINE + echo_line(2, "a") + echo_line(3, "b"))
        reader = MessageReader(stream, PAYLOADS)

        messages = list(reader)

        assert len(messages) == 3
        assert isinstance(messages[0].payload, Init)
        assert [m.payload.echo for m in messages[1:]] == ["a", "b"]
        assert [m.msg_id for m in messages] == [1, 2, 3]
        assert reader.units_read == 3

    def test_last_line_without_newline(self):
        """Test a final unit without trailing newline is still read."""
        reader = MessageReader(StringIO(echo_line(1, "x").rstrip('\n')), PAYLOADS)

        message = reader.recv()

        assert message.payload == Echo(echo="x")
        assert reader.recv() is None

    def test_crlf_line_endings(self):
        """Test CRLF-terminated lines decode."""
        reader = MessageReader(StringIO(echo_line(1, "x").replace('\n', '\r\n')), PAYLOADS)

        assert reader.recv().payload == Echo(echo="x")

    def test_blank_lines_skipped(self):
        """Test whitespace-only lines are not units."""
        reader = MessageReader(StringIO("\n  \n" + echo_line(1, "x") + "\n"), PAYLOADS)

        messages = list(reader)

        assert len(messages) == 1
        assert reader.units_read == 1

    def test_lazy_reading(self):
        """Test the reader consumes only one line per recv()."""
        stream = StringIO(echo_line(1, "a") + echo_line(2, "b"))
        reader = MessageReader(stream, PAYLOADS)

        reader.recv()

        assert stream.readline() == echo_line(2, "b")

    def test_malformed_line(self):
        """Test invalid JSON raises DecodeError with the raw text."""
        reader = MessageReader(StringIO("not json\n"), PAYLOADS)

        with pytest.raises(DecodeError) as exc_info:
            reader.recv()

        assert exc_info.value.raw == "not json"

    def test_decode_failure_stops_before_next_unit(self):
        """Test a bad unit k leaves unit k+1 unread."""
        stream = StringIO(echo_line(1, "a") + "{broken\n" + echo_line(3, "c"))
        reader = MessageReader(stream, PAYLOADS)
        seen = []

        with pytest.raises(DecodeError):
            for message in reader:
                seen.append(message.payload.echo)

        assert seen == ["a"]
        assert stream.readline() == echo_line(3, "c")

    def test_unknown_payload_type(self):
        """Test a variant outside the payload set is a decode error."""
        line = '{"src":"c1","dest":"n1","body":{"msg_id":1,"type":"generate"}}\n'
        reader = MessageReader(StringIO(line), PAYLOADS)

        with pytest.raises(DecodeError, match="unknown payload type 'generate'"):
            reader.recv()

    def test_binary_stream(self):
        """Test bytes input is decoded as UTF-8."""
        line = echo_line(1, "héllo").encode('utf-8')
        reader = MessageReader(BytesIO(line), PAYLOADS)

        assert reader.recv().payload == Echo(echo="héllo")

    def test_binary_stream_invalid_utf8(self):
        """Test invalid UTF-8 is a decode error."""
        reader = MessageReader(BytesIO(b'{"src":"\xff"}\n'), PAYLOADS)

        with pytest.raises(DecodeError, match="UTF-8"):
            reader.recv()

    def test_text_stream_invalid_utf8(self):
        """Test a strict text stream failing to decode reports the raw bytes."""
        stream = TextIOWrapper(BytesIO(b'{"src":"\xff"}\n'), encoding='utf-8')
        reader = MessageReader(stream, PAYLOADS)

        with pytest.raises(DecodeError, match="UTF-8") as exc_info:
            reader.recv()

        assert exc_info.value.raw is not None
        assert "\\xff" in exc_info.value.raw

    def test_read_failure(self):
        """Test an OSError from the stream becomes TransportError."""
        reader = MessageReader(FailingStream(), PAYLOADS)

        with pytest.raises(TransportError, match="Reading input failed"):
            reader.recv()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
