"""
test_cli.py - Unit Tests for the run_node entry point

Checks argument handling and the mapping of outcomes to exit status.
"""

import json
import sys
from io import StringIO
from pathlib import Path

import pytest

# Add project root to path
_project_root = Path(__file__).parent.parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from maelnode.cli import build_parser, resolve_config, run_node
from maelnode.examples.echo_node import EchoNode
from maelnode.state_machine import StateMachine
from maelnode.message import INIT_PAYLOADS

INIT_LINE = '{"src":"c1","dest":"n1","body":{"msg_id":1,"type":"init","node_id":"n1","node_ids":["n1"]}}\n'
ECHO_LINE = '{"src":"c1","dest":"n1","body":{"msg_id":2,"type":"echo","echo":"hello"}}\n'


def run_with(text, argv=None, machine_cls=EchoNode):
    stdout = StringIO()
    status = run_node(machine_cls, argv=argv or [], stdin=StringIO(text), stdout=stdout)
    return status, stdout.getvalue()


class Interrupted(StateMachine):
    """Machine that simulates Ctrl-C during its first step."""

    payloads = EchoNode.payloads

    def step(self, message, writer):
        raise KeyboardInterrupt


class TestArguments:
    """Test command-line parsing."""

    def test_defaults(self):
        """Test no arguments means default config."""
        args = build_parser().parse_args([])

        config = resolve_config(args)

        assert config.reinit_policy == 'reject'
        assert config.log_level == 'INFO'

    def test_flags_override_file(self, tmp_path):
        """Test --reinit and --verbose override the config file."""
        path = tmp_path / "node.yaml"
        path.write_text("node:\n  reinit_policy: reject\n  log_level: ERROR\n")

        args = build_parser().parse_args(["--config", str(path), "--reinit", "ignore", "-v"])
        config = resolve_config(args)

        assert config.reinit_policy == 'ignore'
        assert config.log_level == 'DEBUG'

    def test_invalid_reinit_choice(self):
        """Test argparse rejects unknown policies."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--reinit", "maybe"])


class TestExitStatus:
    """Test run_node exit status."""

    def test_clean_run(self):
        """Test clean end-of-stream after init exits 0."""
        status, output = run_with(INIT_LINE + ECHO_LINE)

        assert status == 0
        lines = output.splitlines()
        assert json.loads(lines[1]) == {
            'src': 'n1',
            'dest': 'c1',
            'body': {'msg_id': 1, 'in_reply_to': 2, 'type': 'echo_ok', 'echo': 'hello'}
        }

    def test_no_input(self):
        """Test zero bytes of input exits non-zero."""
        status, output = run_with("")

        assert status == 1
        assert output == ""

    def test_malformed_input(self):
        """Test a malformed line after init exits non-zero with no reply."""
        status, output = run_with(INIT_LINE + "not json\n")

        assert status == 1
        assert len(output.splitlines()) == 1

    def test_repeated_init(self):
        """Test a second init exits non-zero by default, 0 when ignored."""
        assert run_with(INIT_LINE + INIT_LINE)[0] == 1
        assert run_with(INIT_LINE + INIT_LINE, argv=["--reinit", "ignore"])[0] == 0

    def test_missing_config_file(self, tmp_path):
        """Test a missing config file exits 2 before reading input."""
        stdin = StringIO(INIT_LINE)

        status = run_node(EchoNode, argv=["--config", str(tmp_path / "nope.yaml")],
                          stdin=stdin, stdout=StringIO())

        assert status == 2
        assert stdin.tell() == 0

    def test_interrupted(self):
        """Test KeyboardInterrupt exits 130."""
        status, _ = run_with(INIT_LINE + ECHO_LINE, machine_cls=Interrupted)

        assert status == 130

    def test_invalid_machine(self):
        """Test a machine with reserved payload tags exits non-zero."""
        class Clashing(StateMachine):
            payloads = INIT_PAYLOADS

            def step(self, message, writer):
                pass

        status, _ = run_with(INIT_LINE, machine_cls=Clashing)

        assert status == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
