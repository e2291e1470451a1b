#!/usr/bin/env python3
"""
echo_node.py - Echo node

Answers every echo request with the same text.

Usage:
    python3 -m maelnode.examples.echo_node

Example:
    In:  {"src":"c1","dest":"n1","body":{"msg_id":2,"type":"echo","echo":"hello"}}
    Out: {"src":"n1","dest":"c1","body":{"msg_id":1,"in_reply_to":2,"type":"echo_ok","echo":"hello"}}
"""

from dataclasses import dataclass

from maelnode.cli import main_for
from maelnode.message import Message, Payload, PayloadSet
from maelnode.state_machine import StateMachine
from maelnode.writer import MessageWriter


@dataclass(frozen=True)
class Echo(Payload):
    TYPE = "echo"
    echo: str


@dataclass(frozen=True)
class EchoOk(Payload):
    TYPE = "echo_ok"
    echo: str


class EchoNode(StateMachine):
    """Replies echo -> echo_ok; echo_ok replies arriving here are dropped."""

    payloads = PayloadSet(Echo, EchoOk)

    def step(self, message: Message, writer: MessageWriter):
        payload = message.payload
        if isinstance(payload, Echo):
            writer.reply(message, EchoOk(echo=payload.echo))


def main():
    """Main entry point for echo node."""
    main_for(EchoNode)


if __name__ == "__main__":
    main()
