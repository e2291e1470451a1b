#!/usr/bin/env python3
"""
unique_ids_node.py - Unique ID generator node

Ids are "<node_id>-<n>" with a per-node counter starting at 1. Node ids are
unique across the cluster, so the generated ids are too, with no
coordination between nodes.

Usage:
    python3 -m maelnode.examples.unique_ids_node
"""

from dataclasses import dataclass

from maelnode.cli import main_for
from maelnode.message import Init, Message, Payload, PayloadSet
from maelnode.state_machine import StateMachine
from maelnode.writer import MessageWriter


@dataclass(frozen=True)
class Generate(Payload):
    TYPE = "generate"


@dataclass(frozen=True)
class GenerateOk(Payload):
    TYPE = "generate_ok"
    id: str


class UniqueIdsNode(StateMachine):
    """Answers generate with a fresh cluster-unique id."""

    payloads = PayloadSet(Generate, GenerateOk)

    def __init__(self, init: Init):
        super().__init__(init)
        self.counter = 1

    def next_id(self) -> str:
        guid = f"{self.node_id}-{self.counter}"
        self.counter += 1
        return guid

    def step(self, message: Message, writer: MessageWriter):
        if isinstance(message.payload, Generate):
            writer.reply(message, GenerateOk(id=self.next_id()))


def main():
    """Main entry point for unique ids node."""
    main_for(UniqueIdsNode)


if __name__ == "__main__":
    main()
