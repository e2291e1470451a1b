"""
state_machine.py - Pluggable per-node application logic

A node program subclasses StateMachine, names the payload variants it speaks
and implements step(). The orchestrator owns the init/init_ok handshake:
the machine is constructed from the Init payload after init_ok has been
sent, and step() only ever sees application payloads.
"""

from abc import ABC, abstractmethod
from typing import List

from .message import Init, Message, PayloadSet
from .writer import MessageWriter


class StateMachine(ABC):
    """
    Abstract base class for node state machines.

    Subclasses must set the class attribute `payloads` and implement step().

    Example:
        class EchoNode(StateMachine):
            payloads = PayloadSet(Echo, EchoOk)

            def step(self, message, writer):
                if isinstance(message.payload, Echo):
                    writer.reply(message, EchoOk(echo=message.payload.echo))
    """

    payloads: PayloadSet = PayloadSet()

    def __init__(self, init: Init):
        """
        Args:
            init: Handshake payload with this node's id and the membership
        """
        self.node_id: str = init.node_id
        self.node_ids: List[str] = list(init.node_ids)

    @abstractmethod
    def step(self, message: Message, writer: MessageWriter):
        """
        Process one inbound message.

        Called once per message, in receipt order, never concurrently.
        Send zero or more messages through writer. Raise to report failure;
        the node stops on the first failure.

        Payload variants the machine does not answer should be no-ops.
        """
        pass
