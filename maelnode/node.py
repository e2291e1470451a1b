"""
node.py - Node orchestrator

Owns stdin/stdout and the state machine, runs the init handshake and then
the receive/dispatch loop.

Protocol:
    Harness -> Node:
        {"type": "init", "node_id": ..., "node_ids": [...]}   - must come first
        application messages                                  - dispatched to step()

    Node -> Harness:
        {"type": "init_ok", "in_reply_to": <init msg_id>}     - handshake reply
        whatever step() sends

Lifecycle:
    UNINITIALIZED -> AWAITING_INIT -> RUNNING -> TERMINATED

Design:
    - Single thread, blocking reads; one step() runs to completion before the
      next line is read
    - Fail fast: a bad line, a missing init or a failing step() stops the node
    - Clean end-of-stream after the handshake is the only successful exit
"""

import logging
import sys
from enum import Enum
from typing import IO, List, Optional, Type

from .config import NodeConfig
from .errors import NodeError, ProtocolError, StepError
from .message import INIT_PAYLOADS, Init, InitOk, Message
from .reader import MessageReader
from .state_machine import StateMachine
from .writer import MessageWriter

logger = logging.getLogger(__name__)


class NodeState(Enum):
    UNINITIALIZED = 'uninitialized'
    AWAITING_INIT = 'awaiting_init'
    RUNNING = 'running'
    TERMINATED = 'terminated'


class Node:
    """
    Runs a StateMachine subclass against line-delimited JSON on stdio.

    Usage:
        node = Node(EchoNode)
        node.run()  # Blocks until stdin is closed

    Raises from run():
        DecodeError, TransportError, EncodeError, ProtocolError, StepError
    """

    def __init__(self, machine_cls: Type[StateMachine],
                 stdin: Optional[IO] = None,
                 stdout: Optional[IO] = None,
                 config: Optional[NodeConfig] = None):
        """
        Initialize node.

        Args:
            machine_cls: State machine class, constructed from the Init payload
            stdin: Inbound stream (defaults to sys.stdin.buffer)
            stdout: Outbound stream (defaults to sys.stdout)
            config: Runtime configuration (defaults to NodeConfig())

        Raises:
            ValueError: If the machine's payloads reuse the init/init_ok tags
        """
        try:
            self.payloads = INIT_PAYLOADS.merge(machine_cls.payloads)
        except ValueError as e:
            raise ValueError(f"{machine_cls.__name__}.payloads: {e}") from e

        self.machine_cls = machine_cls
        # Raw bytes, so the reader decodes strict UTF-8 whatever the locale
        self.stdin = stdin if stdin is not None else getattr(sys.stdin, 'buffer', sys.stdin)
        self.stdout = stdout if stdout is not None else sys.stdout
        self.config = config if config is not None else NodeConfig()

        self.state = NodeState.UNINITIALIZED
        self.machine: Optional[StateMachine] = None
        self.reader: Optional[MessageReader] = None
        self.writer: Optional[MessageWriter] = None

        # Identity, known after the handshake
        self.node_id: Optional[str] = None
        self.node_ids: List[str] = []

        # Metrics
        self.messages_received = 0
        self.steps_run = 0

    def run(self):
        """
        Run the handshake and the main loop until end-of-stream.

        Returns normally only on clean end-of-stream after the handshake.
        """
        if self.state is not NodeState.UNINITIALIZED:
            raise RuntimeError(f"Node already ran (state: {self.state.value})")

        self.reader = MessageReader(self.stdin, self.payloads)
        self.writer = MessageWriter(self.stdout)
        self.state = NodeState.AWAITING_INIT
        logger.debug(f"Waiting for init ({self.machine_cls.__name__})")

        try:
            self._handshake()
            self.state = NodeState.RUNNING

            for message in self.reader:
                self.messages_received += 1
                self._dispatch(message)

            logger.info("EOF received, shutting down")

        finally:
            self.state = NodeState.TERMINATED
            logger.info(
                f"Node loop terminated ({self.messages_received} received, "
                f"{self.writer.sent_count} sent)"
            )

    def _handshake(self):
        """Wait for init, reply init_ok, then build the state machine."""
        message = self.reader.recv()
        if message is None:
            raise ProtocolError("Input ended before init message")

        self.messages_received += 1
        payload = message.payload
        if not isinstance(payload, Init):
            raise ProtocolError(f"Expected init as first message, got '{payload.TYPE}'")

        logger.info(f"Received init: node_id={payload.node_id}, {len(payload.node_ids)} node(s)")

        self.node_id = payload.node_id
        self.node_ids = list(payload.node_ids)
        self.writer.reply(message, InitOk())

        try:
            self.machine = self.machine_cls(payload)
        except Exception as e:
            raise StepError(f"{self.machine_cls.__name__} failed to initialize: {e}") from e

        logger.info("Initialization complete, sent init_ok")

    def _dispatch(self, message: Message):
        """Hand one message to the state machine."""
        payload = message.payload

        if isinstance(payload, Init):
            if self.config.reinit_policy == 'ignore':
                logger.warning(f"Ignoring repeated init from {message.src}")
                return
            raise ProtocolError(f"Repeated init from {message.src} after handshake")

        if isinstance(payload, InitOk):
            logger.debug(f"Ignoring init_ok from {message.src}")
            return

        try:
            self.machine.step(message, self.writer)
        except NodeError:
            raise
        except Exception as e:
            raise StepError(f"Step failed on '{payload.TYPE}' from {message.src}: {e}") from e

        self.steps_run += 1
