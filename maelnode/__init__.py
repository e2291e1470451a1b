"""
maelnode - Node framework for a simulated distributed-systems harness

Nodes talk line-delimited JSON on stdin/stdout. Subclass StateMachine,
declare its payload variants and hand it to run_node().
"""

from .cli import run_node
from .config import NodeConfig, configure_logging, load_config
from .errors import (
    DecodeError,
    EncodeError,
    NodeError,
    ProtocolError,
    StepError,
    TransportError
)
from .message import Body, Init, InitOk, Message, Payload, PayloadSet
from .node import Node, NodeState
from .reader import MessageReader
from .state_machine import StateMachine
from .writer import MessageWriter

__all__ = [
    'Body',
    'DecodeError',
    'EncodeError',
    'Init',
    'InitOk',
    'Message',
    'MessageReader',
    'MessageWriter',
    'Node',
    'NodeConfig',
    'NodeError',
    'NodeState',
    'Payload',
    'PayloadSet',
    'ProtocolError',
    'StateMachine',
    'StepError',
    'TransportError',
    'configure_logging',
    'load_config',
    'run_node',
]
