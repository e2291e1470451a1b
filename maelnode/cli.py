"""
cli.py - Command-line entry point for node programs

Every node program is started the same way:

    maelnode-echo
    maelnode-echo --config node.yaml
    maelnode-echo --reinit ignore --verbose

Exit status:
    0    clean end-of-stream after the handshake
    1    fatal node error (bad input, handshake violation, step failure)
    2    bad command line or config file
    130  interrupted
"""

import argparse
import logging
import sys
import traceback
from pathlib import Path
from typing import IO, List, Optional, Type

import yaml

from .config import NodeConfig, REINIT_POLICIES, configure_logging, load_config
from .errors import NodeError
from .node import Node
from .state_machine import StateMachine

logger = logging.getLogger(__name__)


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    """Build the argument parser shared by all node programs."""
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Run a node speaking line-delimited JSON on stdin/stdout.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Diagnostics go to stderr; stdout carries protocol messages only.

Examples:
  # Run with defaults
  maelnode-echo

  # Drop repeated init messages instead of stopping
  maelnode-echo --reinit ignore

  # Load settings from YAML, with debug logging
  maelnode-echo --config node.yaml --verbose
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to node YAML config file"
    )

    parser.add_argument(
        "--reinit",
        choices=REINIT_POLICIES,
        default=None,
        help="Policy for init messages after the handshake (default: reject)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output (log every message at DEBUG)"
    )

    return parser


def resolve_config(args: argparse.Namespace) -> NodeConfig:
    """
    Merge the config file (if any) with command-line overrides.

    Raises:
        FileNotFoundError, ValueError, yaml.YAMLError: On a bad config file
    """
    config = load_config(str(args.config)) if args.config is not None else NodeConfig()

    if args.reinit is not None:
        config.reinit_policy = args.reinit
    if args.verbose:
        config.log_level = 'DEBUG'

    return config


def run_node(machine_cls: Type[StateMachine],
             argv: Optional[List[str]] = None,
             stdin: Optional[IO] = None,
             stdout: Optional[IO] = None) -> int:
    """
    Parse arguments, run the node and map the outcome to an exit status.

    Args:
        machine_cls: State machine class to run
        argv: Command-line arguments (defaults to sys.argv[1:])
        stdin: Inbound stream (defaults to sys.stdin)
        stdout: Outbound stream (defaults to sys.stdout)

    Returns:
        Process exit status

    Example:
        if __name__ == '__main__':
            sys.exit(run_node(EchoNode))
    """
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"ERROR: Invalid node configuration: {e}", file=sys.stderr)
        return 2

    configure_logging(config.log_level)

    try:
        node = Node(machine_cls, stdin=stdin, stdout=stdout, config=config)
        node.run()

    except NodeError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 130

    except Exception as e:
        logger.error(f"Unexpected error: {type(e).__name__}: {e}")
        if args.verbose:
            traceback.print_exc()
        return 1

    return 0


def main_for(machine_cls: Type[StateMachine]):
    """Run machine_cls as the process entry point and exit with its status."""
    sys.exit(run_node(machine_cls))
