"""
config.py - Node configuration

Nodes run fine with no configuration at all. A YAML file can be passed with
--config to change the defaults:

    node:
      reinit_policy: ignore   # "reject" (default) or "ignore"
      log_level: DEBUG

Keep it simple: fail fast with ValueError on anything unexpected.
"""

import logging
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict

import yaml

REINIT_POLICIES = ('reject', 'ignore')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
LOG_FORMAT = '[%(name)s] %(levelname)s: %(message)s'


@dataclass
class NodeConfig:
    """
    Node runtime configuration.

    Attributes:
        reinit_policy: What to do with an init after the handshake
            ("reject" stops the node, "ignore" drops the message)
        log_level: Logging level name for stderr diagnostics
    """
    reinit_policy: str = 'reject'
    log_level: str = 'INFO'

    def __post_init__(self):
        """Validate configuration."""
        if self.reinit_policy not in REINIT_POLICIES:
            raise ValueError(
                f"reinit_policy must be 'reject' or 'ignore', got '{self.reinit_policy}'"
            )

        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got '{self.log_level}'")


def config_from_dict(data: Dict[str, Any]) -> NodeConfig:
    """
    Build a NodeConfig from a parsed YAML document.

    Raises:
        ValueError: On unknown keys or invalid values
    """
    if not isinstance(data, dict):
        raise ValueError(f"Config must contain a YAML dict, got {type(data)}")

    node = data.get('node', {})
    if node is None:
        node = {}
    if not isinstance(node, dict):
        raise ValueError("'node' section must be a dict")

    known = {f.name for f in fields(NodeConfig)}
    unknown = sorted(set(node) - known)
    if unknown:
        raise ValueError(f"Unknown node config field(s): {', '.join(unknown)}")

    return NodeConfig(**node)


def load_config(yaml_path: str) -> NodeConfig:
    """
    Load node configuration from a YAML file.

    Args:
        yaml_path: Path to YAML config file

    Returns:
        NodeConfig with file values applied over the defaults

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the content is invalid
        yaml.YAMLError: If YAML syntax is invalid
    """
    path = Path(yaml_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(path, 'r') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML syntax in {yaml_path}: {e}")

    # An empty file means "all defaults"
    if data is None:
        return NodeConfig()

    return config_from_dict(data)


def configure_logging(level: str = 'INFO'):
    """
    Send all diagnostics to stderr; stdout is reserved for protocol messages.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        stream=sys.stderr
    )
    # basicConfig is a no-op once the root logger has handlers
    logging.getLogger('maelnode').setLevel(numeric_level)
