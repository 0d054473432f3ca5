# brain/constants.py

"""
Constants module.

This module contains a collection of constants that are used throughout the brain package.
It's also a one to one mapping of env vars available to the application.
"""

from pathlib import Path

BRAIN_BASE_DIR: Path = Path(__file__).resolve().parent.parent
BRAIN_DEV_MODE: bool = False
BRAIN_LOG_LEVEL: str = "INFO"

# CONFIG
BRAIN_CONFIG_DIR: Path = BRAIN_BASE_DIR / "config"
BRAIN_CONFIG_TOML_FILE: Path = BRAIN_CONFIG_DIR / "brain.config.toml"
BRAIN_CONFIG_ENV_FILE: Path = BRAIN_CONFIG_DIR / "brain.config.env"

# MEDIATOR
BRAIN_MEDIATOR_REQUEST_TIMEOUT: float = 30.0
BRAIN_MEDIATOR_ACK_TIMEOUT: float = 30.0
BRAIN_MEDIATOR_SWEEP_INTERVAL: float = 1.0
BRAIN_MEDIATOR_VALIDATE_MESSAGES: bool = False
BRAIN_MEDIATOR_WARN_ON_OVERWRITE: bool = True

# ROUTING
BROADCAST_TARGET: str = "*"
