from brain.config import brain_config
from brain.constants import BROADCAST_TARGET

__version__ = "0.1.0"

__all__ = (
    "BROADCAST_TARGET",
    "brain_config",
)
