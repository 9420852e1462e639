"""Terminal streaming services.

- stream.py: Docker exec stream with a pseudo-terminal
- bridge.py: Per-connection bridge between a client and an exec stream
"""

from .stream import ExecStream
from .bridge import TerminalBridge

__all__ = ["ExecStream", "TerminalBridge"]
