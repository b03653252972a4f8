"""
Adapters — the only code that touches processes and OS privilege.

    from polyinstall.adapters import CommandRunner, SubprocessRunner, MockRunner
"""

from polyinstall.adapters.base import CommandRunner
from polyinstall.adapters.mock import MockRunner
from polyinstall.adapters.shell.command import SubprocessRunner, command_exists
from polyinstall.adapters.shell.elevation import Elevator, select_elevator

__all__ = [
    "CommandRunner",
    "Elevator",
    "MockRunner",
    "SubprocessRunner",
    "command_exists",
    "select_elevator",
]
