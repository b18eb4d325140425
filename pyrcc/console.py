"""Interactive console running many commands over one connection."""

import logging
import shlex
from enum import Enum
from typing import Any, Callable, Optional

import click

from .exceptions import RccError
from .session import SessionContext

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("exit", "quit")


class LoopState(str, Enum):
    """States of the interactive console."""

    IDLE = "idle"
    CONNECTED = "connected"
    EXITED = "exited"


def read_command_line(prompt: str) -> str:
    """Read one command line from the terminal."""
    return click.prompt(prompt, default="", show_default=False, prompt_suffix="> ")


class InteractiveLoop:
    """Reads and dispatches commands until "exit" or end of input.

    Every line is tokenized like a shell command line and dispatched
    through the same click group as a one-shot invocation, with the
    session context already connected. Failures are reported and the
    loop continues; an interrupt ends the loop like "exit".
    """

    def __init__(
        self,
        command: click.Group,
        session: SessionContext,
        read_line: Optional[Callable[[str], str]] = None,
        prog_name: str = "pyrcc",
    ):
        """Initialize the console.

        Args:
            command: Click group dispatching the commands
            session: Session context shared by every command
            read_line: Function reading one line for a prompt
            prog_name: Program name shown in usage messages
        """
        self.command = command
        self.session = session
        self.read_line = read_line or read_command_line
        self.prog_name = prog_name
        self.state = LoopState.IDLE

    @property
    def prompt(self) -> str:
        profile = self.session.profile
        store = self.session.store
        if profile is None or store is None:
            return self.prog_name
        return f"{profile.display_name}:{store.current_working_directory}"

    def run(self, explicit_path: Optional[str] = None) -> None:
        """Connect, then read and dispatch commands until exit.

        Args:
            explicit_path: Profile given with --use

        Raises:
            RccError: If the profile cannot be resolved or the connection fails
        """
        out = self.session.out
        self.session.interactive = True
        self.session.connect(explicit_path)
        self.state = LoopState.CONNECTED
        profile = self.session.resolve_profile()
        out.success(f"Connected to {profile.display_name}")
        try:
            while self.state == LoopState.CONNECTED:
                try:
                    line = self.read_line(self.prompt)
                except (click.Abort, EOFError, KeyboardInterrupt):
                    break
                self.dispatch(line)
        finally:
            self.state = LoopState.EXITED
            self.session.close()
            self.session.interactive = False
            out.info("Session closed")

    def dispatch(self, line: str) -> Optional[int]:
        """Run one command line.

        Returns:
            Exit code of the command, or None if nothing was run
        """
        out = self.session.out
        try:
            args = shlex.split(line)
        except ValueError as e:
            out.error(f"Cannot parse command: {e}")
            return None
        if not args:
            return None

        name = args[0]
        if name in EXIT_COMMANDS:
            self.state = LoopState.EXITED
            return None
        if name == "console":
            out.error("Already in console mode")
            return None

        try:
            result: Any = self.command.main(
                args=args,
                prog_name=self.prog_name,
                standalone_mode=False,
                obj={"session": self.session, "out": out},
            )
        except click.Abort:
            # Interrupt while a command runs ends the console
            self.state = LoopState.EXITED
            return None
        except click.ClickException as e:
            e.show()
            return e.exit_code
        except RccError as e:
            out.error(str(e), e.exit_code)
            return e.exit_code
        except Exception as e:
            logger.exception("Command failed")
            out.error(f"Unexpected error: {e}")
            return 1
        return result if isinstance(result, int) else 0
