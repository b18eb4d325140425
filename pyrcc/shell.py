"""Interactive remote shell for the "open" command (POSIX terminals only)."""

import logging
import os
import select
import shlex
import socket
import sys
import termios
import tty
from typing import BinaryIO, Optional

import paramiko

logger = logging.getLogger(__name__)

BUFFER_SIZE = 4096


def run_shell(
    channel: paramiko.Channel,
    working_directory: str = "/",
    stdin: Optional[BinaryIO] = None,
    stdout: Optional[BinaryIO] = None,
    stderr: Optional[BinaryIO] = None,
) -> int:
    """Forward terminal I/O to a remote shell until it exits.

    Args:
        channel: Shell channel with a pseudo-terminal
        working_directory: Remote directory to change into first
        stdin: File replacing the terminal input
        stdout: File receiving the shell output
        stderr: File receiving the shell error stream

    Returns:
        Exit status of the remote shell, or -1 if unknown
    """
    input_fd = stdin.fileno() if stdin is not None else sys.stdin.fileno()
    output = stdout if stdout is not None else sys.stdout.buffer
    errors = stderr if stderr is not None else sys.stderr.buffer

    raw_mode = stdin is None and os.isatty(input_fd)
    saved_attrs = termios.tcgetattr(input_fd) if raw_mode else None

    channel.send(f"cd {shlex.quote(working_directory)}\n".encode())
    try:
        if raw_mode:
            tty.setraw(input_fd)
            tty.setcbreak(input_fd)
        channel.settimeout(0.0)
        watch = [channel, input_fd]
        while True:
            readable, _, _ = select.select(watch, [], [])
            if channel in readable:
                try:
                    data = channel.recv(BUFFER_SIZE)
                except socket.timeout:
                    data = None
                if data is not None:
                    if not data:
                        break
                    output.write(data)
                    output.flush()
                while channel.recv_stderr_ready():
                    errors.write(channel.recv_stderr(BUFFER_SIZE))
                    errors.flush()
            if input_fd in readable:
                data = os.read(input_fd, BUFFER_SIZE)
                if not data:
                    # Input exhausted: let the remote shell see EOF
                    channel.shutdown_write()
                    watch = [channel]
                    continue
                channel.send(data)
    finally:
        if saved_attrs is not None:
            termios.tcsetattr(input_fd, termios.TCSADRAIN, saved_attrs)

    if channel.exit_status_ready():
        return channel.recv_exit_status()
    logger.debug("Remote shell closed without exit status")
    return -1
