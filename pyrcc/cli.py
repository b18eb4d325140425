"""CLI interface for the remote connection console."""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Optional, TypeVar, cast

import click

from . import __version__
from .console import InteractiveLoop
from .exceptions import EXIT_INTERRUPTED, RccError
from .listing import ListingEngine
from .models import Outcome
from .output import OutputFormatter
from .profile import persist_profile
from .reconcile import ReconcileEngine
from .session import SessionContext
from .store import RemoteStore, SftpStore
from .transfer import TransferEngine
from .utils import format_size

logger = logging.getLogger(__name__)

T = TypeVar("T")

use_option = click.option(
    "--use",
    "-u",
    "use",
    type=click.Path(dir_okay=False),
    default=None,
    help="Profile document to use instead of the active session",
)
progress_option = click.option(
    "--progress/--no-progress",
    default=False,
    help="Show a progress bar for every file",
)


def _session(ctx: Any) -> SessionContext:
    return cast(SessionContext, ctx.obj["session"])


def _fail(ctx: Any, error: RccError) -> None:
    """Report an error and end the command with its exit code."""
    out: OutputFormatter = ctx.obj["out"]
    out.error(str(error), error.exit_code)
    ctx.exit(error.exit_code)


def _finish(ctx: Any, outcome: Outcome[T]) -> T:
    """Return the value of a successful outcome, or fail the command."""
    if outcome.error is not None:
        _fail(ctx, outcome.error)
    return cast(T, outcome.value)


@contextmanager
def _remote_command(ctx: Any, use: Optional[str]) -> Generator[RemoteStore, None, None]:
    """Provide a connected store to a command and handle its failures.

    Inside the console the already open store is reused and an interrupt
    is passed on, which ends the console.
    """
    session = _session(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        with session.open_store(use) as store:
            yield store
    except RccError as e:
        _fail(ctx, e)
    except KeyboardInterrupt:
        if session.interactive:
            raise
        out.warning("Cancelled by user")
        ctx.exit(EXIT_INTERRUPTED)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__, prog_name="pyrcc")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """PyRCC - Pull, push and manage files on remote hosts over SSH."""
    ctx.ensure_object(dict)
    if "session" in ctx.obj:
        # Dispatched from the console, which owns the session
        return

    out = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["out"] = out
    ctx.obj["session"] = SessionContext(out=out)

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyrcc").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.argument("profile", type=str)
@click.pass_context
def use(ctx: Any, profile: str) -> None:
    """Set the profile used by subsequent commands.

    PROFILE: Path to a .json or .yml profile document,
             or one of ".", "/" or "-" to clear the active session

    Examples:
        pyrcc use ~/hosts/web.yml    # Use the web profile
        pyrcc use -                  # Forget the active profile
    """
    session = _session(ctx)
    out: OutputFormatter = ctx.obj["out"]

    try:
        loaded = session.cache.set_active(profile)
    except RccError as e:
        _fail(ctx, e)
        return

    if loaded is None:
        out.success("Session cleared")
        return
    if out.quiet:
        return
    out.print_summary(
        f"Using {loaded.display_name}",
        [
            ("Profile", str(loaded.path)),
            ("Host", f"{loaded.host}:{loaded.port}"),
            ("Auth", "key" if loaded.is_key_auth else "password"),
            ("Directory", loaded.working_directory),
        ],
    )
    if session.interactive:
        out.info("The console stays connected to its current profile")


@main.command("open")
@use_option
@click.option(
    "--redirect-stdin", type=click.File("rb"), help="Read shell input from this file"
)
@click.option(
    "--redirect-stdout", type=click.File("wb"), help="Write shell output to this file"
)
@click.option(
    "--redirect-stderr",
    type=click.File("wb"),
    help="Write shell errors to this file",
)
@click.pass_context
def open_shell(
    ctx: Any,
    use: Optional[str],
    redirect_stdin: Any,
    redirect_stdout: Any,
    redirect_stderr: Any,
) -> None:
    """Open an interactive shell on the remote host.

    The shell starts in the profile's working directory and ends when the
    remote shell exits.

    Examples:
        pyrcc open                                  # Shell on the active host
        pyrcc open --use web.yml                    # Shell on another host
        pyrcc open --redirect-stdout session.log    # Record the output
    """
    import shutil

    from .shell import run_shell

    with _remote_command(ctx, use) as store:
        if not isinstance(store, SftpStore):
            raise RccError("Remote shell is not supported by this store")
        size = shutil.get_terminal_size()
        channel = store.invoke_shell(width=size.columns, height=size.lines)
        try:
            status = run_shell(
                channel,
                store.current_working_directory,
                stdin=redirect_stdin,
                stdout=redirect_stdout,
                stderr=redirect_stderr,
            )
        finally:
            channel.close()
        logger.debug(f"Remote shell exited with status {status}")


@main.command()
@click.argument("remote_path", type=str)
@click.argument("local_path", type=click.Path())
@use_option
@progress_option
@click.pass_context
def pull(
    ctx: Any, remote_path: str, local_path: str, use: Optional[str], progress: bool
) -> None:
    """Download a remote file or directory.

    REMOTE_PATH: Remote file or directory (relative to the working directory)
    LOCAL_PATH: Local destination, which must not exist yet

    Examples:
        pyrcc pull logs/app.log app.log          # Download a file
        pyrcc pull /var/www site --progress      # Download a directory
    """
    with _remote_command(ctx, use) as store:
        engine = TransferEngine(store, ctx.obj["out"])
        _finish(ctx, engine.pull(remote_path, local_path, show_progress=progress))


@main.command()
@click.argument("local_path", type=click.Path())
@click.argument("remote_path", type=str)
@use_option
@progress_option
@click.pass_context
def push(
    ctx: Any, local_path: str, remote_path: str, use: Optional[str], progress: bool
) -> None:
    """Upload a local file or directory.

    LOCAL_PATH: Local file or directory
    REMOTE_PATH: Remote destination (relative to the working directory)

    Remote files that already exist are skipped, so an interrupted
    directory upload can be completed by running the same push again.

    Examples:
        pyrcc push app.log logs/app.log          # Upload a file
        pyrcc push ./site /var/www --progress    # Upload a directory
    """
    with _remote_command(ctx, use) as store:
        engine = TransferEngine(store, ctx.obj["out"])
        _finish(ctx, engine.push(local_path, remote_path, show_progress=progress))


@main.command()
@click.argument("old_path", type=str)
@click.argument("new_path", type=str)
@use_option
@progress_option
@click.pass_context
def move(
    ctx: Any, old_path: str, new_path: str, use: Optional[str], progress: bool
) -> None:
    """Move or rename a remote file or directory.

    OLD_PATH: Existing remote path
    NEW_PATH: New remote path, which must not exist yet

    Examples:
        pyrcc move notes.txt archive/notes.txt
    """
    with _remote_command(ctx, use) as store:
        engine = ReconcileEngine(store, ctx.obj["out"])
        _finish(
            ctx, engine.move(old_path, new_path, copy=False, show_progress=progress)
        )


@main.command()
@click.argument("old_path", type=str)
@click.argument("new_path", type=str)
@use_option
@progress_option
@click.pass_context
def copy(
    ctx: Any, old_path: str, new_path: str, use: Optional[str], progress: bool
) -> None:
    """Copy a remote file or directory.

    OLD_PATH: Existing remote path
    NEW_PATH: Remote path of the copy, which must not exist yet

    Examples:
        pyrcc copy config.yml config.yml.bak
        pyrcc copy www www-backup --progress
    """
    with _remote_command(ctx, use) as store:
        engine = ReconcileEngine(store, ctx.obj["out"])
        _finish(
            ctx, engine.move(old_path, new_path, copy=True, show_progress=progress)
        )


@main.command("del")
@click.argument("remote_path", type=str)
@use_option
@click.pass_context
def delete(ctx: Any, remote_path: str, use: Optional[str]) -> None:
    """Delete a remote file or directory.

    REMOTE_PATH: Remote path (relative to the working directory)

    Shows the size of what will be removed and asks for confirmation.

    Examples:
        pyrcc del old.log
        pyrcc del build
    """
    with _remote_command(ctx, use) as store:
        engine = ReconcileEngine(store, ctx.obj["out"])
        _finish(ctx, engine.delete(remote_path))


@main.command("list")
@click.argument("remote_path", type=str, required=False, default=None)
@use_option
@click.pass_context
def list_entries(ctx: Any, remote_path: Optional[str], use: Optional[str]) -> None:
    """List the working directory with recursive sizes.

    REMOTE_PATH: Directory to list instead of the working directory

    Examples:
        pyrcc list
        pyrcc --json list /var/log
    """
    out: OutputFormatter = ctx.obj["out"]

    with _remote_command(ctx, use) as store:
        listing = _finish(ctx, ListingEngine(store).list(remote_path))

    if out.json_output:
        out.output_json(listing.to_dict())
        return

    if not listing.entries:
        out.info(f"{listing.directory} is empty")
        return

    rows = [
        [
            entry.kind,
            entry.name,
            format_size(size.total_bytes),
            str(size.count),
            entry.accessed.strftime("%Y-%m-%d %H:%M") if entry.accessed else "-",
        ]
        for entry, size in listing.entries
    ]
    out.print_table(
        ["Type", "Name", "Size", "Count", "Last access"], rows, title=listing.directory
    )
    out.print(
        f"{listing.file_count} file(s), {listing.directory_count} directory(ies), "
        f"{listing.entry_count} entries ({listing.recursive_count} recursive), "
        f"{format_size(listing.total_bytes)} total"
    )


main.add_command(list_entries, "ls")


@main.command()
@click.argument("remote_path", type=str)
@use_option
@click.pass_context
def cd(ctx: Any, remote_path: str, use: Optional[str]) -> None:
    """Change the remote working directory.

    REMOTE_PATH: Absolute path or path relative to the working directory

    The new directory is saved in the profile document.

    Examples:
        pyrcc cd /var/log
        pyrcc cd ..
    """
    session = _session(ctx)
    out: OutputFormatter = ctx.obj["out"]

    with _remote_command(ctx, use) as store:
        directory = store.change_working_directory(remote_path)
        profile = session.resolve_profile()
        profile.working_directory = directory
        persist_profile(profile)
        out.success(f"Changed directory to {directory}")


@main.command()
@use_option
@click.pass_context
def pwd(ctx: Any, use: Optional[str]) -> None:
    """Print the remote working directory of the profile.

    Examples:
        pyrcc pwd
    """
    session = _session(ctx)
    out: OutputFormatter = ctx.obj["out"]

    try:
        profile = session.resolve_profile(use)
    except RccError as e:
        _fail(ctx, e)
        return

    directory = (
        session.store.current_working_directory
        if session.store is not None
        else profile.working_directory
    )
    if out.json_output:
        out.output_json(
            {"host": profile.host, "username": profile.username, "directory": directory}
        )
    else:
        out.print(f"{profile.display_name}:{directory}")


@main.command()
@use_option
@click.pass_context
def console(ctx: Any, use: Optional[str]) -> None:
    """Start an interactive console on one connection.

    Every pyrcc command can be typed without the program name; the
    connection stays open between commands. Type "exit" to leave.

    Examples:
        pyrcc console
        pyrcc console --use web.yml
    """
    session = _session(ctx)
    out: OutputFormatter = ctx.obj["out"]

    if session.interactive:
        out.error("Already in console mode")
        ctx.exit(1)

    try:
        InteractiveLoop(main, session).run(use)
    except RccError as e:
        _fail(ctx, e)


@main.command("help")
@click.argument("command_name", type=str, required=False)
@click.pass_context
def help_command(ctx: Any, command_name: Optional[str]) -> None:
    """Show help for pyrcc or one of its commands.

    Examples:
        pyrcc help
        pyrcc help pull
    """
    group_ctx = ctx.parent
    if command_name is None:
        click.echo(group_ctx.get_help())
        return

    command = main.get_command(group_ctx, command_name)
    if command is None:
        raise click.UsageError(f"No such command '{command_name}'.")
    with click.Context(command, info_name=command_name, parent=group_ctx) as sub_ctx:
        click.echo(command.get_help(sub_ctx))


@main.command()
def version() -> None:
    """Show the pyrcc version."""
    click.echo(f"pyrcc version {__version__}")
