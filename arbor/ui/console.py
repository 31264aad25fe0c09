"""Progress lines and prompts on a rich console."""

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm

from arbor.exceptions import UserAbortedError

console = Console()
error_console = Console(stderr=True)

_quiet = False


def set_quiet(quiet: bool) -> None:
    """Suppress info and success lines; warnings and errors still show."""
    global _quiet
    _quiet = quiet


def print_info(message: str) -> None:
    if not _quiet:
        console.print(f"[blue]ℹ[/blue] {escape(message)}")


def print_success(message: str) -> None:
    if not _quiet:
        console.print(f"[green]✓[/green] {escape(message)}")


def print_warning(message: str) -> None:
    error_console.print(f"[yellow]⚠ {escape(message)}[/yellow]")


def print_error(message: str) -> None:
    error_console.print(f"[red]Error: {escape(message)}[/red]")


def print_step(message: str) -> None:
    """An indented detail line under the current step."""
    if not _quiet:
        console.print(f"  [dim]{escape(message)}[/dim]")


def print_plain(message: str) -> None:
    """Unstyled output meant for scripts (paths, shell commands)."""
    console.print(message, markup=False, highlight=False, soft_wrap=True)


def normalize_abort(exc: BaseException) -> BaseException:
    """Map the ways a prompt can be interrupted onto UserAbortedError."""
    if isinstance(exc, (KeyboardInterrupt, EOFError, UserAbortedError)):
        return UserAbortedError()
    return exc


def confirm(question: str, default: bool = False) -> bool:
    """Ask a yes/no question.

    Raises:
        UserAbortedError: On ctrl-C or end of input
    """
    try:
        return Confirm.ask(question, default=default, console=console)
    except (KeyboardInterrupt, EOFError) as e:
        raise normalize_abort(e) from e
