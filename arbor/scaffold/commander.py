"""Running external commands on behalf of scaffold steps."""

import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from arbor.exceptions import CommandCancelledError
from arbor.logging_config import get_logger

logger = get_logger(__name__)

POLL_INTERVAL = 0.1


@dataclass
class CommandResult:
    """Combined stdout/stderr and exit status of a finished command."""

    output: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Commander:
    """Runs a command to completion, honouring a cancellation event.

    Steps receive a Commander instead of calling ``subprocess`` directly so
    tests can swap in a recording double.
    """

    def run(
        self,
        args: Sequence[str],
        cwd: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        cancel_event: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Run ``args`` and wait for it.

        Args:
            args: Program and arguments
            cwd: Working directory
            env: Full environment for the child (inherits ours when None)
            cancel_event: When set, the child is killed
            timeout: Seconds before the child is killed

        Returns:
            CommandResult with stdout and stderr interleaved

        Raises:
            CommandCancelledError: If cancelled or past the deadline
            OSError: If the program cannot be started
        """
        command = " ".join(args)
        logger.debug(f"Running {command} in {cwd}")
        deadline = time.monotonic() + timeout if timeout is not None else None

        process = subprocess.Popen(
            list(args),
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )

        while True:
            try:
                output, _ = process.communicate(timeout=POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                reason = None
                if cancel_event is not None and cancel_event.is_set():
                    reason = "cancelled"
                elif deadline is not None and time.monotonic() >= deadline:
                    reason = f"timed out after {timeout}s"
                if reason is not None:
                    process.kill()
                    process.communicate()
                    raise CommandCancelledError(command, reason)

        logger.debug(f"{command} exited with {process.returncode}")
        return CommandResult(output=output or "", returncode=process.returncode)
