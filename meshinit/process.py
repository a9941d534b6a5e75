"""
Workload process supervision.

Starts the workload as a child process sharing the supervisor's stdin, stdout
and stderr, waits for it to terminate, and reports whether it exited with a
code or was killed by a signal. The two are kept apart: exiting with 9 and
being killed by SIGKILL are different outcomes.
"""

import asyncio
import contextlib
import logging
import signal
from dataclasses import dataclass
from typing import Sequence, Union

from .errors import ChildWaitError, SpawnError

logger = logging.getLogger(__name__)

# Signals relayed to the workload while it runs
FORWARDED_SIGNALS = (
    signal.SIGTERM,
    signal.SIGINT,
    signal.SIGHUP,
    signal.SIGQUIT,
    signal.SIGUSR1,
    signal.SIGUSR2,
)


@dataclass(frozen=True)
class Exited:
    """The workload exited on its own with ``code``."""

    code: int

    @property
    def exit_status(self) -> int:
        return self.code

    def __str__(self) -> str:
        return f"exited with code {self.code}"


@dataclass(frozen=True)
class Signaled:
    """The workload was terminated by signal ``signal``."""

    signal: int

    @property
    def exit_status(self) -> int:
        # Shell convention
        return 128 + self.signal

    @property
    def signal_name(self) -> str:
        try:
            return signal.Signals(self.signal).name
        except ValueError:
            return f"signal {self.signal}"

    def __str__(self) -> str:
        return f"killed by {self.signal_name}"


ProcessOutcome = Union[Exited, Signaled]


def outcome_from_returncode(returncode: int) -> ProcessOutcome:
    """Translate an asyncio/subprocess return code (negative for signals)."""
    if returncode < 0:
        return Signaled(signal=-returncode)
    return Exited(code=returncode)


async def spawn_and_wait(
    command: str,
    args: Sequence[str] = (),
    *,
    forward_signals: bool = False,
) -> ProcessOutcome:
    """
    Run ``command`` with ``args`` and wait for it to terminate.

    Standard streams are inherited, so the workload's output appears directly
    on the supervisor's own stdout/stderr.

    Raises:
        SpawnError: the executable could not be started at all.
        ChildWaitError: the child started but its exit could not be collected.
    """
    try:
        process = await asyncio.create_subprocess_exec(command, *args)
    except OSError as e:
        raise SpawnError(command, e) from e

    logger.info(f"Started {command} with PID {process.pid}")

    loop = asyncio.get_running_loop()
    installed = []
    if forward_signals:
        for sig in FORWARDED_SIGNALS:
            try:
                loop.add_signal_handler(sig, _forward, process, sig)
            except (NotImplementedError, RuntimeError) as e:
                logger.warning(f"Cannot forward {sig.name} to the workload: {e}")
                continue
            installed.append(sig)

    try:
        returncode = await process.wait()
    except Exception as e:
        raise ChildWaitError(f"Failed to wait for {command} (PID {process.pid}): {e}") from e
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)

    outcome = outcome_from_returncode(returncode)
    logger.info(f"Process {command} (PID {process.pid}) {outcome}")
    return outcome


def _forward(process: asyncio.subprocess.Process, sig: signal.Signals):
    if process.returncode is not None:
        return
    logger.info(f"Forwarding {sig.name} to PID {process.pid}")
    with contextlib.suppress(ProcessLookupError):
        process.send_signal(sig)
