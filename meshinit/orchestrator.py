"""
Run orchestration: sidecar readiness, workload supervision, sidecar teardown.

The phases run strictly one after another. A sidecar that never becomes ready
aborts the run before the workload is started. Anything that goes wrong with
the workload still leads to the teardown phase, so the sidecar is not left
running after the workload is gone.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from .config import Config
from .errors import ChildWaitError, ReadinessError, ReadinessWaitFailed, SpawnError, TerminationError
from .process import ProcessOutcome, spawn_and_wait
from .readiness import wait_ready
from .sidecar import terminate

logger = logging.getLogger(__name__)

# Exit status reported when the workload could not be started
WORKLOAD_UNAVAILABLE = -1


class OrchestratorState(Enum):
    INIT = "init"
    AWAITING_SIDECAR = "awaiting_sidecar"
    SUPERVISING = "supervising"
    TERMINATING = "terminating"
    DONE = "done"


@dataclass(frozen=True)
class OrchestrationResult:
    """Final result of a run."""

    exit_status: int
    outcome: Optional[ProcessOutcome] = None

    @property
    def spawned(self) -> bool:
        return self.outcome is not None


def exit_status_for(outcome: Optional[ProcessOutcome]) -> int:
    """Map a workload outcome to the supervisor's own exit status."""
    if outcome is None:
        return WORKLOAD_UNAVAILABLE
    return outcome.exit_status


class Orchestrator:
    """Sequences the phases of a single supervised run."""

    def __init__(self, config: Config, *, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.state = OrchestratorState.INIT
        self.result: Optional[OrchestrationResult] = None
        self._client = client

    def _transition(self, state: OrchestratorState):
        logger.debug(f"Orchestrator {self.state.value} -> {state.value}")
        self.state = state

    async def run(self) -> OrchestrationResult:
        """
        Run all configured phases and return the result.

        Raises:
            ReadinessWaitFailed: the sidecar never became ready; nothing ran.
            ChildWaitError: the workload's exit could not be collected
                (raised after teardown).
            TerminationError: the sidecar shutdown request failed; its
                ``result`` attribute holds the workload's result.
        """
        if self.state is not OrchestratorState.INIT:
            raise RuntimeError("Orchestrator.run() can only be called once")

        sidecar = self.config.sidecar
        if self.config.sidecar_enabled:
            self._transition(OrchestratorState.AWAITING_SIDECAR)
            await self._await_sidecar()

        self._transition(OrchestratorState.SUPERVISING)
        wait_error = None
        try:
            outcome = await self._supervise()
        except ChildWaitError as e:
            logger.error(f"Error: {e}")
            wait_error = e
            outcome = None

        self.result = OrchestrationResult(exit_status=exit_status_for(outcome), outcome=outcome)

        if self.config.sidecar_enabled and sidecar.terminate_after_exit:
            self._transition(OrchestratorState.TERMINATING)
            try:
                await self._terminate_sidecar()
            except TerminationError as e:
                e.result = self.result
                self._transition(OrchestratorState.DONE)
                if wait_error is not None:
                    logger.error(f"Error: {e}")
                    raise wait_error
                raise

        self._transition(OrchestratorState.DONE)
        if wait_error is not None:
            raise wait_error
        return self.result

    async def _await_sidecar(self):
        sidecar = self.config.sidecar
        logger.info(f"Waiting for sidecar at {sidecar.readiness_url}")
        try:
            await wait_ready(
                sidecar.readiness_url,
                self.config.readiness_retry_interval,
                self.config.readiness_timeout,
                client=self._client,
            )
        except ReadinessError as e:
            self._transition(OrchestratorState.DONE)
            raise ReadinessWaitFailed(f"Sidecar did not become ready: {e}") from e

    async def _supervise(self) -> Optional[ProcessOutcome]:
        config = self.config
        logger.info(f"Spawning {config.command} and waiting for it to exit")
        try:
            return await spawn_and_wait(
                config.command,
                config.args,
                forward_signals=config.forward_signals,
            )
        except SpawnError as e:
            logger.warning(f"Error: {e}")
            return None

    async def _terminate_sidecar(self):
        sidecar = self.config.sidecar
        logger.info(f"Requesting sidecar shutdown at {sidecar.shutdown_url}")
        await terminate(sidecar.shutdown_url, method=sidecar.shutdown_method, client=self._client)
