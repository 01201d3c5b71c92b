"""
TaskRunner: the run state machine.

Each turn pulls a snapshot, asks the model for one action, records the reply in
the transcript and dispatches valid actions to the host. The stop signal is
polled before every phase.

Termination comes from `interrupt()`, the transcript cap, or a fatal error. A
`finish` or `fail` reply is recorded but does not end the run.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from taskpilot.agent.config import TaskRunnerSettings
from taskpilot.agent.executor import TurnExecutor
from taskpilot.agent.views import (
    ActionStatus,
    HistoryEntry,
    RunState,
    TurnFailure,
)
from taskpilot.host.base import HostSession
from taskpilot.llm.base import BaseChatModel

logger = logging.getLogger(__name__)


def _identity(markup: str) -> str:
    return markup


class TaskRunner:
    """
    Runs one task at a time against a host session.

    Usage:
        runner = TaskRunner(host, ChatOllama(), TaskRunnerSettings(model="llama3.1"))
        state = await runner.run_task("Add the blue shoes to the cart", on_error=print)
    """

    def __init__(
        self,
        host: HostSession,
        llm: BaseChatModel,
        settings: TaskRunnerSettings,
        *,
        templatize: Callable[[str], str] | None = None,
        state: RunState | None = None,
    ):
        """
        Args:
            host: Live document collaborator (snapshots, actions, lifecycle)
            llm: Model transport
            settings: Runner settings
            templatize: Reduces a raw snapshot to compact markup; identity when None
            state: Initial state, for callers that keep a reference to observe it
        """
        self.host = host
        self.llm = llm
        self.settings = settings
        self.templatize = templatize or _identity
        self.state = state or RunState()

    def _was_stopped(self) -> bool:
        return self.state.status != 'running'

    def _set_action_status(self, action_status: ActionStatus) -> None:
        self.state.action_status = action_status

    def _append(self, entry: HistoryEntry) -> None:
        self.state.history = (*self.state.history, entry)

    def _reached_step_cap(self) -> bool:
        return len(self.state.history) >= self.settings.max_history

    def _prior_turns(self) -> list[HistoryEntry]:
        if not self.settings.include_history:
            return []
        return [entry for entry in self.state.history if not entry.is_error and entry.action.kind != 'fail']

    def interrupt(self) -> None:
        """Ask the running task to stop at its next poll point."""
        logger.info("⏹️ Interrupt requested")
        self.state.status = 'interrupted'

    async def run_task(self, instructions: str | None, on_error: Callable[[str], None]) -> RunState:
        """
        Run `instructions` until interrupted, capped, or failed.

        Starting while a run is already `running`, or with empty instructions,
        does nothing.

        Args:
            instructions: The user's task
            on_error: Called with a message for transport failures, rejected replies and fatal errors

        Returns:
            The runner's state at the end of the run
        """
        if not instructions or self.state.status == 'running':
            logger.info("Task not started: no instructions or a run is already in progress")
            return self.state

        self.state.instructions = instructions
        self.state.history = ()
        self.state.target_id = None
        self.state.status = 'running'
        self.state.action_status = 'attaching'
        logger.info(f"Starting task: '{instructions}'")

        executor = TurnExecutor(
            self.llm,
            instructions,
            max_attempts=self.settings.max_query_attempts,
            notify_error=on_error,
        )

        try:
            self.state.target_id = await self.host.attach()
            await self.host.disable_extensions()
            await self._loop(executor)
            if self.state.status == 'running':
                self.state.status = 'success'
        except Exception as e:
            logger.error(f"Task failed: {e}", exc_info=True)
            on_error(str(e))
            self.state.status = 'error'
        finally:
            await self._release()
            self.state.action_status = 'idle'

        logger.info(f"Task ended: status={self.state.status}, turns={len(self.state.history)}")
        return self.state

    async def _loop(self, executor: TurnExecutor) -> None:
        while True:
            if self._was_stopped():
                return
            if self._reached_step_cap():
                logger.info(f"Reached {self.settings.max_history} turns, stopping")
                return

            self._set_action_status('pulling-snapshot')
            raw_snapshot = await self.host.pull_snapshot()
            if raw_snapshot is None:
                logger.error("No snapshot available from the host")
                self.state.status = 'error'
                return

            if self._was_stopped():
                return
            self._set_action_status('transforming-snapshot')
            markup = self.templatize(raw_snapshot)

            if self._was_stopped():
                return
            self._set_action_status('querying')
            logger.info(f"📍 Turn {len(self.state.history) + 1}/{self.settings.max_history}")
            outcome = await executor.execute(self.settings.model, self._prior_turns(), markup)
            if outcome is None:
                self.state.status = 'error'
                return

            if self._was_stopped():
                return
            self._set_action_status('acting')
            entry = HistoryEntry.from_outcome(outcome)
            self._append(entry)

            if isinstance(outcome, TurnFailure):
                continue

            attempt = outcome.attempt
            if attempt.kind in ('finish', 'fail'):
                # Recorded only; the run keeps going until stopped or capped.
                logger.info(f"Model reported '{attempt.kind}': {attempt.rationale}")
                continue

            try:
                logger.info(f"  ▶️  {attempt.kind}: {attempt.args()}")
                await self.host.act(attempt.kind, attempt.args())
            except Exception:
                # The next snapshot shows whether the action took effect.
                logger.info(f"  ❌ Action {attempt.kind} failed", exc_info=True)
                continue

            if self._was_stopped():
                return
            if self._reached_step_cap():
                logger.info(f"Reached {self.settings.max_history} turns, stopping")
                return

            self._set_action_status('waiting')
            await asyncio.sleep(self.settings.settle_delay_s)

    async def _release(self) -> None:
        try:
            await self.host.detach(self.state.target_id)
        except Exception:
            logger.warning("Failed to detach from host", exc_info=True)
        finally:
            try:
                await self.host.reenable_extensions()
            except Exception:
                logger.warning("Failed to re-enable extensions", exc_info=True)
