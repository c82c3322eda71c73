from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable

from notewright.pipeline.coordinator import MeetingPipelineCoordinator
from notewright.pipeline.types import (
    CancellationToken,
    Done,
    Failed,
    Idle,
    PipelineCancelled,
    PipelineFailure,
    PipelineResult,
    PipelineStage,
    PipelineState,
    Processing,
    ProgressCallback,
    ProgressUpdate,
    Recorded,
    RunContext,
    RunOutcome,
    Writing,
)

logger = logging.getLogger(__name__)

Dispatch = Callable[[Callable[[], None]], None]


def _call_inline(fn: Callable[[], None]) -> None:
    fn()


class PipelineSession:
    """Owns at most one active pipeline run.

    Runs execute on a single worker thread. Starting a run first cancels the
    previous one and waits for it to finish, so two runs never write at once.
    Progress and state callbacks go through `dispatch`, which lets a caller
    hop onto its own thread (for example a UI event loop) before touching its
    state.
    """

    def __init__(
        self,
        coordinator: MeetingPipelineCoordinator,
        *,
        dispatch: Dispatch | None = None,
        on_state: Callable[[PipelineState], None] | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.dispatch = dispatch or _call_inline
        self.on_state = on_state
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="notewright-pipeline")
        self._lock = threading.Lock()
        # Separate from _lock: start() holds _lock while it waits for the worker, which still sets states.
        self._state_lock = threading.Lock()
        self._token: CancellationToken | None = None
        self._future: Future[RunOutcome] | None = None
        self._state: PipelineState = Idle()

    @property
    def state(self) -> PipelineState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: PipelineState) -> None:
        with self._state_lock:
            self._state = state
        if self.on_state is not None:
            self.dispatch(lambda: self.on_state(state))

    def mark_recorded(self, audio_path: Path, duration_seconds: float) -> None:
        self._set_state(Recorded(audio_path=audio_path, duration_seconds=duration_seconds))

    def start(self, context: RunContext, on_progress: ProgressCallback | None = None) -> Future[RunOutcome]:
        with self._lock:
            self._cancel_active_locked()
            token = CancellationToken()
            self._token = token
            self._set_state(Processing(PipelineStage.DOWNLOADING_MODELS))
            self._future = self._executor.submit(self._run, context, on_progress, token)
            return self._future

    def cancel(self, wait_for_completion: bool = True) -> None:
        with self._lock:
            if wait_for_completion:
                self._cancel_active_locked()
            elif self._token is not None:
                self._token.cancel()

    def _cancel_active_locked(self) -> None:
        if self._future is None or self._future.done():
            return
        logger.info("Cancelling active pipeline run")
        if self._token is not None:
            self._token.cancel()
        wait([self._future])

    def _run(self, context: RunContext, on_progress: ProgressCallback | None, token: CancellationToken) -> RunOutcome:
        def forward(update: ProgressUpdate | None) -> None:
            if update is not None and not token.cancelled:
                if update.stage is PipelineStage.WRITING:
                    self._set_state(Writing(update.extraction))
                else:
                    self._set_state(Processing(update.stage))
            if on_progress is not None:
                self.dispatch(lambda: on_progress(update))

        try:
            outcome = self.coordinator.execute(context, forward, token)
        except Exception:
            logger.exception("Pipeline raised an unclassified error")
            self._set_state(Idle())
            raise

        if isinstance(outcome, PipelineResult):
            self._set_state(Done(outcome))
        elif isinstance(outcome, PipelineFailure):
            self._set_state(Failed(outcome.error))
        elif isinstance(outcome, PipelineCancelled):
            self._set_state(Idle())
        return outcome

    def close(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "PipelineSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
