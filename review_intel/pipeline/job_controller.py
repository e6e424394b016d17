"""
Analysis job lifecycle controller.

Drives one backend analysis job from submission to a terminal state:

    idle -> submitting -> polling -> ready | failed

Polling runs as an explicit scheduler task keyed by job id. Each task owns
a CancellationToken; a new submission or ``close()`` sets the token, and
any continuation that observes it discards its result and stops without
rescheduling. Transport failures are terminal and never retried here.

Features:
    - tenacity AsyncRetrying poll loop (fixed wait, bounded attempts)
    - Interruptible poll delay tied to the cancellation token
    - Progress clamped to [0, 100], high-water mark under the ratchet policy
    - Structured events for every transition via an injectable hook
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Coroutine, Optional
from uuid import uuid4

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    stop_never,
    wait_fixed,
)
from tenacity.stop import stop_base

from review_intel.config.settings import Settings, get_settings
from review_intel.extractors.record_normalizer import coerce_list, coerce_number, extract_text
from review_intel.models.schemas import (
    AnalysisJob,
    JobPhase,
    JobStatus,
    JobStep,
    StepStatus,
)
from review_intel.services.api_client import ReviewBackend
from review_intel.services.validation_service import ValidationService
from review_intel.utils.errors import (
    AppError,
    AppTimeoutError,
    ErrorHandler,
    JobFailure,
    TransportError,
)
from review_intel.utils.logger import EventHook, LogContext, emit_event, get_logger

logger = get_logger(__name__)


# =============================================================================
# Status Mapping
# =============================================================================

READY_STATUSES = frozenset({"ready", "completed", "complete"})
FAILED_STATUSES = frozenset({"failed", "error"})
INITIALIZING_STATUSES = frozenset({"initializing", "starting", "pending"})

STEP_STATUS_ALIASES = {
    "pending": StepStatus.PENDING.value,
    "in_progress": StepStatus.IN_PROGRESS.value,
    "in-progress": StepStatus.IN_PROGRESS.value,
    "running": StepStatus.IN_PROGRESS.value,
    "active": StepStatus.IN_PROGRESS.value,
    "completed": StepStatus.COMPLETED.value,
    "complete": StepStatus.COMPLETED.value,
    "done": StepStatus.COMPLETED.value,
}


def map_job_status(raw: Any, current: str) -> str:
    """Map a backend status string onto JobStatus; a missing status keeps ``current``."""
    if not isinstance(raw, str) or not raw.strip():
        return current
    status = raw.strip().lower()
    if status in READY_STATUSES:
        return JobStatus.READY.value
    if status in FAILED_STATUSES:
        return JobStatus.FAILED.value
    if status in INITIALIZING_STATUSES:
        return JobStatus.INITIALIZING.value
    return JobStatus.ANALYZING.value


def normalize_steps(raw: Any) -> list[JobStep]:
    steps = []
    for item in coerce_list(raw):
        if isinstance(item, dict):
            name = extract_text(item, ("name", "title", "label", "step"))
            status = str(item.get("status") or "").strip().lower()
        else:
            name, status = extract_text(item), ""
        if name:
            steps.append(JobStep(name=name, status=STEP_STATUS_ALIASES.get(status, StepStatus.PENDING.value)))
    return steps


def clamp_progress(value: float) -> int:
    return int(min(max(value, 0), 100))


# =============================================================================
# Cancellation & Scheduling
# =============================================================================

class CancellationToken:
    """
    Cooperative cancellation flag for one job.

    ``sleep`` returns early as soon as the token is cancelled.
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def sleep(self, seconds: float) -> None:
        if self.cancelled:
            return
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass


class stop_when_cancelled(stop_base):
    """Tenacity stop condition: stop once the token is cancelled."""

    def __init__(self, token: CancellationToken):
        self.token = token

    def __call__(self, retry_state: RetryCallState) -> bool:
        return self.token.cancelled


class PollScheduler:
    """One polling task and one cancellation token per job id."""

    def __init__(self):
        self._tokens: dict[str, CancellationToken] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def token(self, job_id: str) -> CancellationToken:
        if job_id not in self._tokens:
            self._tokens[job_id] = CancellationToken()
        return self._tokens[job_id]

    def schedule(self, job_id: str, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        existing = self._tasks.get(job_id)
        if existing is not None and not existing.done():
            coro.close()
            raise RuntimeError(f"Job {job_id} already has a polling task")
        task = asyncio.create_task(coro, name=f"poll-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda _: self.release(job_id))
        return task

    def release(self, job_id: str) -> None:
        """Forget a job's token, and its task once that task has finished."""
        self._tokens.pop(job_id, None)
        task = self._tasks.get(job_id)
        if task is not None and task.done():
            del self._tasks[job_id]

    def is_active(self, job_id: str) -> bool:
        task = self._tasks.get(job_id)
        return task is not None and not task.done()

    def cancel(self, job_id: str) -> None:
        """Set the job's token; the task stops at its next checkpoint."""
        token = self._tokens.get(job_id)
        if token is not None:
            token.cancel()

    def cancel_all(self) -> None:
        for token in self._tokens.values():
            token.cancel()

    async def join(self, job_id: str) -> None:
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def join_all(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)


# =============================================================================
# Job Controller
# =============================================================================

class JobController:
    """
    Drives a single logical session's analysis job.

    A controller holds at most one live job. Submitting again supersedes the
    previous job, whose continuations become no-ops.

    Example:
        >>> async with ReviewIntelClient() as client:
        ...     async with JobController(client) as controller:
        ...         job = await controller.run("389801252")
        ...         print(job.status)
    """

    def __init__(
        self,
        backend: ReviewBackend,
        settings: Optional[Settings] = None,
        on_event: Optional[EventHook] = None,
        progress_callback: Optional[Callable[[int, str], None]] = None,
        validator: Optional[ValidationService] = None,
    ):
        """
        Initialize the controller.

        Args:
            backend: Backend boundary (usually a ReviewIntelClient)
            settings: Application settings (uses defaults if not provided)
            on_event: Observability hook receiving (event, fields)
            progress_callback: Callback(progress_percent, message) on each update
            validator: Input validator used to clean app ids
        """
        self.backend = backend
        self.settings = settings or get_settings()
        self.on_event = on_event
        self.progress_callback = progress_callback
        self.validator = validator or ValidationService()

        self.scheduler = PollScheduler()
        self.phase: str = JobPhase.IDLE.value
        self.job: Optional[AnalysisJob] = None
        self._closed = False

    async def __aenter__(self) -> "JobController":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def submit(self, app_id: str, include_competitors: bool = True) -> AnalysisJob:
        """
        Start a new analysis job, superseding any job already in flight.

        Returns as soon as the job is terminal or polling has been scheduled.

        Raises:
            ValidationError: If no digits remain after cleaning the app id
            RuntimeError: If the controller has been closed
        """
        if self._closed:
            raise RuntimeError("JobController is closed")
        clean_id = self.validator.validate_app_id(app_id)

        self._supersede()
        job = AnalysisJob(
            job_id=str(uuid4()),
            app_id=clean_id,
            include_competitors=include_competitors,
        )
        self.job = job
        token = self.scheduler.token(job.job_id)

        with LogContext(job_id=job.job_id, app_id=clean_id):
            try:
                await self._submit(job, token)
            finally:
                if not self.scheduler.is_active(job.job_id):
                    self.scheduler.release(job.job_id)

        return job

    async def wait(self) -> Optional[AnalysisJob]:
        """Wait for the current job's polling task to settle."""
        if self.job is None:
            return None
        await self.scheduler.join(self.job.job_id)
        return self.job

    async def run(self, app_id: str, include_competitors: bool = True) -> AnalysisJob:
        """Submit and wait for a terminal state (or cancellation)."""
        job = await self.submit(app_id, include_competitors)
        await self.scheduler.join(job.job_id)
        return job

    def cancel(self) -> None:
        """Cancel the current job without closing the controller."""
        if self.job is not None and not self.job.is_terminal:
            self.scheduler.cancel(self.job.job_id)
            self._event("job.cancelled", self.job)

    async def close(self) -> None:
        """Tear down: set every token and let in-flight continuations exit."""
        if self._closed:
            return
        self._closed = True
        self.scheduler.cancel_all()
        await self.scheduler.join_all()
        emit_event(self.on_event, "controller.closed", phase=self.phase)

    # -------------------------------------------------------------------------
    # Polling
    # -------------------------------------------------------------------------

    def _poll_stop(self, token: CancellationToken) -> stop_base:
        attempts = self.settings.max_poll_attempts
        budget = stop_after_attempt(attempts) if attempts > 0 else stop_never
        return budget | stop_when_cancelled(token)

    async def _submit(self, job: AnalysisJob, token: CancellationToken) -> None:
        self._event("job.submitted", job, include_competitors=job.include_competitors)
        self._set_phase(JobPhase.SUBMITTING, job)

        try:
            response = await self.backend.init_app(job.app_id, job.include_competitors)
        except Exception as e:
            if not self._is_stale(job, token):
                self._fail(job, e)
            return

        if self._is_stale(job, token):
            self._event("job.discarded", job, stage="submit")
            return

        self._apply_status(job, response)
        if job.status == JobStatus.READY.value:
            self._complete(job)
        elif job.status == JobStatus.FAILED.value:
            self._fail(job, JobFailure(self._failure_text(response), app_id=job.app_id))
        else:
            self._set_phase(JobPhase.POLLING, job)
            self.scheduler.schedule(job.job_id, self._poll_loop(job, token))

    async def _poll_loop(self, job: AnalysisJob, token: CancellationToken) -> None:
        retrying = AsyncRetrying(
            retry=retry_if_result(lambda polled: polled is not None and not polled.is_terminal),
            wait=wait_fixed(self.settings.poll_interval_seconds),
            stop=self._poll_stop(token),
            sleep=token.sleep,
            retry_error_callback=lambda state: state.outcome.result(),
        )

        with LogContext(job_id=job.job_id, app_id=job.app_id):
            try:
                result = await retrying(self._poll_once, job, token)
            except Exception as e:
                if not self._is_stale(job, token):
                    self._fail(job, e)
                return

            if result is None or self._is_stale(job, token):
                return
            if not result.is_terminal:
                self._fail(job, AppTimeoutError(
                    f"Analysis did not finish after {job.poll_count} status checks"
                ))

    async def _poll_once(self, job: AnalysisJob, token: CancellationToken) -> Optional[AnalysisJob]:
        """One status check. None means the job was cancelled or superseded."""
        if self._is_stale(job, token):
            return None

        job.poll_count += 1
        self._event("job.poll", job, attempt=job.poll_count)
        response = await self.backend.get_init_status(job.app_id)

        if self._is_stale(job, token):
            self._event("job.discarded", job, stage="poll", attempt=job.poll_count)
            return None

        self._apply_status(job, response)
        if job.status == JobStatus.READY.value:
            self._complete(job)
        elif job.status == JobStatus.FAILED.value:
            self._fail(job, JobFailure(self._failure_text(response), app_id=job.app_id))
        return job

    # -------------------------------------------------------------------------
    # State updates
    # -------------------------------------------------------------------------

    def _is_stale(self, job: AnalysisJob, token: CancellationToken) -> bool:
        return token.cancelled or self.job is not job

    def _supersede(self) -> None:
        previous = self.job
        if previous is not None and not previous.is_terminal:
            self.scheduler.cancel(previous.job_id)
            self.scheduler.release(previous.job_id)
            self._event("job.superseded", previous)

    def _apply_status(self, job: AnalysisJob, response: Any) -> None:
        payload = response if isinstance(response, dict) else {}

        job.status = map_job_status(payload.get("status"), job.status)

        reported = coerce_number(payload.get("progress"))
        if reported is not None:
            clamped = clamp_progress(reported)
            if self.settings.progress_policy == "ratchet":
                clamped = max(job.progress, clamped)
            job.progress = clamped
        if job.status == JobStatus.READY.value:
            job.progress = 100

        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            job.message = message.strip()
        if "steps" in payload:
            job.steps = normalize_steps(payload.get("steps"))

        self._event("job.progress", job, reported=reported)
        if self.progress_callback:
            try:
                self.progress_callback(job.progress, job.message or "")
            except Exception as cb_err:
                logger.warning("Progress callback failed", error=str(cb_err))

    @staticmethod
    def _failure_text(response: Any) -> str:
        if isinstance(response, dict):
            for key in ("error", "message"):
                text = extract_text(response.get(key))
                if text:
                    return text
        return "Analysis failed"

    def _complete(self, job: AnalysisJob) -> None:
        job.status = JobStatus.READY.value
        job.progress = 100
        job.completed_at = datetime.utcnow()
        self._set_phase(JobPhase.READY, job)
        self._event("job.ready", job, polls=job.poll_count)

    def _fail(self, job: AnalysisJob, error: BaseException) -> None:
        job.status = JobStatus.FAILED.value
        job.error = error.message if isinstance(error, AppError) else (str(error) or type(error).__name__)
        job.error_type = ErrorHandler.categorize_error(error)
        job.completed_at = datetime.utcnow()
        self._set_phase(JobPhase.FAILED, job)
        self._event(
            "job.failed",
            job,
            level="error" if not isinstance(error, (JobFailure, TransportError)) else "warning",
            error=job.error,
            error_type=job.error_type,
        )

    def _set_phase(self, phase: JobPhase, job: AnalysisJob) -> None:
        previous, self.phase = self.phase, phase.value
        self._event("job.phase_changed", job, previous=previous, phase=phase.value)

    def _event(self, event: str, job: AnalysisJob, level: str = "info", **fields: Any) -> None:
        emit_event(
            self.on_event,
            event,
            level=level,
            job_id=job.job_id,
            app_id=job.app_id,
            status=job.status,
            progress=job.progress,
            message=job.message,
            **fields,
        )


__all__ = [
    "map_job_status",
    "normalize_steps",
    "clamp_progress",
    "CancellationToken",
    "stop_when_cancelled",
    "PollScheduler",
    "JobController",
]
