"""Synthesis orchestrator.

Turns a campaign's completed interview transcripts into an assessment
report:

1. Resolve the tier and snapshot the completed transcripts
2. Claim the campaign's running marker (single-flight)
3. Score every dimension with bounded parallelism; a fatal error cancels
   the dimension calls still in flight
4. Aggregate pillar and overall scores
5. Generate the executive summary, themes and recommendations
6. Commit the run's usage once and release the marker

Steps 3-6 run in a background task; callers observe progress through the
returned SynthesisHandle or ``status``.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TypeVar
from uuid import UUID

from parley.billing.accumulator import UsageAccumulator
from parley.billing.ledger import UsageLedger
from parley.billing.pricing import CostLedger
from parley.config.models.synthesis import SynthesisConfig
from parley.errors import (
    NoInterviewsError,
    ParleyError,
    UsageCommitError,
    classify_error,
)
from parley.interview.store import InterviewSessionStore
from parley.observability.logging import get_logger, log_context
from parley.observability.metrics import SYNTHESIS_DURATION, SYNTHESIS_JOBS
from parley.providers.llm.base import ModelGateway
from parley.providers.llm.tiers import ReportTier, TierCatalog, TierModel
from parley.retry import RetryPolicy
from parley.synthesis.models import (
    DimensionResult,
    DimensionSpec,
    Framework,
    JobError,
    JobStatus,
    PillarScore,
    SynthesisJob,
    TranscriptSnapshot,
)
from parley.synthesis.parsing import (
    parse_dimension,
    parse_recommendations,
    parse_summary,
    parse_themes,
)
from parley.synthesis.perspectives import extract_perspectives
from parley.synthesis.prompts import (
    dimension_prompt,
    priority_dimensions,
    recommendations_prompt,
    summary_prompt,
    themes_prompt,
)
from parley.synthesis.store import SynthesisJobStore

logger = get_logger(__name__)

T = TypeVar("T")


def _job_error(error: ParleyError) -> JobError:
    return JobError(**error.to_dict())


@dataclass
class SynthesisHandle:
    """Reference to a synthesis run.

    ``started`` is False when the campaign already had a run in flight and
    this handle points at that run instead of a new one. ``job`` is the
    state observed when the handle was created.
    """

    job_id: UUID
    campaign_id: str
    started: bool
    job: SynthesisJob | None
    store: SynthesisJobStore = field(repr=False)
    task: asyncio.Task[SynthesisJob] | None = field(default=None, repr=False)

    async def wait(self, poll_interval: float = 0.5) -> SynthesisJob:
        """Block until the job reaches a terminal state and return it."""
        if self.task is not None:
            self.job = await asyncio.shield(self.task)
            return self.job
        while True:
            job = await self.store.get(self.job_id)
            if job is not None and job.status.is_terminal:
                self.job = job
                return job
            await asyncio.sleep(poll_interval)


class SynthesisOrchestrator:
    """Runs and tracks synthesis jobs per campaign."""

    def __init__(
        self,
        jobs: SynthesisJobStore,
        sessions: InterviewSessionStore,
        gateway: ModelGateway,
        tiers: TierCatalog,
        config: SynthesisConfig,
        *,
        cost_ledger: CostLedger,
        ledger: UsageLedger,
        retry: RetryPolicy | None = None,
        marker_ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._jobs = jobs
        self._sessions = sessions
        self._gateway = gateway
        self._tiers = tiers
        self._config = config
        self._cost_ledger = cost_ledger
        self._ledger = ledger
        self._retry = retry or RetryPolicy.from_config(config.retry)
        self._marker_ttl = marker_ttl_seconds
        self._clock = clock
        self._framework = Framework.from_config(config)
        self._tasks: dict[UUID, asyncio.Task[SynthesisJob]] = {}

    @property
    def framework(self) -> Framework:
        return self._framework

    async def status(self, campaign_id: str) -> SynthesisJob | None:
        """Latest job of the campaign, if any."""
        return await self._jobs.latest(campaign_id)

    async def run(self, campaign_id: str, tier: ReportTier | str) -> SynthesisHandle:
        """Start a synthesis run, or join the one already in flight.

        Raises:
            InvalidTierError: Unknown tier
            NoInterviewsError: The campaign has no completed interviews
        """
        tier_model = self._tiers.resolve(tier)

        sessions = await self._sessions.list_by_campaign(campaign_id, completed_only=True)
        if not sessions:
            logger.warning("synthesis_no_interviews", campaign_id=campaign_id)
            raise NoInterviewsError(campaign_id)
        snapshots = [TranscriptSnapshot.from_session(s) for s in sessions]

        job = SynthesisJob(
            campaign_id=campaign_id,
            tenant_id=sessions[0].tenant_id,
            tier=tier_model.tier,
            model_id=tier_model.model_id,
            session_ids=[s.session_id for s in snapshots],
            created_at=self._clock(),
        )
        while not await self._jobs.acquire_running(campaign_id, job.id, self._marker_ttl):
            handle = await self._join_running(campaign_id)
            if handle is not None:
                return handle

        try:
            previous = await self._jobs.latest(campaign_id, status=JobStatus.SUCCEEDED)
            if previous is not None:
                job.regeneration_count = previous.regeneration_count + 1
                job.regenerated_at = self._clock()
            job.status = JobStatus.RUNNING
            job.started_at = self._clock()
            await self._jobs.save(job)
        except Exception:
            await self._jobs.release_running(campaign_id, job.id)
            raise

        logger.info(
            "synthesis_job_started",
            job_id=str(job.id),
            campaign_id=campaign_id,
            tier=tier_model.tier.value,
            model_id=tier_model.model_id,
            stakeholders=len(snapshots),
            regeneration_count=job.regeneration_count,
        )
        with log_context(job_id=job.id, campaign_id=campaign_id, tenant_id=job.tenant_id):
            task = asyncio.create_task(self._execute(job, snapshots, tier_model))
        self._tasks[job.id] = task
        task.add_done_callback(lambda _t, job_id=job.id: self._tasks.pop(job_id, None))
        return SynthesisHandle(
            job_id=job.id,
            campaign_id=campaign_id,
            started=True,
            job=job.model_copy(deep=True),
            store=self._jobs,
            task=task,
        )

    async def drain(self) -> None:
        """Wait for every in-flight run started by this orchestrator."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _join_running(self, campaign_id: str) -> SynthesisHandle | None:
        """Handle to the run holding the marker, or None if it was just released."""
        running_id = await self._jobs.running_job_id(campaign_id)
        if running_id is not None:
            job = await self._jobs.get(running_id)
        else:
            job = await self._jobs.latest(campaign_id)
            if job is None:
                return None
            running_id = job.id

        logger.info(
            "synthesis_job_joined",
            campaign_id=campaign_id,
            job_id=str(running_id),
            status=job.status.value if job else JobStatus.PENDING.value,
        )
        return SynthesisHandle(
            job_id=running_id,
            campaign_id=campaign_id,
            started=False,
            job=job,
            store=self._jobs,
            task=self._tasks.get(running_id),
        )

    async def _execute(
        self,
        job: SynthesisJob,
        snapshots: list[TranscriptSnapshot],
        tier_model: TierModel,
    ) -> SynthesisJob:
        started = time.monotonic()
        accumulator = UsageAccumulator(
            self._cost_ledger,
            self._ledger,
            operation="synthesis",
            metadata={
                "job_id": str(job.id),
                "campaign_id": job.campaign_id,
                "tier": tier_model.tier.value,
            },
        )
        try:
            try:
                await self._analyze(job, snapshots, tier_model, accumulator)
                job.status = JobStatus.SUCCEEDED
            except Exception as e:
                error = classify_error(e)
                job.status = JobStatus.FAILED
                job.last_error = _job_error(error)
                logger.error(
                    "synthesis_job_failed",
                    job_id=str(job.id),
                    campaign_id=job.campaign_id,
                    error_code=error.code,
                    error=error.message,
                    dimensions_completed=len(job.dimensions),
                    retry_count=job.retry_count,
                )

            job.usage = accumulator.totals()
            try:
                await accumulator.commit(job.tenant_id)
            except UsageCommitError as e:
                job.usage_error = _job_error(e)

            job.finished_at = self._clock()
            await self._jobs.save(job)
        finally:
            try:
                await self._jobs.release_running(job.campaign_id, job.id)
            finally:
                duration = time.monotonic() - started
                SYNTHESIS_JOBS.labels(tier=tier_model.tier.value, status=job.status.value).inc()
                SYNTHESIS_DURATION.labels(tier=tier_model.tier.value).observe(duration)

        logger.info(
            "synthesis_job_finished",
            job_id=str(job.id),
            campaign_id=job.campaign_id,
            status=job.status.value,
            overall_score=job.overall_score,
            retry_count=job.retry_count,
            tokens=job.usage.total_tokens if job.usage else 0,
            cost_cents=job.usage.cost_cents if job.usage else 0,
            duration_seconds=round(duration, 3),
        )
        return job.model_copy(deep=True)

    async def _analyze(
        self,
        job: SynthesisJob,
        snapshots: list[TranscriptSnapshot],
        tier_model: TierModel,
        accumulator: UsageAccumulator,
    ) -> None:
        framework = self._framework
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def score(spec: DimensionSpec) -> DimensionResult:
            async with semaphore:
                return await self._call(
                    job,
                    tier_model,
                    accumulator,
                    prompt=dimension_prompt(spec, snapshots, framework.maturity_scale),
                    max_tokens=self._config.dimension_max_tokens,
                    call_type=f"dimension:{spec.id}",
                    parse=lambda text: parse_dimension(text, spec),
                )

        tasks = [asyncio.create_task(score(spec)) for spec in framework.dimensions]
        fatal = await self._await_dimensions(job, tasks)

        job.dimensions = [
            t.result() for t in tasks if not t.cancelled() and t.exception() is None
        ]
        if fatal is not None:
            raise fatal
        failures = [t.exception() for t in tasks if not t.cancelled() and t.exception()]
        if failures:
            raise failures[0]
        logger.info(
            "synthesis_dimensions_scored",
            job_id=str(job.id),
            dimensions=len(job.dimensions),
        )

        job.pillars = self._pillar_scores(job.dimensions)
        job.overall_score = round(sum(p.weight * p.score for p in job.pillars), 2)
        await self._jobs.save(job)

        job.executive_summary = await self._call(
            job,
            tier_model,
            accumulator,
            prompt=summary_prompt(
                job.campaign_id,
                len(snapshots),
                job.overall_score,
                job.pillars,
                job.dimensions,
            ),
            max_tokens=self._config.summary_max_tokens,
            call_type="executive_summary",
            parse=parse_summary,
        )
        job.themes, job.contradictions = await self._call(
            job,
            tier_model,
            accumulator,
            prompt=themes_prompt(job.dimensions),
            max_tokens=self._config.themes_max_tokens,
            call_type="themes",
            parse=parse_themes,
        )
        focus = priority_dimensions(job.dimensions, self._config.max_recommendation_dimensions)
        job.recommendations = await self._call(
            job,
            tier_model,
            accumulator,
            prompt=recommendations_prompt(focus),
            max_tokens=self._config.recommendations_max_tokens,
            call_type="recommendations",
            parse=parse_recommendations,
        )
        job.stakeholder_perspectives = extract_perspectives(snapshots)

    async def _await_dimensions(
        self, job: SynthesisJob, tasks: list[asyncio.Task[DimensionResult]]
    ) -> BaseException | None:
        """Wait for the dimension calls, cancelling the rest on the first fatal error.

        Retryable failures that exhausted their attempts let the other
        dimensions finish. Returns the fatal error, if any.
        """
        pending: set[asyncio.Task[DimensionResult]] = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_EXCEPTION
                )
                for task in done:
                    if task.cancelled() or task.exception() is None:
                        continue
                    error = task.exception()
                    if not classify_error(error).retryable:
                        logger.warning(
                            "synthesis_dimensions_cancelled",
                            job_id=str(job.id),
                            cancelled=len(pending),
                            error_code=classify_error(error).code,
                        )
                        return error
            return None
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    def _pillar_scores(self, dimensions: list[DimensionResult]) -> list[PillarScore]:
        by_id = {d.dimension_id: d for d in dimensions}
        pillars = []
        for pillar in self._framework.pillars:
            scores = [by_id[i].score for i in pillar.dimension_ids]
            pillars.append(
                PillarScore(
                    pillar=pillar.name,
                    weight=pillar.weight,
                    score=round(sum(scores) / len(scores), 2),
                    dimension_ids=list(pillar.dimension_ids),
                )
            )
        return pillars

    async def _call(
        self,
        job: SynthesisJob,
        tier_model: TierModel,
        accumulator: UsageAccumulator,
        *,
        prompt: str,
        max_tokens: int,
        call_type: str,
        parse: Callable[[str], T],
    ) -> T:
        """One model call under the retry policy.

        Tokens are recorded before parsing, so attempts whose output fails
        to parse are still billed.
        """

        async def attempt() -> T:
            completion = await self._gateway.complete(
                prompt,
                tier_model.model_id,
                max_tokens=max_tokens,
                temperature=self._config.temperature,
            )
            await accumulator.record(
                tier_model.pricing_key,
                completion.tokens_in,
                completion.tokens_out,
                call_type=call_type,
            )
            return parse(completion.text)

        def on_error(error: ParleyError, attempt_index: int) -> None:
            if error.retryable and attempt_index + 1 < self._retry.max_attempts:
                job.retry_count += 1
            logger.warning(
                "synthesis_call_failed",
                job_id=str(job.id),
                call_type=call_type,
                attempt=attempt_index + 1,
                error_code=error.code,
            )

        operation = "synthesis_" + call_type.split(":")[0]
        return await self._retry.run(attempt, operation=operation, on_error=on_error)

