"""Generation/QA orchestrator.

Runs one figure job through

    enriching -> generating -> evaluating -> (patching -> generating) | done

Enrichment runs once. Each generation attempt uses a prompt derived from the
original structured prompt and the latest QA report only. The most recent
successful generation is always the one returned.

Failure policy:

* enrichment failure: logged, the user prompt is used as-is
* image backend failure (any ``ProviderError``): aborts the whole job
* evaluator failure: treated as an unavailable report, no retry
* QA hard failures: drive retries; once exhausted they are reported, not raised
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from figforge.enrichment import EnrichedPrompt, FeatureFlags
from figforge.observability.logging import get_logger
from figforge.providers.image import GenerationOptions, GenerationRequest, ImageResult, SourceImage
from figforge.qa.checks import FigureStyle, get_effective_checks
from figforge.qa.remediation import build_attempt_prompt
from figforge.qa.report import QaReport, build_skipped_report

if TYPE_CHECKING:
    from figforge.enrichment import PromptEnricher
    from figforge.providers.image import ImageProvider
    from figforge.qa.evaluator import QaEvaluator

log = get_logger(__name__)


class OrchestratorState(StrEnum):
    ENRICHING = "enriching"
    GENERATING = "generating"
    EVALUATING = "evaluating"
    PATCHING = "patching"
    DONE = "done"


@dataclass(frozen=True)
class FigureJob:
    """A validated request for one figure.

    Attributes:
        prompt: The user's prompt.
        source_image: Image to edit, if any.
        options: Generation options forwarded to the image backend.
        validate_qa: Per-call QA opt-in; None defers to the global setting.
        maintain_character_consistency: Enrichment feature flag.
        blend_images: Enrichment feature flag.
        use_world_knowledge: Enrichment feature flag.
    """

    prompt: str
    source_image: SourceImage | None = None
    options: GenerationOptions = field(default_factory=GenerationOptions)
    validate_qa: bool | None = None
    maintain_character_consistency: bool = False
    blend_images: bool = False
    use_world_knowledge: bool = False

    @property
    def features(self) -> FeatureFlags:
        return FeatureFlags(
            maintain_character_consistency=self.maintain_character_consistency,
            blend_images=self.blend_images,
            use_world_knowledge=self.use_world_knowledge,
            use_google_search=self.options.use_google_search,
            figure_style=self.options.figure_style,
            edit_mode=self.options.edit_mode,
        )


@dataclass
class OrchestrationResult:
    """Outcome of a successful job.

    Attributes:
        artifact: The last generated image.
        qa_report: Final QA report, or None when QA was not active.
        structured_prompt: Prompt after enrichment (the user prompt if skipped).
        generation_calls: Number of image backend calls made.
        evaluation_calls: Number of evaluator calls made.
        enrichment: Enrichment outcome, when enrichment succeeded.
    """

    artifact: ImageResult
    qa_report: QaReport | None
    structured_prompt: str
    generation_calls: int = 0
    evaluation_calls: int = 0
    enrichment: EnrichedPrompt | None = None


class FigureOrchestrator:
    """Drive enrichment, generation and the QA retry loop for one job at a time.

    Holds no per-job state, so one instance can serve concurrent jobs.

    Args:
        image_provider: Image backend.
        evaluator: QA evaluator; without one QA is never active.
        enricher: Prompt enricher; without one enrichment is skipped.
        qa_enabled: Global QA switch.
        qa_max_retries: Extra attempts allowed after a failed QA evaluation.
        enrichment_enabled: Global enrichment switch.
    """

    def __init__(
        self,
        image_provider: ImageProvider,
        *,
        evaluator: QaEvaluator | None = None,
        enricher: PromptEnricher | None = None,
        qa_enabled: bool = False,
        qa_max_retries: int = 1,
        enrichment_enabled: bool = True,
    ) -> None:
        if qa_max_retries < 0:
            raise ValueError(f"qa_max_retries must be >= 0, got {qa_max_retries}")
        self._images = image_provider
        self._evaluator = evaluator
        self._enricher = enricher
        self._qa_enabled = qa_enabled
        self._qa_max_retries = qa_max_retries
        self._enrichment_enabled = enrichment_enabled

    def qa_active(self, job: FigureJob) -> bool:
        """QA runs iff a figure style is set, QA is requested and an evaluator exists."""
        requested = self._qa_enabled or job.validate_qa is True
        return bool(job.options.figure_style) and requested and self._evaluator is not None

    def max_attempts(self, job: FigureJob) -> int:
        return self._qa_max_retries + 1 if self.qa_active(job) else 1

    def _transition(self, state: OrchestratorState, **context: object) -> None:
        log.debug("orchestrator_state", state=state.value, **context)

    async def _enrich(self, job: FigureJob) -> tuple[str, EnrichedPrompt | None]:
        if not self._enrichment_enabled or self._enricher is None:
            log.info("prompt_enrichment_skipped", enabled=self._enrichment_enabled)
            return job.prompt, None

        self._transition(OrchestratorState.ENRICHING)
        try:
            enriched = await self._enricher.enrich(job.prompt, job.features, job.source_image)
        except Exception as e:
            log.warning("prompt_enrichment_failed", error=str(e), error_type=type(e).__name__)
            return job.prompt, None
        return enriched.structured_prompt, enriched

    async def _evaluate(self, job: FigureJob, artifact: ImageResult, attempt: int) -> QaReport:
        assert self._evaluator is not None
        style = FigureStyle(job.options.figure_style)
        started = time.monotonic()
        try:
            report = await self._evaluator.validate(
                artifact.image_data,
                style,
                job.prompt,
                mime_type=artifact.content_type,
            )
        except Exception as e:
            log.warning(
                "qa_evaluation_error",
                attempt=attempt,
                error=str(e),
                error_type=type(e).__name__,
            )
            report = build_skipped_report(style, get_effective_checks(style))
        elapsed_ms = int((time.monotonic() - started) * 1000)
        return report.with_timing(attempts=attempt, evaluation_time_ms=elapsed_ms)

    async def run(self, job: FigureJob) -> OrchestrationResult:
        """Run one job to completion.

        Raises:
            ProviderError: If the image backend fails on any attempt.
        """
        structured_prompt, enrichment = await self._enrich(job)

        qa_active = self.qa_active(job)
        max_attempts = self.max_attempts(job)
        base_request = GenerationRequest(
            prompt=structured_prompt,
            source_image=job.source_image,
            options=job.options,
        )

        artifact: ImageResult | None = None
        report: QaReport | None = None
        generation_calls = 0
        evaluation_calls = 0

        prompt = structured_prompt
        for attempt in range(1, max_attempts + 1):
            self._transition(
                OrchestratorState.GENERATING,
                attempt=attempt,
                max_attempts=max_attempts,
                prompt_length=len(prompt),
            )
            log.info("generation_attempt_start", attempt=attempt, max_attempts=max_attempts)

            generation_calls += 1
            artifact = await self._images.generate(base_request.with_prompt(prompt))

            if not qa_active:
                break

            self._transition(OrchestratorState.EVALUATING, attempt=attempt)
            evaluation_calls += 1
            report = await self._evaluate(job, artifact, attempt)

            if report.unavailable:
                log.warning(
                    "qa_unavailable",
                    attempt=attempt,
                    figure_style=report.figure_style.value,
                )
            else:
                log.info(
                    "qa_attempt_result",
                    attempt=attempt,
                    status=report.status,
                    score=report.score,
                    hard_fail_count=report.hard_fail_count,
                )

            if report.passed or attempt == max_attempts:
                break

            self._transition(OrchestratorState.PATCHING, attempt=attempt)
            prompt = build_attempt_prompt(structured_prompt, report)
            if prompt == structured_prompt:
                # Hard failure without an actionable patch
                log.warning("qa_retry_patch_empty", attempt=attempt)
                break
            log.info(
                "qa_retry_patch",
                attempt=attempt,
                hard_fail_count=report.hard_fail_count,
                failed_checks=[c.id for c in report.hard_failures],
            )

        assert artifact is not None
        self._transition(
            OrchestratorState.DONE,
            generation_calls=generation_calls,
            evaluation_calls=evaluation_calls,
            qa_status=report.status if report else None,
        )
        return OrchestrationResult(
            artifact=artifact,
            qa_report=report,
            structured_prompt=structured_prompt,
            generation_calls=generation_calls,
            evaluation_calls=evaluation_calls,
            enrichment=enrichment,
        )
