"""Analysis orchestrator: load, generate, validate, persist, then side effects."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field

from recruit_analysis.clients.llm_client import LLMClient
from recruit_analysis.errors import EntityNotFoundError, GenerationError, PermanentAnalysisError
from recruit_analysis.logging.models import AnalysisRunLog
from recruit_analysis.logging.run_store import RunLogStore
from recruit_analysis.models.analysis import AnalysisResult
from recruit_analysis.models.entity import EntityData
from recruit_analysis.models.job import EntityKind, EntityStatus
from recruit_analysis.models.outcomes import AttemptOutcome, Valid
from recruit_analysis.notifications.notifier import Notifier, build_notification_payload
from recruit_analysis.pipeline.base_task import AnalysisTask
from recruit_analysis.pipeline.cv_feedback import CVFeedbackTask
from recruit_analysis.pipeline.job_match import JobMatchTask
from recruit_analysis.pipeline.profile_extraction import ProfileExtractionTask
from recruit_analysis.pipeline.skill_extractor import SkillExtractor
from recruit_analysis.pipeline.validator import fallback_result, recover_partial, validate_result
from recruit_analysis.store.analysis_store import AnalysisStore
from recruit_analysis.utils.json_parser import extract_json

logger = logging.getLogger(__name__)


@dataclass
class AnalysisRun:
    """What one orchestrator run produced."""

    entity_id: str
    kind: EntityKind
    result: AnalysisResult
    outcome: str  # "valid" | "recovered" | "fallback"
    attempts: list[AttemptOutcome] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def failed_attempts(self) -> int:
        return sum(1 for a in self.attempts if a.status != "valid")


def default_tasks(
    llm: LLMClient, skill_extractor: SkillExtractor | None = None
) -> dict[EntityKind, AnalysisTask]:
    return {
        EntityKind.PROFILE_EXTRACTION: ProfileExtractionTask(llm, skill_extractor),
        EntityKind.JOB_MATCH: JobMatchTask(llm),
        EntityKind.CV_FEEDBACK: CVFeedbackTask(llm),
    }


class AnalysisOrchestrator:
    """Runs one analysis for one entity end to end.

    Generation, parse and validation failures are retried up to
    ``max_attempts`` times and then degrade to a recovered or fallback
    result, so a run that gets past loading always persists something.
    Only a missing or unanalyzable entity (``PermanentAnalysisError``) and
    datastore failures (``StoreError``) reach the caller.
    """

    def __init__(
        self,
        llm: LLMClient,
        store: AnalysisStore,
        *,
        notifier: Notifier | None = None,
        tasks: dict[EntityKind, AnalysisTask] | None = None,
        skill_extractor: SkillExtractor | None = None,
        run_log: RunLogStore | None = None,
        max_attempts: int = 3,
    ):
        self.store = store
        self.notifier = notifier
        self.tasks = tasks or default_tasks(llm, skill_extractor)
        self.run_log = run_log
        self.max_attempts = max(1, max_attempts)

    async def run_analysis(self, entity_id: str, kind: EntityKind | str) -> AnalysisRun:
        kind = EntityKind(kind)
        task = self.tasks[kind]
        start = time.monotonic()
        logger.info("Starting %s analysis for %s", kind.value, entity_id)

        entity = await self.store.load_entity(entity_id, kind)
        if entity is None:
            error = EntityNotFoundError(kind.value, entity_id)
            await self.store.update_status(entity_id, kind, EntityStatus.ANALYSIS_FAILED, str(error))
            self._record_failure(entity_id, kind, "not_found", error, start)
            raise error

        try:
            task.check(entity)
        except PermanentAnalysisError as exc:
            await self.store.update_status(entity_id, kind, EntityStatus.ANALYSIS_FAILED, str(exc))
            self._record_failure(entity_id, kind, "not_analyzable", exc, start)
            raise

        await self.store.update_status(entity_id, kind, EntityStatus.ANALYZING)

        prompt = task.build_prompt(entity)
        result, outcome, attempts = await self._generate_result(task, entity, prompt)

        await self.store.save_analysis_result(entity_id, kind, result)
        await self.store.update_status(entity_id, kind, EntityStatus.ANALYZED)

        await self._run_side_effects(task, entity, result)

        run = AnalysisRun(
            entity_id=entity_id,
            kind=kind,
            result=result,
            outcome=outcome,
            attempts=attempts,
            elapsed_seconds=time.monotonic() - start,
        )
        logger.info(
            "Finished %s analysis for %s: %s, score %d after %d attempt(s) in %.1fs",
            kind.value,
            entity_id,
            outcome,
            result.summary.score,
            len(attempts),
            run.elapsed_seconds,
        )
        self._record(
            AnalysisRunLog(
                entity_id=entity_id,
                entity_kind=kind.value,
                outcome=outcome,
                attempts=len(attempts),
                failed_attempts=run.failed_attempts,
                score=result.summary.score,
                elapsed_seconds=run.elapsed_seconds,
            )
        )
        return run

    async def _generate_result(
        self, task: AnalysisTask, entity: EntityData, prompt: str
    ) -> tuple[AnalysisResult, str, list[AttemptOutcome]]:
        attempts: list[AttemptOutcome] = []
        last_payload: dict | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                text = await task.generate(entity, prompt)
            except GenerationError as exc:
                logger.warning(
                    "Attempt %d/%d for %s: generation failed: %s",
                    attempt, self.max_attempts, entity.entity_id, exc,
                )
                attempts.append(AttemptOutcome(attempt, "generation_error", str(exc)))
                continue

            raw = extract_json(text)
            if raw is None:
                logger.warning(
                    "Attempt %d/%d for %s: no JSON object in response",
                    attempt, self.max_attempts, entity.entity_id,
                )
                attempts.append(AttemptOutcome(attempt, "unparseable", text[:200]))
                await task.discard(entity, prompt)
                continue

            payload = json.loads(raw)
            if isinstance(payload, dict):
                last_payload = payload

            validation = validate_result(payload, task.kind)
            if isinstance(validation, Valid):
                attempts.append(AttemptOutcome(attempt, "valid"))
                return validation.result, "valid", attempts

            logger.warning(
                "Attempt %d/%d for %s: invalid result: %s",
                attempt, self.max_attempts, entity.entity_id, "; ".join(validation.errors[:3]),
            )
            attempts.append(AttemptOutcome(attempt, "invalid", "; ".join(validation.errors)))
            await task.discard(entity, prompt)

        if last_payload is not None:
            logger.warning("Recovering partial result for %s", entity.entity_id)
            return recover_partial(last_payload, task.kind), "recovered", attempts

        logger.error("Using fallback result for %s after %d attempts", entity.entity_id, len(attempts))
        return fallback_result(task.kind), "fallback", attempts

    async def _run_side_effects(
        self, task: AnalysisTask, entity: EntityData, result: AnalysisResult
    ) -> None:
        # The result is already persisted; nothing here may fail the run.
        try:
            fields = task.derive_fields(entity, result)
            if fields:
                await self.store.save_derived_fields(entity.entity_id, task.kind, fields)
        except Exception:
            logger.exception("Saving derived fields failed for %s", entity.entity_id)

        try:
            await task.after_persist(entity, result, self.store)
        except Exception:
            logger.exception("Post-processing failed for %s", entity.entity_id)

        if self.notifier is None:
            return
        recipient = task.recipient(entity)
        if recipient is None:
            return
        name, address = recipient
        try:
            await self.notifier.send_analysis_result(
                address, build_notification_payload(name, result)
            )
        except Exception:
            logger.exception("Notification failed for %s", entity.entity_id)

    def _record_failure(
        self,
        entity_id: str,
        kind: EntityKind,
        outcome: str,
        error: Exception,
        start: float,
    ) -> None:
        logger.error("%s analysis for %s failed permanently: %s", kind.value, entity_id, error)
        self._record(
            AnalysisRunLog(
                entity_id=entity_id,
                entity_kind=kind.value,
                outcome=outcome,
                elapsed_seconds=time.monotonic() - start,
                success=False,
                error_message=str(error),
            )
        )

    def _record(self, log: AnalysisRunLog) -> None:
        if self.run_log is None:
            return
        try:
            self.run_log.save_log(log)
        except Exception:
            logger.warning("Failed to write run log for %s", log.entity_id, exc_info=True)
