"""
Evaluation service: fetches tenant-scoped flags and evaluates them.
"""

import time
from typing import Dict, Optional, Tuple

from shared.errors import ServiceError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .errors import FlagNotFoundError
from .persistence.repository import FlagRepository
from .rules.engine import FlagEvaluator
from .rules.models import EvaluationContext


class EvaluationService:
    """Bulk and single flag evaluation on top of a flag repository."""

    def __init__(self, repository: FlagRepository, evaluator: Optional[FlagEvaluator] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.repository = repository
        self.evaluator = evaluator or FlagEvaluator()
        self.metrics = metrics
        self.logger = get_logger("flags.evaluation")

    async def evaluate_all(self, project_id: str, tenant_id: str,
                           context: EvaluationContext) -> Dict[str, bool]:
        """Evaluate every flag visible to the project; keyed by flag ID."""
        start_time = time.time()

        try:
            flags = await self.repository.list_flags_for_project(project_id, tenant_id)
        except Exception as e:
            self.logger.error(
                "Failed to fetch flags for evaluation",
                project_id=project_id,
                tenant_id=tenant_id,
                error=str(e)
            )
            raise ServiceError("Flag evaluation failed", {"project_id": project_id})

        results: Dict[str, bool] = {}
        for flag in flags:
            enabled = self.evaluator.evaluate(flag, context)
            results[flag.id] = enabled
            self._record_result(enabled)

            self.logger.debug(
                "Flag evaluated",
                flag_id=flag.id,
                flag_name=flag.name,
                enabled=enabled,
                user_id=context.user_id
            )

        if self.metrics:
            self.metrics.increment_counter("bulk_evaluations_total")
            self.metrics.observe_histogram("flag_evaluation_duration_seconds",
                                           time.time() - start_time, mode="bulk")

        self.logger.info(
            "Bulk evaluation completed",
            project_id=project_id,
            tenant_id=tenant_id,
            user_id=context.user_id,
            flags_evaluated=len(results)
        )

        return results

    async def evaluate_single(self, flag_id: str, tenant_id: str,
                              context: EvaluationContext) -> Tuple[str, bool]:
        """Evaluate one flag; raises FlagNotFoundError outside the tenant's scope."""
        start_time = time.time()

        try:
            flag = await self.repository.get_flag(flag_id, tenant_id)
        except Exception as e:
            self.logger.error(
                "Failed to fetch flag for evaluation",
                flag_id=flag_id,
                tenant_id=tenant_id,
                error=str(e)
            )
            raise ServiceError("Flag evaluation failed", {"flag_id": flag_id})

        if flag is None:
            raise FlagNotFoundError(flag_id)

        detail = self.evaluator.explain(flag, context)
        self._record_result(detail.enabled)

        if self.metrics:
            self.metrics.observe_histogram("flag_evaluation_duration_seconds",
                                           time.time() - start_time, mode="single")

        self.logger.info(
            "Flag evaluated",
            flag_id=flag_id,
            flag_name=flag.name,
            enabled=detail.enabled,
            outcome=detail.outcome.value,
            user_id=context.user_id
        )

        return flag_id, detail.enabled

    def _record_result(self, enabled: bool):
        if self.metrics:
            self.metrics.increment_counter("flag_evaluations_total", result="enabled" if enabled else "disabled")
