"""
Flags service for the Toggle platform.
"""

from typing import Optional

from fastapi import Header

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.logging import set_user_context

from .evaluation import EvaluationService
from .persistence.repository import FlagRepository, InMemoryFlagRepository
from .rules.engine import FlagEvaluator
from .rules.models import EvaluationRequest, EvaluationResponse, SingleEvaluationResponse


class FlagsService(BaseService):
    """Flags service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None,
                 repository: Optional[FlagRepository] = None):
        super().__init__("flags", 8013, config)

        self.repository = repository or InMemoryFlagRepository(self.config.flags_file)
        self.evaluator = FlagEvaluator()
        self.evaluation = EvaluationService(self.repository, self.evaluator, self.metrics)

        self._setup_flags_routes()

    def _setup_flags_routes(self):
        """Set up flag evaluation routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "flags",
                "message": "Toggle - Flags Service",
                "version": "1.0.0",
                "capabilities": ["bulk_evaluation", "single_evaluation", "percentage_rollout"]
            }

        @self.app.post("/evaluate", response_model=EvaluationResponse)
        async def evaluate_all(
            request: EvaluationRequest,
            tenant_id: str = Header(..., alias="X-Tenant-ID", min_length=1),
            project_id: str = Header(..., alias="X-Project-ID", min_length=1)
        ):
            """Evaluate every flag of the calling project."""
            set_user_context(request.context.user_id, tenant_id)
            flags = await self.evaluation.evaluate_all(project_id, tenant_id, request.context.to_context())
            return EvaluationResponse(flags=flags)

        @self.app.post("/flags/{flag_id}/evaluate", response_model=SingleEvaluationResponse)
        async def evaluate_single(
            flag_id: str,
            request: EvaluationRequest,
            tenant_id: str = Header(..., alias="X-Tenant-ID", min_length=1)
        ):
            """Evaluate a single flag."""
            set_user_context(request.context.user_id, tenant_id)
            flag_id, enabled = await self.evaluation.evaluate_single(
                flag_id, tenant_id, request.context.to_context()
            )
            return SingleEvaluationResponse(flag_id=flag_id, enabled=enabled)

    async def _check_dependencies(self):
        """Check flags service dependencies."""
        try:
            healthy = await self.repository.health_check()
        except Exception:
            healthy = False
        return {"flag_repository": "ok" if healthy else "error"}

    async def start(self):
        """Start flags service components."""
        await self.repository.start()

        if isinstance(self.repository, InMemoryFlagRepository):
            self.metrics.set_gauge("flags_loaded", self.repository.flag_count())

        self.logger.info("Flags service started")

    async def stop(self):
        """Stop flags service components."""
        await self.repository.stop()
        self.logger.info("Flags service stopped")


def create_app(config: Optional[ServiceConfig] = None, repository: Optional[FlagRepository] = None):
    """Create flags service application."""
    service = FlagsService(config, repository)
    return service.app


if __name__ == "__main__":
    service = FlagsService()
    service.run()
