"""
Unit tests for the evaluation service.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.errors import ServiceError
from shared.metrics import MetricsCollector
from service_flags.app.errors import FlagNotFoundError
from service_flags.app.evaluation import EvaluationService
from service_flags.app.persistence.repository import InMemoryFlagRepository
from service_flags.app.rules.models import Flag, Rule, RuleLogic, EvaluationContext


class TestEvaluationService:
    """Test cases for EvaluationService."""

    @pytest.fixture
    def repository(self):
        """Repository with project, tenant-level and foreign flags."""
        repository = InMemoryFlagRepository()
        repository.add_flag(Flag(
            id="us-only", tenant_id="tenant-1", project_id="web", name="US only", enabled=True,
            rule_logic=RuleLogic.AND,
            rules=[Rule(attribute="country", operator="equals", value="US", rollout=100)]
        ))
        repository.add_flag(Flag(
            id="kill-switched", tenant_id="tenant-1", project_id="web", name="Off", enabled=False
        ))
        repository.add_flag(Flag(
            id="tenant-wide", tenant_id="tenant-1", name="Tenant wide", enabled=True
        ))
        repository.add_flag(Flag(
            id="mobile", tenant_id="tenant-1", project_id="mobile", name="Mobile", enabled=True
        ))
        repository.add_flag(Flag(
            id="foreign", tenant_id="tenant-2", project_id="web", name="Foreign", enabled=True
        ))
        return repository

    @pytest.fixture
    def metrics(self):
        """Flags metrics collector with its own registry."""
        return MetricsCollector("flags")

    @pytest.fixture
    def service(self, repository, metrics):
        """Create EvaluationService instance."""
        return EvaluationService(repository, metrics=metrics)

    @pytest.mark.asyncio
    async def test_evaluate_all(self, service):
        """Test bulk evaluation covers exactly the project's visible flags."""
        context = EvaluationContext("user1", {"country": "US"})

        results = await service.evaluate_all("web", "tenant-1", context)

        assert results == {"us-only": True, "kill-switched": False, "tenant-wide": True}

    @pytest.mark.asyncio
    async def test_evaluate_all_non_matching_context(self, service):
        """Test per-flag results follow each flag's own rules."""
        context = EvaluationContext("user1", {"country": "AU"})

        results = await service.evaluate_all("web", "tenant-1", context)

        assert results["us-only"] is False
        assert results["tenant-wide"] is True

    @pytest.mark.asyncio
    async def test_evaluate_all_unknown_project(self, service):
        """Test an unknown project still sees tenant-level flags."""
        results = await service.evaluate_all("unknown", "tenant-1", EvaluationContext("user1"))

        assert results == {"tenant-wide": True}

    @pytest.mark.asyncio
    async def test_evaluate_all_records_metrics(self, service, metrics):
        """Test bulk evaluation updates the evaluation counters."""
        await service.evaluate_all("web", "tenant-1", EvaluationContext("user1", {"country": "US"}))

        registry = metrics.registry
        assert registry.get_sample_value("flag_evaluations_total", {"result": "enabled"}) == 2.0
        assert registry.get_sample_value("flag_evaluations_total", {"result": "disabled"}) == 1.0
        assert registry.get_sample_value("bulk_evaluations_total") == 1.0

    @pytest.mark.asyncio
    async def test_evaluate_all_repository_failure(self):
        """Test repository failures surface as ServiceError."""
        repository = MagicMock()
        repository.list_flags_for_project = AsyncMock(side_effect=ConnectionError("db down"))
        service = EvaluationService(repository)

        with pytest.raises(ServiceError) as exc_info:
            await service.evaluate_all("web", "tenant-1", EvaluationContext("user1"))

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_evaluate_single(self, service):
        """Test single evaluation returns the flag ID and state."""
        flag_id, enabled = await service.evaluate_single(
            "us-only", "tenant-1", EvaluationContext("user1", {"country": "US"})
        )

        assert flag_id == "us-only"
        assert enabled is True

    @pytest.mark.asyncio
    async def test_evaluate_single_not_found(self, service):
        """Test an unknown flag raises FlagNotFoundError."""
        with pytest.raises(FlagNotFoundError) as exc_info:
            await service.evaluate_single("missing", "tenant-1", EvaluationContext("user1"))

        assert exc_info.value.status_code == 404
        assert exc_info.value.code == "FLAG_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_evaluate_single_other_tenant(self, service):
        """Test another tenant's flag is reported as not found."""
        with pytest.raises(FlagNotFoundError):
            await service.evaluate_single("foreign", "tenant-1", EvaluationContext("user1"))

    @pytest.mark.asyncio
    async def test_evaluate_single_repository_failure(self):
        """Test repository failures surface as ServiceError."""
        repository = MagicMock()
        repository.get_flag = AsyncMock(side_effect=ConnectionError("db down"))
        service = EvaluationService(repository)

        with pytest.raises(ServiceError):
            await service.evaluate_single("us-only", "tenant-1", EvaluationContext("user1"))
