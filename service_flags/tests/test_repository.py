"""
Unit tests for the in-memory flag repository.
"""

import json
import pytest
from datetime import datetime

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_flags.app.errors import FlagDefinitionError
from service_flags.app.persistence.repository import InMemoryFlagRepository, flag_from_dict
from service_flags.app.rules.models import Flag, RuleLogic


FLAGS_YAML = """
flags:
  - id: checkout
    tenant_id: tenant-1
    project_id: web
    name: Checkout
    enabled: true
    rule_logic: AND
    created_at: 2025-12-18T06:59:59
    rules:
      - id: r1
        attribute: country
        operator: equals
        value: US
        rollout: 50
  - id: banner
    tenant_id: tenant-1
    name: Banner
    enabled: true
  - id: mobile-only
    tenant_id: tenant-1
    project_id: mobile
    name: Mobile only
    enabled: true
  - id: other-tenant
    tenant_id: tenant-2
    project_id: web
    name: Other tenant
    enabled: true
"""


class TestFlagFromDict:
    """Test cases for flag_from_dict()."""

    def test_minimal_flag(self):
        """Test defaults for a flag with only required fields."""
        flag = flag_from_dict({"id": "f1", "tenant_id": "t1", "name": "F1"})

        assert flag.enabled is False
        assert flag.rules == []
        assert flag.project_id is None
        assert flag.rule_logic is RuleLogic.AND

    def test_missing_required_fields(self):
        """Test required fields are reported."""
        with pytest.raises(FlagDefinitionError) as exc_info:
            flag_from_dict({"id": "f1"})

        assert exc_info.value.details["missing"] == ["tenant_id", "name"]
        assert exc_info.value.code == "VALIDATION_ERROR"

    def test_rule_without_rollout_defaults_to_zero(self):
        """Test a rule missing its rollout gets 0."""
        flag = flag_from_dict({
            "id": "f1", "tenant_id": "t1", "name": "F1",
            "rules": [{"attribute": "country", "operator": "equals", "value": "US"}]
        })

        assert flag.rules[0].rollout == 0

    @pytest.mark.parametrize("enabled", ["false", "true", 0, 1, None])
    def test_non_boolean_enabled_rejected(self, enabled):
        """Test 'enabled' must be a real boolean."""
        with pytest.raises(FlagDefinitionError) as exc_info:
            flag_from_dict({"id": "f1", "tenant_id": "t1", "name": "F1", "enabled": enabled})

        assert exc_info.value.details["flag_id"] == "f1"

    def test_whole_float_rollout_accepted(self):
        """Test a whole-number float rollout loads as an int."""
        flag = flag_from_dict({
            "id": "f1", "tenant_id": "t1", "name": "F1",
            "rules": [{"attribute": "country", "operator": "equals", "value": "US", "rollout": 50.0}]
        })

        assert flag.rules[0].rollout == 50
        assert isinstance(flag.rules[0].rollout, int)

    @pytest.mark.parametrize("rollout", [-1, 101, "lots", "50", 49.9, True, False, [50]])
    def test_invalid_rollout_rejected(self, rollout):
        """Test rollouts outside 0-100 or not stored as whole numbers are rejected."""
        with pytest.raises(FlagDefinitionError):
            flag_from_dict({
                "id": "f1", "tenant_id": "t1", "name": "F1",
                "rules": [{"attribute": "country", "operator": "equals", "value": "US", "rollout": rollout}]
            })

    def test_rule_requires_attribute_and_operator(self):
        """Test incomplete rules are rejected."""
        with pytest.raises(FlagDefinitionError):
            flag_from_dict({
                "id": "f1", "tenant_id": "t1", "name": "F1",
                "rules": [{"attribute": "country", "value": "US"}]
            })

    def test_unknown_operator_is_kept(self):
        """Test rules with operators this version does not know still load."""
        flag = flag_from_dict({
            "id": "f1", "tenant_id": "t1", "name": "F1",
            "rules": [{"attribute": "email", "operator": "ends_with", "value": "@example.com", "rollout": 100}]
        })

        assert flag.rules[0].operator == "ends_with"

    def test_unrecognized_logic_maps_to_or(self):
        """Test rule_logic other than exactly AND loads as OR."""
        flag = flag_from_dict({"id": "f1", "tenant_id": "t1", "name": "F1", "rule_logic": "and"})

        assert flag.rule_logic is RuleLogic.OR

    def test_invalid_timestamp_rejected(self):
        """Test malformed timestamps are rejected."""
        with pytest.raises(FlagDefinitionError):
            flag_from_dict({"id": "f1", "tenant_id": "t1", "name": "F1", "created_at": "yesterday"})


class TestInMemoryFlagRepository:
    """Test cases for InMemoryFlagRepository."""

    @pytest.fixture
    def flags_file(self, tmp_path):
        """Write a YAML flag definitions file."""
        path = tmp_path / "flags.yaml"
        path.write_text(FLAGS_YAML)
        return str(path)

    @pytest.fixture
    def repository(self, flags_file):
        """Create a repository loaded from the YAML file."""
        repository = InMemoryFlagRepository()
        repository.load_from_file(flags_file)
        return repository

    def test_load_from_yaml(self, repository):
        """Test every flag of the document is loaded."""
        assert repository.flag_count() == 4

    def test_load_parses_timestamps(self, repository):
        """Test YAML timestamps are kept."""
        flag = repository._flags["checkout"]

        assert flag.created_at == datetime(2025, 12, 18, 6, 59, 59)
        assert flag.rules[0].rollout == 50

    def test_load_from_json(self, tmp_path):
        """Test JSON documents load as well."""
        path = tmp_path / "flags.json"
        path.write_text(json.dumps({
            "flags": [{"id": "f1", "tenant_id": "t1", "name": "F1", "enabled": True}]
        }))
        repository = InMemoryFlagRepository()

        assert repository.load_from_file(str(path)) == 1

    def test_load_missing_file(self, tmp_path):
        """Test a missing file raises FlagDefinitionError."""
        repository = InMemoryFlagRepository()

        with pytest.raises(FlagDefinitionError):
            repository.load_from_file(str(tmp_path / "missing.yaml"))

    def test_load_without_flags_list(self, tmp_path):
        """Test a document without a flags list is rejected."""
        path = tmp_path / "flags.yaml"
        path.write_text("flag: nope\n")
        repository = InMemoryFlagRepository()

        with pytest.raises(FlagDefinitionError):
            repository.load_from_file(str(path))

    @pytest.mark.asyncio
    async def test_start_loads_configured_file(self, flags_file):
        """Test start() loads the configured flags file."""
        repository = InMemoryFlagRepository(flags_file)

        await repository.start()

        assert repository.flag_count() == 4
        assert await repository.health_check() is True

    @pytest.mark.asyncio
    async def test_get_flag_within_tenant(self, repository):
        """Test a flag is returned to its own tenant."""
        flag = await repository.get_flag("checkout", "tenant-1")

        assert flag is not None
        assert flag.name == "Checkout"

    @pytest.mark.asyncio
    async def test_get_flag_other_tenant(self, repository):
        """Test a flag is hidden from other tenants."""
        assert await repository.get_flag("checkout", "tenant-2") is None
        assert await repository.get_flag("does-not-exist", "tenant-1") is None

    @pytest.mark.asyncio
    async def test_list_flags_for_project(self, repository):
        """Test project listing includes tenant-level flags only from the same tenant."""
        flags = await repository.list_flags_for_project("web", "tenant-1")

        assert [f.id for f in flags] == ["checkout", "banner"]

    @pytest.mark.asyncio
    async def test_add_and_remove_flag(self):
        """Test flags can be added, replaced and removed."""
        repository = InMemoryFlagRepository()
        repository.add_flag(Flag(id="f1", tenant_id="t1", name="First"))
        repository.add_flag(Flag(id="f1", tenant_id="t1", name="Replaced"))

        assert repository.flag_count() == 1
        assert (await repository.get_flag("f1", "t1")).name == "Replaced"
        assert repository.remove_flag("f1") is True
        assert repository.remove_flag("f1") is False
