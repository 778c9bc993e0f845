"""
Flag storage for the Flags Service.

Flags reach the evaluator through a ``FlagRepository``. Lookups are always
scoped by tenant; a flag owned by another tenant is indistinguishable from a
missing one.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional, List

import yaml

from shared.logging import get_logger
from ..errors import FlagDefinitionError
from ..rules.models import Flag, Rule, RuleLogic


class FlagRepository(ABC):
    """Tenant-scoped read access to flag definitions."""

    async def start(self):
        """Start the repository."""

    async def stop(self):
        """Stop the repository."""

    async def health_check(self) -> bool:
        """Check repository health."""
        return True

    @abstractmethod
    async def get_flag(self, flag_id: str, tenant_id: str) -> Optional[Flag]:
        """Return the flag if it exists within the tenant."""

    @abstractmethod
    async def list_flags_for_project(self, project_id: str, tenant_id: str) -> List[Flag]:
        """Return the project's flags plus the tenant-level flags."""


class InMemoryFlagRepository(FlagRepository):
    """Dictionary-backed flag repository, optionally seeded from a file."""

    def __init__(self, flags_file: Optional[str] = None):
        self.flags_file = flags_file
        self.logger = get_logger("flags.persistence.memory")
        self._flags: Dict[str, Flag] = {}

    async def start(self):
        """Load the configured flag definitions file, if any."""
        if self.flags_file:
            count = self.load_from_file(self.flags_file)
            self.logger.info("Flag definitions loaded", path=self.flags_file, count=count)

    async def get_flag(self, flag_id: str, tenant_id: str) -> Optional[Flag]:
        flag = self._flags.get(flag_id)
        if flag is None or flag.tenant_id != tenant_id:
            return None
        return flag

    async def list_flags_for_project(self, project_id: str, tenant_id: str) -> List[Flag]:
        return [
            flag for flag in self._flags.values()
            if flag.tenant_id == tenant_id
            and (flag.project_id is None or flag.project_id == project_id)
        ]

    def add_flag(self, flag: Flag):
        """Add or replace a flag."""
        self._flags[flag.id] = flag
        self.logger.debug("Flag stored", flag_id=flag.id, tenant_id=flag.tenant_id)

    def remove_flag(self, flag_id: str) -> bool:
        """Remove a flag; returns False when it was not present."""
        return self._flags.pop(flag_id, None) is not None

    def flag_count(self) -> int:
        return len(self._flags)

    def load_from_file(self, path: str) -> int:
        """Load flags from a YAML or JSON document with a top-level ``flags`` list."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                if Path(path).suffix == ".json":
                    document = json.load(f)
                else:
                    document = yaml.safe_load(f)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise FlagDefinitionError(f"Cannot read flag definitions: {e}", {"path": path})

        if not isinstance(document, dict) or not isinstance(document.get("flags"), list):
            raise FlagDefinitionError("Flag definitions must contain a 'flags' list", {"path": path})

        flags = [flag_from_dict(item) for item in document["flags"]]
        for flag in flags:
            self.add_flag(flag)
        return len(flags)


def flag_from_dict(data: Dict[str, Any]) -> Flag:
    """Build a Flag from its stored dictionary form."""
    if not isinstance(data, dict):
        raise FlagDefinitionError("Flag definition must be a mapping")

    missing = [key for key in ("id", "tenant_id", "name") if not data.get(key)]
    if missing:
        raise FlagDefinitionError(
            "Flag definition is missing required fields",
            {"flag_id": data.get("id"), "missing": missing}
        )

    rules_data = data.get("rules") or []
    if not isinstance(rules_data, list):
        raise FlagDefinitionError("Flag rules must be a list", {"flag_id": data["id"]})

    enabled = data.get("enabled", False)
    if not isinstance(enabled, bool):
        raise FlagDefinitionError("Flag 'enabled' must be a boolean", {"flag_id": data["id"], "enabled": enabled})

    flag = Flag(
        id=str(data["id"]),
        tenant_id=str(data["tenant_id"]),
        name=str(data["name"]),
        project_id=data.get("project_id"),
        description=data.get("description") or "",
        enabled=enabled,
        rules=[_rule_from_dict(data["id"], rule_data) for rule_data in rules_data],
        rule_logic=RuleLogic(data.get("rule_logic") or "AND"),
    )
    for key in ("created_at", "updated_at"):
        value = data.get(key)
        if isinstance(value, datetime):
            setattr(flag, key, value)
        elif isinstance(value, str):
            try:
                setattr(flag, key, datetime.fromisoformat(value))
            except ValueError:
                raise FlagDefinitionError(f"Invalid {key} timestamp", {"flag_id": flag.id, key: value})
    return flag


def _rule_from_dict(flag_id: str, data: Dict[str, Any]) -> Rule:
    if not isinstance(data, dict) or not data.get("attribute") or not data.get("operator"):
        raise FlagDefinitionError(
            "Rule definition requires 'attribute' and 'operator'",
            {"flag_id": flag_id, "rule": data}
        )

    rollout = data.get("rollout")
    if rollout is None:
        rollout = 0
    # Whole floats such as 50.0 are accepted; anything else would be truncated
    if isinstance(rollout, float) and rollout.is_integer():
        rollout = int(rollout)
    if isinstance(rollout, bool) or not isinstance(rollout, int):
        raise FlagDefinitionError("Rule rollout must be an integer", {"flag_id": flag_id, "rollout": rollout})
    if not 0 <= rollout <= 100:
        raise FlagDefinitionError("Rule rollout must be between 0 and 100", {"flag_id": flag_id, "rollout": rollout})

    return Rule(
        id=data.get("id"),
        attribute=str(data["attribute"]),
        operator=str(data["operator"]),
        value=data.get("value"),
        rollout=rollout,
    )
