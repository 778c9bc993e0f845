"""
Flag and rule data models for the Flags Service.
"""

from typing import Dict, Any, Optional, List, Union
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


AttributeValue = Union[str, int, float, bool, None]
RuleValue = Union[AttributeValue, List[AttributeValue]]


class RuleOperator(str, Enum):
    """Rule comparison operators."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    NOT_IN = "not_in"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"

    @classmethod
    def resolve(cls, value: Any) -> Optional["RuleOperator"]:
        """Return the operator for a stored value, or None when unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class RuleLogic(str, Enum):
    """How a flag's rules combine.

    Only the exact string "AND" selects AND; every other stored value,
    including lowercase "and" and typos, selects OR.
    """
    AND = "AND"
    OR = "OR"

    @classmethod
    def _missing_(cls, value):
        return cls.OR


class EvaluationOutcome(str, Enum):
    """Terminal outcome of a single flag evaluation."""
    INVALID_INPUT = "invalid_input"
    DISABLED = "disabled"
    UNCONDITIONAL = "unconditional"
    RULES_REJECTED = "rules_rejected"
    ROLLOUT_ADMITTED = "rollout_admitted"
    ROLLOUT_EXCLUDED = "rollout_excluded"


@dataclass
class Rule:
    """Targeting rule.

    ``operator`` keeps the stored string so that definitions written for a
    newer operator still load; such rules never match.
    """
    attribute: str
    operator: Union[RuleOperator, str]
    value: RuleValue = None
    rollout: int = 0
    id: Optional[str] = None


@dataclass
class Flag:
    """Feature flag definition."""
    id: str
    tenant_id: str
    name: str
    project_id: Optional[str] = None
    description: str = ""
    enabled: bool = False
    rules: List[Rule] = field(default_factory=list)
    rule_logic: RuleLogic = RuleLogic.AND
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class EvaluationContext:
    """Caller context for flag evaluation."""
    user_id: str
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EvaluationDetail:
    """Decision for one flag together with how it was reached."""
    enabled: bool
    outcome: EvaluationOutcome
    bucket: Optional[int] = None
    rollout: Optional[int] = None


class EvaluationContextModel(BaseModel):
    """Request body representation of an evaluation context."""
    user_id: str = Field(..., min_length=1, description="Stable user identifier used for rollout hashing")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="User attributes matched by rules")

    def to_context(self) -> EvaluationContext:
        return EvaluationContext(user_id=self.user_id, attributes=dict(self.attributes))


class EvaluationRequest(BaseModel):
    """Request model for bulk and single flag evaluation."""
    context: EvaluationContextModel = Field(..., description="Evaluation context")


class EvaluationResponse(BaseModel):
    """Response model for bulk evaluation."""
    flags: Dict[str, bool] = Field(default_factory=dict, description="Flag ID to enabled state")


class SingleEvaluationResponse(BaseModel):
    """Response model for single flag evaluation."""
    flag_id: str
    enabled: bool
