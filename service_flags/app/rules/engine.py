"""
Flag evaluation engine for the Flags Service.
"""

from typing import List, Optional

from shared.logging import get_logger
from .matcher import matches
from .models import (
    Flag, Rule, RuleLogic, EvaluationContext, EvaluationDetail, EvaluationOutcome
)
from .rollout import rollout_bucket, is_admitted


class FlagEvaluator:
    """Decides whether a flag is on for a caller.

    Evaluation is a pure function of the flag and the context. The checks
    run in a fixed order: kill switch, unconditional enable, rule set,
    rollout. A disabled flag never reaches rule matching or hashing.
    Every failure resolves to False.
    """

    def __init__(self):
        self.logger = get_logger("flags.evaluator")

    def evaluate(self, flag: Optional[Flag], context: Optional[EvaluationContext]) -> bool:
        """Return whether ``flag`` is enabled for ``context``."""
        return self.explain(flag, context).enabled

    def explain(self, flag: Optional[Flag], context: Optional[EvaluationContext]) -> EvaluationDetail:
        """Evaluate a flag and report which terminal outcome was reached."""
        if flag is None or context is None:
            return EvaluationDetail(enabled=False, outcome=EvaluationOutcome.INVALID_INPUT)

        try:
            if not flag.enabled:
                return EvaluationDetail(enabled=False, outcome=EvaluationOutcome.DISABLED)

            if not flag.rules:
                return EvaluationDetail(enabled=True, outcome=EvaluationOutcome.UNCONDITIONAL)

            if not self.evaluate_rules(flag.rules, flag.rule_logic, context):
                return EvaluationDetail(enabled=False, outcome=EvaluationOutcome.RULES_REJECTED)

            rollout = self.rollout_percentage(flag.rules)
            bucket = rollout_bucket(context.user_id, flag.id)
            admitted = is_admitted(bucket, rollout)

            return EvaluationDetail(
                enabled=admitted,
                outcome=EvaluationOutcome.ROLLOUT_ADMITTED if admitted else EvaluationOutcome.ROLLOUT_EXCLUDED,
                bucket=bucket,
                rollout=rollout
            )

        except Exception as e:
            self.logger.error(
                "Flag evaluation error",
                flag_id=getattr(flag, "id", None),
                error=str(e)
            )
            return EvaluationDetail(enabled=False, outcome=EvaluationOutcome.INVALID_INPUT)

    def evaluate_rules(self, rules: List[Rule], rule_logic: RuleLogic, context: EvaluationContext) -> bool:
        """Combine rule matches with AND/OR semantics, stopping early."""
        if not rules:
            return True

        is_and = RuleLogic(rule_logic) is RuleLogic.AND

        for rule in rules:
            matched = matches(rule, context)
            if is_and and not matched:
                return False
            if not is_and and matched:
                return True

        # AND: every rule matched. OR: none did.
        return is_and

    def rollout_percentage(self, rules: List[Rule]) -> int:
        """Rollout applied to the whole rule set.

        Only the first rule's rollout counts, whatever the other rules say.
        A missing or non-numeric rollout counts as 0.
        """
        if not rules:
            return 100
        rollout = rules[0].rollout
        if isinstance(rollout, bool) or not isinstance(rollout, (int, float)):
            return 0
        return int(rollout)
