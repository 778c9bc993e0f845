"""
Flags Service package for the Toggle platform.

This package answers SDK questions of the form "is flag X on for user U?".
It provides:

- app.main: API surface for bulk and single flag evaluation and health.
- app.rules: Flag model, rule matcher, rollout bucketing and evaluator.
- app.persistence: Tenant-scoped flag repositories.
- app.evaluation: Orchestration of repository lookups and evaluation.

Guidelines:
- Evaluation is pure; all state lives in the repository.
- An evaluation problem must turn a flag off, never on.
"""
