"""
Flag evaluation engine package.

Decides whether a flag is on for one caller. The engine is stateless and
fail-safe: malformed input and unknown operators resolve to "off", never to
an exception.

Modules of interest:
- models: Flag, Rule, evaluation context and API request/response models.
- matcher: Per-rule operator dispatch and loose value comparison.
- rollout: Deterministic SHA-256 bucketing for staged rollouts.
- engine: Kill switch, AND/OR rule combination and rollout gating.
"""
