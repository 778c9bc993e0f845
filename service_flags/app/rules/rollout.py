"""
Deterministic rollout bucketing.
"""

import hashlib

BUCKET_COUNT = 101


def rollout_bucket(user_id: str, flag_id: str) -> int:
    """Map a (user, flag) pair to a stable bucket in [0, 100].

    The bucket is the first 8 bytes of SHA-256("<user_id>:<flag_id>") read
    as a big-endian unsigned integer, modulo 101.
    """
    digest = hashlib.sha256(f"{user_id}:{flag_id}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") % BUCKET_COUNT


def is_admitted(bucket: int, rollout: int) -> bool:
    """A user is admitted when its bucket does not exceed the rollout.

    Rollout 0 still admits bucket 0, and rollout 100 admits everyone.
    """
    return bucket <= rollout
