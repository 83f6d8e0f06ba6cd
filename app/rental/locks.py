"""
Single-flight guard for rental batch jobs.

Balance changes are already serialized per account by the row lock in
AccountService.apply_movement. What the row lock cannot prevent is two
workers starting the same scheduled job kind at once, so each batch run
first claims a short-lived Redis key and skips if somebody else owns it.

Usage:

    from rental.locks import BatchLock

    with BatchLock("tool_charges", ttl=3600):
        run_tool_charges()
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django_redis import get_redis_connection

from rental.exceptions import LockAcquisitionError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis


def batch_lock_key(job_kind: str) -> str:
    """Redis key claimed while a batch of this kind runs."""
    return f"lock:rental:batch:{job_kind}"


class BatchLock:
    """
    Non-blocking Redis claim on one batch job kind.

    The claim is a SET NX EX with a random owner token, so a crashed worker
    loses it after ``ttl`` seconds and only the owner can drop it early.
    A second claimant never waits: acquire() raises LockAcquisitionError
    and the caller reports the run as skipped.

    Args:
        job_kind: Batch job kind, e.g. "statements"
        ttl: Seconds before the claim expires on its own
    """

    # Delete the key only while it still carries our token
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    end
    return 0
    """

    def __init__(self, job_kind: str, ttl: int) -> None:
        self.key = batch_lock_key(job_kind)
        self.ttl = ttl
        self._owner: str | None = None
        self._client: Redis | None = None

    @property
    def client(self) -> Redis:
        if self._client is None:
            self._client = get_redis_connection("default")
        return self._client

    @property
    def is_held(self) -> bool:
        return self._owner is not None

    def acquire(self) -> None:
        """
        Claim the job kind or fail straight away.

        Raises:
            LockAcquisitionError: Another run holds the claim
        """
        owner = uuid.uuid4().hex
        if not self.client.set(self.key, owner, nx=True, ex=self.ttl):
            raise LockAcquisitionError(
                f"Batch lock '{self.key}' is already held",
                details={"key": self.key},
            )
        self._owner = owner

    def release(self) -> bool:
        """
        Drop the claim.

        Returns:
            False when nothing was held or the claim had already expired
            and been taken over by another run
        """
        if self._owner is None:
            return False
        owner, self._owner = self._owner, None
        return bool(self.client.eval(self.RELEASE_SCRIPT, 1, self.key, owner))

    def __enter__(self) -> BatchLock:
        self.acquire()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.release()


__all__ = [
    "BatchLock",
    "batch_lock_key",
]
