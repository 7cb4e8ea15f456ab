"""Retry loop used to wait for an agent to become ready."""

import os
import time
from collections.abc import Callable
from dataclasses import dataclass

CheckFunc = Callable[[], tuple[bool, Exception | None]]
GiveUpFunc = Callable[[Exception | None], None]


@dataclass
class WaitPolicy:
    """Bound on a readiness wait.

    Attributes:
        retries: Maximum number of check calls
        delay: Seconds slept between consecutive calls
    """

    retries: int = 1000
    delay: float = 0.01

    def __post_init__(self):
        self.validate()

    def validate(self):
        if self.retries < 1:
            raise ValueError(f"retries must be at least 1, got {self.retries}")
        if self.delay < 0:
            raise ValueError(f"delay must not be negative, got {self.delay}")

    @classmethod
    def from_env(cls) -> "WaitPolicy":
        """Build a policy, letting $TESTCONSUL_WAIT_RETRIES and $TESTCONSUL_WAIT_DELAY override the defaults."""
        kwargs = {}
        if "TESTCONSUL_WAIT_RETRIES" in os.environ:
            kwargs["retries"] = int(os.environ["TESTCONSUL_WAIT_RETRIES"])
        if "TESTCONSUL_WAIT_DELAY" in os.environ:
            kwargs["delay"] = float(os.environ["TESTCONSUL_WAIT_DELAY"])
        return cls(**kwargs)


def wait_for_result(check: CheckFunc, on_give_up: GiveUpFunc, policy: WaitPolicy | None = None) -> bool:
    """Call check until it reports success or the policy is exhausted.

    A (False, err) result means "not ready yet" and is retried after
    policy.delay seconds. Once policy.retries calls have failed, on_give_up
    is called exactly once with the last error.

    Args:
        check: Returns (True, None) when ready, (False, err) otherwise
        on_give_up: Called with the last error when retries run out
        policy: Retry bound, defaults to WaitPolicy()

    Returns:
        True on success, False after giving up (unless on_give_up raises)
    """
    policy = policy or WaitPolicy()
    policy.validate()

    last_err = None
    for attempt in range(policy.retries):
        if attempt:
            time.sleep(policy.delay)

        ok, err = check()
        if ok:
            return True
        last_err = err

    on_give_up(last_err)
    return False
