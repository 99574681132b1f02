"""
Ordered tier strategies with retry and fallthrough.

A logical operation ("load_reviews", "analyze", "put", ...) is attempted on
each tier in turn. Only `UpstreamUnavailableError` moves the orchestrator on
to the next tier; every other error is a genuine answer from a reachable tier
and is raised to the caller unchanged.

Callers that want another tier to answer a miss can widen that set with
`fall_through`; a miss is never retried on the same tier.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from . import errors

logger = logging.getLogger("rest_framework")


class TierUnsupported(Exception):
    """Raised by a tier that has no handler for the requested operation."""


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    base_delay: float = 1.0

    def delay_for(self, attempt: int) -> float:
        # 1s, 2s, 3s ... after the 1st, 2nd, 3rd failed attempt
        return self.base_delay * attempt


NO_RETRY = RetryPolicy(attempts=1, base_delay=0)


class Tier:
    """
    One fallback level. Subclasses expose operations as methods; `attempt`
    dispatches to them by name.
    """

    name = "tier"
    retry_policy = NO_RETRY

    def attempt(self, operation: str, **kwargs):
        handler = getattr(self, operation, None)
        if handler is None or not callable(handler):
            raise TierUnsupported(f"{self.name} does not support {operation}")
        return handler(**kwargs)


@dataclass
class TierResult:
    value: Any
    tier: str
    degraded: bool
    attempts: int = 1
    failures: List[str] = field(default_factory=list)

    def as_meta(self):
        return {"source": self.tier, "degraded": self.degraded}


class FallbackOrchestrator:
    """
    Runs an operation over `tiers` in order. The first tier is the primary one;
    a result served by any later tier is reported through `on_degraded`.
    """

    def __init__(
        self,
        tiers: Sequence[Tier],
        on_degraded: Optional[Callable[[str, TierResult], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
        fall_through=(errors.UpstreamUnavailableError,),
    ):
        if not tiers:
            raise ValueError("At least one tier is required.")
        self.tiers = list(tiers)
        self.on_degraded = on_degraded
        self.sleep = sleep
        self.fall_through = tuple(fall_through)

    def run(self, operation: str, **kwargs) -> TierResult:
        failures = []
        total_attempts = 0
        unavailable = False
        last_miss = None

        for index, tier in enumerate(self.tiers):
            policy = tier.retry_policy
            for attempt in range(1, policy.attempts + 1):
                total_attempts += 1
                try:
                    value = tier.attempt(operation, **kwargs)
                except TierUnsupported:
                    break
                except self.fall_through as exc:
                    failures.append(f"{tier.name}: {exc.message}")
                    if not isinstance(exc, errors.UpstreamUnavailableError):
                        last_miss = exc
                        break
                    unavailable = True
                    logger.warning(
                        f"{operation} failed on tier '{tier.name}' "
                        f"(attempt {attempt}/{policy.attempts}): {exc.message}"
                    )
                    delay = policy.delay_for(attempt)
                    if policy.attempts > 1 and delay > 0:
                        self.sleep(delay)
                    continue

                result = TierResult(
                    value=value,
                    tier=tier.name,
                    degraded=index > 0,
                    attempts=total_attempts,
                    failures=failures,
                )
                if result.degraded:
                    logger.info(f"{operation} served by fallback tier '{tier.name}'")
                    self._notify_degraded(operation, result)
                return result

        if last_miss is not None and not unavailable:
            raise last_miss
        raise errors.UpstreamUnavailableError(
            f"All tiers failed for {operation}.", errors=failures or None
        )

    def _notify_degraded(self, operation, result):
        if self.on_degraded is None:
            return
        try:
            self.on_degraded(operation, result)
        except Exception as exc:
            logger.error(f"Degraded-service callback failed for {operation}: {exc}")
