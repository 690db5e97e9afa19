"""Process-wide liveness state."""

from enum import Enum


class HealthState(str, Enum):
    """Lifecycle phase reported by /healthz."""

    STARTING = "starting"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthFlag:
    """Tri-state liveness flag: starting -> healthy -> unhealthy.

    Reads and writes are single reference assignments, so no lock is taken;
    this also makes ``mark_unhealthy`` safe to call from a signal handler.
    Once shutdown has begun the flag never returns to healthy.
    """

    def __init__(self) -> None:
        self._state = HealthState.STARTING
        self._terminated = False

    @property
    def state(self) -> HealthState:
        return self._state

    def is_healthy(self) -> bool:
        return self._state is HealthState.HEALTHY

    def mark_healthy(self) -> bool:
        """Switch to healthy unless shutdown has already begun."""
        if self._terminated or self._state is not HealthState.STARTING:
            return False
        self._state = HealthState.HEALTHY
        # mark_unhealthy may have run between the check and the assignment
        if self._terminated:
            self._state = HealthState.UNHEALTHY
            return False
        return True

    def mark_unhealthy(self) -> bool:
        """Switch to the terminal unhealthy state. Returns False if already there."""
        already = self._terminated
        self._terminated = True
        self._state = HealthState.UNHEALTHY
        return not already
