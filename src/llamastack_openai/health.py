"""Liveness, readiness and deep health checks for orchestration probes."""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import structlog

from . import __version__
from .client import LlamaStackClient, LlamaStackError
from .models import HealthSnapshot

logger = structlog.get_logger(__name__)

VERSION = __version__
HEALTH_TIMEOUT = 10.0
READINESS_TIMEOUT = 5.0
UPSTREAM_SERVICE = "upstream"

UpstreamRunner = Callable[[Awaitable[Any]], Awaitable[Any]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def run_directly(call: Awaitable[Any]) -> Any:
    return await call


def format_uptime(started_at: datetime, now: datetime) -> str:
    """Render elapsed time as ``1h2m3s`` (seconds truncated)."""
    seconds = max(int((now - started_at).total_seconds()), 0)
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


class HealthChecker:
    """Runs the three probe checks against one LlamaStack client.

    The start time is fixed at construction and never changes.
    """

    def __init__(
        self,
        client: LlamaStackClient,
        started_at: Optional[datetime] = None,
        clock: Callable[[], datetime] = utcnow,
        version: str = VERSION,
    ):
        self.client = client
        self.clock = clock
        self.started_at = started_at if started_at is not None else clock()
        self.version = version

    async def check_health(self, run: UpstreamRunner = run_directly) -> Tuple[int, HealthSnapshot]:
        """Deep health: verify LlamaStack and report a full snapshot.

        Args:
            run: Awaits the upstream call; lets the caller abandon it early

        Returns:
            HTTP status (200 or 503) and the snapshot
        """
        now = self.clock()
        snapshot = HealthSnapshot(
            status="healthy",
            timestamp=now,
            services={},
            version=self.version,
            uptime=format_uptime(self.started_at, now),
        )

        try:
            await run(self.client.health(timeout=HEALTH_TIMEOUT))
        except LlamaStackError as e:
            logger.warning("LlamaStack health check failed", error=str(e))
            snapshot.status = "unhealthy"
            snapshot.services[UPSTREAM_SERVICE] = "down"
            return 503, snapshot

        snapshot.services[UPSTREAM_SERVICE] = "up"
        return 200, snapshot

    async def check_readiness(self, run: UpstreamRunner = run_directly) -> Tuple[int, Dict[str, Any]]:
        """Readiness: quick LlamaStack check with a terse body."""
        try:
            await run(self.client.health(timeout=READINESS_TIMEOUT))
        except LlamaStackError as e:
            logger.debug("Readiness check failed", error=str(e))
            return 503, {"ready": False, "reason": "llamastack_unavailable"}

        return 200, {"ready": True}

    def check_liveness(self) -> Dict[str, Any]:
        """Liveness: the process is alive if it can answer. No upstream call."""
        return {"alive": True, "timestamp": self.clock().isoformat()}
