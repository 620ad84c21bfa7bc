"""
Health Check System
Component checks for the pipeline's collaborators plus a resource snapshot.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List

import psutil

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """Health status levels"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component"""
    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0.0
    last_check: datetime = field(default_factory=datetime.now)
    critical: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "latency_ms": round(self.latency_ms, 2),
            "last_check": self.last_check.isoformat(),
            "critical": self.critical,
        }


class HealthCheckManager:
    """
    Runs registered checks on demand.
    A failing critical check makes the whole system unhealthy, a failing
    non-critical one only degrades it.
    """

    def __init__(self):
        self._checks: Dict[str, tuple] = {}
        self._startup_time = datetime.now()

    def register(self, name: str, check_func: Callable[[], bool], critical: bool = False) -> None:
        """Register a health check"""
        self._checks[name] = (check_func, critical)
        logger.debug(f"Registered health check: {name}")

    def _run(self, name: str, check_func: Callable[[], bool], critical: bool) -> ComponentHealth:
        start_time = time.time()
        try:
            ok = bool(check_func())
            message = "OK" if ok else "Check failed"
        except Exception as e:
            ok = False
            message = f"Error: {str(e)[:100]}"
        return ComponentHealth(
            name=name,
            status=HealthStatus.HEALTHY if ok else HealthStatus.UNHEALTHY,
            message=message,
            latency_ms=(time.time() - start_time) * 1000,
            critical=critical,
        )

    def check_all(self) -> List[ComponentHealth]:
        return [self._run(name, func, critical) for name, (func, critical) in self._checks.items()]

    def get_overall_status(self) -> Dict[str, Any]:
        results = self.check_all()

        status = HealthStatus.HEALTHY
        for result in results:
            if result.status != HealthStatus.HEALTHY:
                if result.critical:
                    status = HealthStatus.UNHEALTHY
                    break
                status = HealthStatus.DEGRADED

        return {
            "status": status.value,
            "uptime_seconds": int((datetime.now() - self._startup_time).total_seconds()),
            "components": [r.to_dict() for r in results],
            "resources": get_resource_snapshot(),
        }


def get_resource_snapshot() -> Dict[str, float]:
    """CPU, memory and disk usage of the host"""
    try:
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage('/')
        return {
            "cpu_percent": psutil.cpu_percent(interval=None),
            "memory_percent": memory.percent,
            "memory_available_mb": round(memory.available / (1024 * 1024), 1),
            "disk_percent": disk.percent,
        }
    except Exception as e:
        logger.warning(f"Resource snapshot failed: {e}")
        return {}
