import asyncio
import os
import time
from enum import Enum

from core.errors import HealthCheckError
from utils.ids import format_timestamp


class Status(Enum):
    OK = "healthy"
    DEGRADED = "degraded"
    FAIL = "unhealthy"


class CheckResult:
    __slots__ = ("name", "status", "msg")

    def __init__(self, name, status, msg=""):
        self.name = name
        self.status = status
        self.msg = msg

    def to_dict(self):
        return {"name": self.name,
                "status": self.status.value,
                "msg": self.msg}


class HealthReport:
    __slots__ = ("status", "checks", "uptime", "timestamp")

    def __init__(self, status, checks, uptime=0):
        self.status = status
        self.checks = checks
        self.uptime = uptime
        self.timestamp = format_timestamp()

    def to_dict(self):
        return {"status": self.status.value,
                "timestamp": self.timestamp,
                "uptime": round(self.uptime, 1),
                "checks": [check.to_dict() for check in self.checks]}


class HealthChecker:
    def __init__(self, ttl=1.0, timeout=5.0):
        self._checks = {}
        self._cache = None
        self._cache_time = 0
        self._ttl = ttl
        self._timeout = timeout
        self._start_time = time.time()

    @property
    def uptime(self):
        return time.time() - self._start_time

    def register(self, name, check_fn, critical=True):
        self._checks[name] = (check_fn, critical)

    async def _run(self, name, check_fn):
        try:
            return await asyncio.wait_for(check_fn(), timeout=self._timeout)
        except asyncio.TimeoutError:
            return CheckResult(name, Status.FAIL, "timeout")
        except HealthCheckError as exc:
            return CheckResult(name, Status.FAIL, exc.message)
        except Exception as exc:
            return CheckResult(name, Status.FAIL, str(exc))

    async def check(self):
        now = time.time()
        if self._cache and now - self._cache_time < self._ttl:
            return self._cache

        status = Status.OK
        results = []
        for name, (check_fn, is_critical) in self._checks.items():
            result = await self._run(name, check_fn)
            results.append(result)
            if result.status == Status.FAIL and is_critical:
                status = Status.FAIL
            elif result.status != Status.OK and status == Status.OK:
                status = Status.DEGRADED

        self._cache = HealthReport(status, results, now - self._start_time)
        self._cache_time = now
        return self._cache


# Checks
async def check_event_loop():
    await asyncio.sleep(0)
    return CheckResult("loop", Status.OK)


def create_resource_check(path):
    """Degraded when the default class file is missing, failed when it exists but is unreadable."""
    async def check():
        if not os.path.exists(path):
            return CheckResult("resource", Status.DEGRADED, f"missing {path}")
        if not os.access(path, os.R_OK):
            raise HealthCheckError(f"unreadable {path}", component="resource")
        return CheckResult("resource", Status.OK, path)
    return check
