# gen_server/app/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class GenServerSettings:
    latency_seconds: float = 1.0
    # job kinds that always fail, for exercising degraded paths
    fail_kinds: frozenset[str] = field(default_factory=frozenset)
    max_retries: int = 3
    # finished jobs are dropped this long after reaching a terminal status
    job_ttl_seconds: float = 3600.0


def load_settings() -> GenServerSettings:
    raw_fail = os.getenv("GEN_SERVER_FAIL_KINDS", "")
    return GenServerSettings(
        latency_seconds=float(os.getenv("GEN_SERVER_LATENCY_SECONDS", "1.0")),
        fail_kinds=frozenset(k.strip().lower() for k in raw_fail.split(",") if k.strip()),
        job_ttl_seconds=float(os.getenv("GEN_SERVER_JOB_TTL_SECONDS", "3600")),
    )
