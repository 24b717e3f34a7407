# main_server/app/config.py
from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass(frozen=True)
class PollConfig:
    max_attempts: int
    interval_ms: int

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.interval_ms < 0:
            raise ValueError("interval_ms must be >= 0")

    @property
    def ceiling_seconds(self) -> float:
        return self.max_attempts * self.interval_ms / 1000.0


# remote latency differs per job kind
ANALYSIS_POLL_DEFAULT = PollConfig(max_attempts=90, interval_ms=1000)
IMAGE_POLL_DEFAULT = PollConfig(max_attempts=60, interval_ms=2000)
MUSIC_POLL_DEFAULT = PollConfig(max_attempts=60, interval_ms=2000)


@dataclass(frozen=True)
class PipelineConfig:
    gen_server_url: str = "http://127.0.0.1:8001"
    http_timeout_seconds: float = 10.0

    analysis_poll: PollConfig = ANALYSIS_POLL_DEFAULT
    image_poll: PollConfig = IMAGE_POLL_DEFAULT
    music_poll: PollConfig = MUSIC_POLL_DEFAULT

    # "memory" lives only as long as the process; "redis" is durable
    provenance_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    provenance_key: str = "mood:provenance"
    retention_days: int = 30

    default_style_preset: str = "abstract-oil"


def load_config() -> PipelineConfig:
    return PipelineConfig(
        gen_server_url=os.getenv("GEN_SERVER_URL", "http://127.0.0.1:8001"),
        http_timeout_seconds=_env_float("GEN_HTTP_TIMEOUT_SECONDS", 10.0),
        analysis_poll=PollConfig(
            max_attempts=_env_int("ANALYSIS_POLL_MAX_ATTEMPTS", ANALYSIS_POLL_DEFAULT.max_attempts),
            interval_ms=_env_int("ANALYSIS_POLL_INTERVAL_MS", ANALYSIS_POLL_DEFAULT.interval_ms),
        ),
        image_poll=PollConfig(
            max_attempts=_env_int("IMAGE_POLL_MAX_ATTEMPTS", IMAGE_POLL_DEFAULT.max_attempts),
            interval_ms=_env_int("IMAGE_POLL_INTERVAL_MS", IMAGE_POLL_DEFAULT.interval_ms),
        ),
        music_poll=PollConfig(
            max_attempts=_env_int("MUSIC_POLL_MAX_ATTEMPTS", MUSIC_POLL_DEFAULT.max_attempts),
            interval_ms=_env_int("MUSIC_POLL_INTERVAL_MS", MUSIC_POLL_DEFAULT.interval_ms),
        ),
        provenance_backend=os.getenv("PROVENANCE_BACKEND", "memory").strip().lower(),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        provenance_key=os.getenv("PROVENANCE_KEY", "mood:provenance"),
        retention_days=_env_int("PROVENANCE_RETENTION_DAYS", 30),
        default_style_preset=os.getenv("DEFAULT_STYLE_PRESET", "abstract-oil"),
    )
