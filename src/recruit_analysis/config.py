"""Application configuration loaded from config.yaml."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LLMConfig:
    model: str = "claude-haiku-4-5-20251001"
    max_retries: int = 3
    timeout: float = 60.0
    backoff: str = "exponential"  # "exponential" | "linear"
    backoff_base: float = 1.0
    backoff_max: float = 10.0
    max_tokens: int = 4096
    temperature: float = 0.0


@dataclass(frozen=True)
class CacheConfig:
    ttl_seconds: int = 3600
    db_path: str = "~/.recruit-analysis/cache.db"
    fingerprint_chars: int = 8192

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class PipelineConfig:
    max_attempts: int = 3


@dataclass(frozen=True)
class QueueConfig:
    db_path: str = "~/.recruit-analysis/queue.db"
    concurrency: int = 4
    max_attempts: int = 3
    backoff_base: float = 2.0
    poll_interval: float = 1.0
    job_timeout: float = 900.0
    job_timeout_margin: float = 30.0
    stalled_after: float = 3600.0
    finished_retention: float = 86400.0
    housekeeping_interval: float = 600.0

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class StoreConfig:
    db_path: str = "~/.recruit-analysis/store.db"

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class RunLogConfig:
    db_path: str = "~/.recruit-analysis/runs.db"

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    runs: RunLogConfig = field(default_factory=RunLogConfig)

    def generation_budget(self) -> float:
        """Longest a run can spend waiting on the generation service.

        Every orchestrator attempt may exhaust the client's attempts, and one
        more client call is reserved for post-processing (skill extraction).
        """
        per_call = self.llm.max_retries * (self.llm.timeout + self.llm.backoff_max)
        return (self.pipeline.max_attempts + 1) * per_call

    def effective_job_timeout(self) -> float:
        """The configured job timeout, raised to cover the generation budget."""
        required = self.generation_budget() + self.queue.job_timeout_margin
        if self.queue.job_timeout < required:
            logger.warning(
                "queue.job_timeout %.0fs is below the generation budget; using %.0fs",
                self.queue.job_timeout, required,
            )
            return required
        return self.queue.job_timeout


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    return AppConfig(
        llm=LLMConfig(**raw.get("llm", {})),
        cache=CacheConfig(**raw.get("cache", {})),
        pipeline=PipelineConfig(**raw.get("pipeline", {})),
        queue=QueueConfig(**raw.get("queue", {})),
        store=StoreConfig(**raw.get("store", {})),
        runs=RunLogConfig(**raw.get("runs", {})),
    )
