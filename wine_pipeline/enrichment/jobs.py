"""
Background Jobs Module
======================

arq tasks that run enrichment batches outside the request cycle, plus a
daily cron run. Uses Redis as the job queue backend.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from arq import create_pool, cron
from arq.connections import RedisSettings
from arq.jobs import Job

from wine_pipeline.core.errors import ConfigError
from wine_pipeline.db.engine import get_session
from wine_pipeline.enrichment.batch import create_batch_processor

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Status of an enrichment job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class EnrichmentJobResult:
    """Result of an enrichment job."""

    job_id: str
    status: JobStatus
    started_at: datetime | None = None
    completed_at: datetime | None = None
    stats: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    duration_seconds: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "stats": self.stats,
            "errors": self.errors,
            "duration_seconds": self.duration_seconds,
        }


def get_redis_settings() -> RedisSettings:
    """Get Redis connection settings from environment."""
    return RedisSettings(
        host=os.environ.get("REDIS_HOST", "localhost"),
        port=int(os.environ.get("REDIS_PORT", "6379")),
        database=int(os.environ.get("REDIS_DB", "0")),
    )


async def run_enrichment_batch(
    ctx: dict[str, Any],
    limit: int | None = None,
) -> dict[str, Any]:
    """
    Enrich one batch of wines.

    Research providers are taken from ``ctx["providers"]`` when present
    (tests, custom workers) and from the environment otherwise.

    Args:
        ctx: arq context
        limit: Optional cap on wines in this batch

    Returns:
        EnrichmentJobResult as dictionary
    """
    result = EnrichmentJobResult(
        job_id=ctx.get("job_id", str(uuid4())),
        status=JobStatus.RUNNING,
        started_at=datetime.now(UTC),
    )

    try:
        with get_session() as session:
            processor = create_batch_processor(session, providers=ctx.get("providers"))
            stats = await processor.run_batch(limit=limit)
        result.stats = stats.to_dict()
        result.status = JobStatus.COMPLETED
    except ConfigError as e:
        logger.error(f"Enrichment job not configured: {e}")
        result.status = JobStatus.FAILED
        result.errors.append(str(e))
    except Exception as e:
        logger.exception(f"Enrichment job failed: {e}")
        result.status = JobStatus.FAILED
        result.errors.append(str(e))
    finally:
        result.completed_at = datetime.now(UTC)
        result.duration_seconds = (result.completed_at - result.started_at).total_seconds()

    return result.to_dict()


async def scheduled_enrichment(ctx: dict[str, Any]) -> dict[str, Any]:
    """Daily cron entry point; runs one batch with the configured limit."""
    logger.info("Starting scheduled enrichment run")
    return await run_enrichment_batch(ctx)


async def enqueue_enrichment(limit: int | None = None) -> str:
    """
    Enqueue an enrichment batch for async processing.

    Returns:
        Job ID
    """
    redis = await create_pool(get_redis_settings())
    try:
        job = await redis.enqueue_job("run_enrichment_batch", limit)
    finally:
        await redis.close()
    return job.job_id


async def get_job_status(job_id: str) -> dict[str, Any]:
    """Look up an enrichment job's status and, once finished, its result."""
    redis = await create_pool(get_redis_settings())
    try:
        job = Job(job_id, redis)
        status = await job.status()
        info = await job.result_info()
    finally:
        await redis.close()

    return {
        "job_id": job_id,
        "status": status.value,
        "result": info.result if info else None,
    }


class WorkerSettings:
    """arq worker settings."""

    functions = [run_enrichment_batch]
    cron_jobs = [cron(scheduled_enrichment, hour={3}, minute={0}, run_at_startup=False)]
    redis_settings = get_redis_settings()
    # Batches share one daily budget; run them one at a time
    max_jobs = 1
    job_timeout = 3600  # 1 hour
    keep_result = 86400  # 24 hours
