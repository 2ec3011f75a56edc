"""Celery application configuration."""

from __future__ import annotations

from celery import Celery

from .config import settings

app = Celery(
    "fare_scout_crawler",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["fare_scout_crawler.tasks"],
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_routes={
        "fare_scout_crawler.tasks.scrape": {"queue": "scrape"},
        "fare_scout_crawler.tasks.scrape_range": {"queue": "scrape_range"},
    },
    # One search at a time per worker process keeps the portal unhurried.
    worker_prefetch_multiplier=1,
    worker_concurrency=1,
    task_acks_late=True,
)
