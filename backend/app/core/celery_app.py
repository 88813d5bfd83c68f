"""
Celery application for async task processing

Queues:
    resume.parse        ingestion consumer (at-least-once, late ack)
    resume.parse.dlq    dead letters, declared but not consumed by default workers
    candidate.vectorize fire-and-forget re-vectorisation after manual edits
    matching            fire-and-forget match scoring
    maintenance         periodic vector index reconciliation
"""
from celery import Celery
from celery.signals import setup_logging
from kombu import Queue

from app.core.config import settings

celery_app = Celery(
    "talentlens",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.tasks.resume_tasks",
        "app.tasks.candidate_tasks",
        "app.tasks.matching_tasks",
    ],
)

WORKER_QUEUES = (
    Queue(settings.RESUME_PARSE_QUEUE),
    Queue(settings.CANDIDATE_VECTORIZE_QUEUE),
    Queue(settings.MATCHING_QUEUE),
    Queue(settings.MAINTENANCE_QUEUE),
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    task_soft_time_limit=240,  # 4 minutes
    worker_concurrency=settings.CELERY_WORKER_CONCURRENCY,
    worker_prefetch_multiplier=1,  # one unacknowledged message per worker process
    worker_max_tasks_per_child=1000,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_acks_on_failure_or_timeout=False,  # an escaping error means the retry was not republished
    result_expires=3600,  # 1 hour
    task_queues=WORKER_QUEUES + (Queue(settings.RESUME_PARSE_DEAD_LETTER_QUEUE),),
    task_default_queue=settings.RESUME_PARSE_QUEUE,
    task_routes={
        "resume.parse": {"queue": settings.RESUME_PARSE_QUEUE},
        "resume.parse.dead_letter": {"queue": settings.RESUME_PARSE_DEAD_LETTER_QUEUE},
        "candidate.vectorize": {"queue": settings.CANDIDATE_VECTORIZE_QUEUE},
        "candidate.reconcile_vectors": {"queue": settings.MAINTENANCE_QUEUE},
        "matching.calculate_score": {"queue": settings.MATCHING_QUEUE},
    },
    beat_schedule={
        "reconcile-vector-index": {
            "task": "candidate.reconcile_vectors",
            "schedule": float(settings.VECTOR_RECONCILE_INTERVAL_SECONDS),
        },
    },
)

# Dead letters stay on the broker; only a worker started with -Q on that queue drains them
celery_app.amqp.queues.select([queue.name for queue in WORKER_QUEUES])


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    """Use the application's structlog setup instead of Celery's handlers"""
    from app.core.logging_config import configure_logging

    configure_logging()
