from datetime import timedelta

from decouple import config

from .base import DEBUG, REDIS_HOST, REDIS_PORT, TIME_ZONE

CELERY_REDIS_DB = config("CELERY_REDIS_DB", default=0, cast=int)

# CELERY
CELERY_BROKER_URL = config("CELERY_BROKER_URL", default=f"redis://{REDIS_HOST}:{REDIS_PORT}/{CELERY_REDIS_DB}")
CELERY_ACCEPT_CONTENT = ["application/json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ALWAYS_EAGER = config("CELERY_TASK_ALWAYS_EAGER", cast=bool, default=DEBUG)
CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True

# Task execution settings
CELERY_TASK_TIME_LIMIT = 120  # Hard limit: kill task after 2 minutes
CELERY_TASK_SOFT_TIME_LIMIT = 90
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_TASK_ACKS_LATE = True  # Venue updates are at-least-once

PASS_EXPIRY_SWEEP_MINUTES = config("PASS_EXPIRY_SWEEP_MINUTES", default=5, cast=int)

CELERY_BEAT_SCHEDULE = {
    "expire-overdue-passes": {
        "task": "passes.expire_passes",
        "schedule": timedelta(minutes=PASS_EXPIRY_SWEEP_MINUTES),
    },
}
