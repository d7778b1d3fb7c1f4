"""Celery tasks for pass notifications and expiry.

Venue updates are delivered at least once: a failed POST is retried with backoff,
so subscribers must deduplicate on ``pass_id`` and ``event``.
"""

import typing as t

import httpx
import structlog
from celery import shared_task
from django.conf import settings

logger = structlog.get_logger(__name__)


@shared_task(
    name="passes.notify_venue_update",
    bind=True,
    max_retries=5,
    default_retry_delay=10,
    autoretry_for=(httpx.HTTPError,),
    retry_backoff=True,
)
def notify_venue_update(self: object, payload: dict[str, t.Any]) -> dict[str, t.Any]:
    """POST a pass update to the venue update channel.

    Args:
        self: Celery task instance (bound task).
        payload: JSON-serializable update, see ``PassCoordinator._venue_update_payload``.

    Returns:
        Dictionary with the delivery outcome.
    """
    url = settings.VENUE_UPDATES_WEBHOOK_URL
    if not url:
        logger.debug(
            "venue_update_skipped_no_channel",
            venue_id=payload.get("venue_id"),
            update_event=payload.get("event"),
        )
        return {"delivered": False}

    try:
        response = httpx.post(url, json=payload, timeout=settings.VENUE_UPDATES_TIMEOUT_SECONDS)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(
            "venue_update_delivery_failed",
            venue_id=payload.get("venue_id"),
            pass_id=payload.get("pass_id"),
            update_event=payload.get("event"),
            error=str(e),
        )
        raise

    logger.info(
        "venue_update_delivered",
        venue_id=payload.get("venue_id"),
        pass_id=payload.get("pass_id"),
        update_event=payload.get("event"),
        status_code=response.status_code,
    )
    return {"delivered": True, "status_code": response.status_code}


@shared_task(name="passes.expire_passes")
def expire_passes() -> dict[str, int]:
    """Mark active passes past their expiry date as expired.

    Idempotent and safe to run next to live redemptions: the sweep is a conditional
    bulk update that skips anything already redeemed.
    """
    from flags.registry import get_registry

    from .service import build_pass_coordinator

    registry = get_registry()
    if not registry.is_enabled(settings.PASS_EXPIRY_SWEEP_FLAG):
        logger.info("pass_expiry_sweep_disabled")
        return {"expired": 0}

    expired = build_pass_coordinator(registry).expire_overdue()
    return {"expired": expired}
