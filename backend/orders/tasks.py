from datetime import timedelta
import logging

from celery import shared_task

from .conf import engine_settings

logger = logging.getLogger(__name__)


@shared_task
def cleanup_abandoned_drafts(max_age_minutes=None):
    """Delete CREATING drafts no terminal has touched for ``max_age_minutes``."""
    from .services import DraftService

    minutes = max_age_minutes if max_age_minutes is not None else engine_settings.DRAFT_MAX_AGE_MINUTES
    deleted = DraftService.delete_all_draft_orders(older_than=timedelta(minutes=minutes))
    if deleted:
        logger.info(f"Draft cleanup removed {deleted} abandoned draft(s) older than {minutes} minutes")
    return {"deleted": deleted, "max_age_minutes": minutes}
