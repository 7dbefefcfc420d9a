"""Photo log entries attached to a work order.

Only the reference (URL or path) is stored; the image bytes live
wherever the URL points.
"""

import logging
from datetime import datetime
from typing import Optional

from job_desk.database.models import WorkOrder, WorkOrderPhoto
from job_desk.database.repository import Repository
from job_desk.identity import Identity

logger = logging.getLogger(__name__)


def add_photo(repo: Repository, identity: Identity, job: WorkOrder,
              photo_url: str, caption: Optional[str] = None,
              now: datetime = None) -> WorkOrderPhoto:
    photo_url = (photo_url or "").strip()
    if not photo_url:
        raise ValueError("Photo URL is required")

    photo = WorkOrderPhoto(
        company_id=identity.company_id,
        work_order_id=job.id,
        photo_url=photo_url,
        caption=caption or None,
        uploaded_by=identity.user_id,
        created_at=(now or datetime.now()).isoformat(),
    )
    photo.id = repo.create_photo(photo)
    logger.info("Photo %s added to %s", photo.id, job.wo_number)
    return photo


def list_photos(repo: Repository, job: WorkOrder) -> list[WorkOrderPhoto]:
    """Photos for ``job``, newest first."""
    return repo.get_photos_for_work_order(job.id)


def remove_photo(repo: Repository, identity: Identity, photo_id: int) -> bool:
    """Delete a photo from the company's log; False if it is not ours."""
    removed = repo.delete_photo(identity.company_id, photo_id)
    if removed:
        logger.info("Photo %s removed", photo_id)
    else:
        logger.warning("Photo %s not found for company %s",
                       photo_id, identity.company_id)
    return removed
