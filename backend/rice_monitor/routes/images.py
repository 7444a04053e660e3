import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from ..errors import APIError
from ..lifecycle import append_image, remove_image
from ..rbac import authorize, load_for
from ..storage import (
    BlobStore,
    build_image_key,
    get_blob_store,
    is_allowed_image,
    normalize_key,
    owner_from_key,
    submission_id_from_key,
)
from .. import models, schemas

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/images", tags=["images"])

# uploads made before the submission exists carry a client-side placeholder id
TEMP_PREFIX = "temp_"


def _key_or_400(filename: str) -> str:
    try:
        return normalize_key(filename)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid image filename")


@router.post("/upload")
async def upload_image(
    submission_id: str = Form(...),
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    user: models.User = Depends(get_current_user),
):
    submission_id = submission_id.strip()
    if not submission_id:
        raise HTTPException(status_code=400, detail="submission_id is required")
    pending = submission_id.startswith(TEMP_PREFIX)
    if not pending:
        load_for(db, user, models.Submission, submission_id, "write")
    if not image.filename or not is_allowed_image(image.filename):
        raise APIError(400, "invalid_file_type", "Only JPG, JPEG, PNG, and WebP files are allowed")

    key = build_image_key(submission_id, image.filename, owner_id=user.id if pending else None)
    data = await image.read()
    url = store.put(key, data, image.content_type or "application/octet-stream")
    if not pending:
        append_image(db, submission_id, url)
    logger.info("stored image %s (%d bytes) for submission %s", key, len(data), submission_id)
    return schemas.envelope(schemas.ImageOut(filename=key, url=url), "Image uploaded successfully")


@router.get("/{filename:path}")
async def get_image(
    filename: str,
    store: BlobStore = Depends(get_blob_store),
    user: models.User = Depends(get_current_user),
):
    return RedirectResponse(store.url_for(_key_or_400(filename)), status_code=308)


@router.delete("/{filename:path}")
async def delete_image(
    filename: str,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    user: models.User = Depends(get_current_user),
):
    key = _key_or_400(filename)
    submission_id = submission_id_from_key(key)
    submission = None
    if submission_id.startswith(TEMP_PREFIX):
        # pending uploads sit in the uploader's folder
        authorize(user, "submission", "write", owner_from_key(key))
    else:
        submission = db.get(models.Submission, submission_id)
        if submission is not None:
            authorize(user, "submission", "write", submission.user_id)
        elif not user.is_admin:
            raise HTTPException(status_code=403, detail="Access denied")

    url = store.url_for(key)
    try:
        store.delete(key)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Image not found")
    if submission is not None:
        remove_image(db, submission_id, url)
    return schemas.envelope(message="Image deleted successfully")
