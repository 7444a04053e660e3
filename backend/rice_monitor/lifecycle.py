"""Submission lifecycle: status transitions and the image list."""

from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import update
from sqlalchemy.orm import Session

from . import models

# purpose: keep review transitions and concurrent image appends in one place
# status: active

STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    "submitted": frozenset({"under_review"}),
    "under_review": frozenset({"approved", "rejected"}),
    "rejected": frozenset({"under_review"}),
    "approved": frozenset(),
}


def check_transition(current: str, target: str) -> None:
    if target == current:
        return
    if target not in STATUS_TRANSITIONS.get(current, frozenset()):
        raise HTTPException(
            status_code=400,
            detail=f"Cannot move submission from {current} to {target}",
        )


def apply_status(submission: models.Submission, target: str) -> None:
    check_transition(submission.status, target)
    submission.status = target


def _lock_submission(db: Session, submission_id: str) -> models.Submission | None:
    """Take the row write lock, then read the latest copy of the submission.

    The touch comes first so that SQLite (which ignores FOR UPDATE) also
    serializes concurrent writers before anyone reads the image list.
    """
    touched = db.execute(
        update(models.Submission)
        .where(models.Submission.id == submission_id)
        .values(updated_at=models.utcnow())
        .execution_options(synchronize_session=False)
    )
    if touched.rowcount == 0:
        db.rollback()
        return None
    return (
        db.query(models.Submission)
        .populate_existing()
        .with_for_update()
        .filter(models.Submission.id == submission_id)
        .one()
    )


def append_image(db: Session, submission_id: str, url: str) -> models.Submission:
    """Append ``url`` to the submission's images inside one write transaction."""
    submission = _lock_submission(db, submission_id)
    if submission is None:
        raise HTTPException(status_code=404, detail="Submission not found")
    try:
        submission.images = [*(submission.images or []), url]
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(submission)
    return submission


def remove_image(db: Session, submission_id: str, url: str) -> models.Submission | None:
    """Drop ``url`` from the submission's images; a missing submission is ignored."""
    submission = _lock_submission(db, submission_id)
    if submission is None:
        return None
    try:
        submission.images = [u for u in (submission.images or []) if u != url]
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(submission)
    return submission
