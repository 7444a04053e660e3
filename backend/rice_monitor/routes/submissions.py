import csv
import io
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user, require_admin
from ..lifecycle import apply_status
from ..rbac import can, load_for, scope_query
from .. import models, schemas

router = APIRouter(prefix="/api/v1/submissions", tags=["submissions"])

EXPORT_COLUMNS = ["ID", "Date", "Location", "Growth Stage", "Observer", "Status"]


def _fields_by_id(db: Session, field_ids: set[str]) -> dict[str, models.Field]:
    if not field_ids:
        return {}
    rows = db.query(models.Field).filter(models.Field.id.in_(list(field_ids))).all()
    return {f.id: f for f in rows}


def _serialize(db: Session, submissions: list[models.Submission]) -> list[schemas.SubmissionOut]:
    # field ids may dangle after a field is deleted; those come back as field=None
    fields = _fields_by_id(db, {s.field_id for s in submissions})
    out = []
    for s in submissions:
        item = schemas.SubmissionOut.model_validate(s)
        field = fields.get(s.field_id)
        if field is not None:
            item.field = schemas.FieldOut.model_validate(field)
        out.append(item)
    return out


def _require_field(db: Session, user: models.User, field_id: str) -> models.Field:
    field = db.get(models.Field, field_id)
    if field is None or not can(user, "field", "read", field.owner_id):
        raise HTTPException(status_code=400, detail=f"Unknown field_id: {field_id}")
    return field


@router.get("")
async def list_submissions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[schemas.SubmissionStatus] = None,
    field_id: Optional[str] = None,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    query = scope_query(db.query(models.Submission), user, models.Submission)
    if status:
        query = query.filter(models.Submission.status == status)
    if field_id:
        query = query.filter(models.Submission.field_id == field_id)
    total = query.count()
    rows = (
        query.order_by(models.Submission.created_at.desc(), models.Submission.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    data = schemas.SubmissionPage(submissions=_serialize(db, rows), page=page, limit=limit, total=total)
    return schemas.envelope(data)


@router.post("", status_code=201)
async def create_submission(
    submission: schemas.SubmissionCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    _require_field(db, user, submission.field_id)
    now = models.utcnow()
    db_submission = models.Submission(
        **submission.model_dump(),
        user_id=user.id,
        status="submitted",
        created_at=now,
        updated_at=now,
    )
    db.add(db_submission)
    db.commit()
    db.refresh(db_submission)
    return schemas.envelope(_serialize(db, [db_submission])[0], "Submission created successfully")


@router.get("/export")
async def export_submissions(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    query = scope_query(db.query(models.Submission), user, models.Submission)
    submissions = query.order_by(models.Submission.created_at).all()
    fields = _fields_by_id(db, {s.field_id for s in submissions})

    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for s in submissions:
        field = fields.get(s.field_id)
        writer.writerow(
            [
                s.id,
                s.date.strftime("%Y-%m-%d") if s.date else "",
                field.location if field else "",
                s.growth_stage,
                s.observer_name or "",
                s.status,
            ]
        )
    headers = {"Content-Disposition": "attachment; filename=submissions.csv"}
    return Response(content=output.getvalue(), media_type="text/csv", headers=headers)


@router.get("/vocabulary")
async def submission_vocabulary(user: models.User = Depends(get_current_user)):
    return schemas.envelope(schemas.VocabularyOut())


@router.get("/{submission_id}")
async def get_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    submission = load_for(db, user, models.Submission, submission_id, "read")
    return schemas.envelope(_serialize(db, [submission])[0])


@router.put("/{submission_id}")
async def update_submission(
    submission_id: str,
    update: schemas.SubmissionPatch,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    submission = load_for(db, user, models.Submission, submission_id, "write")
    changes = update.model_dump(exclude_unset=True)
    status = changes.pop("status", None)
    if status is not None:
        if not user.is_admin:
            raise HTTPException(status_code=403, detail="Only administrators can change submission status")
        apply_status(submission, status)
    if changes.get("field_id"):
        _require_field(db, user, changes["field_id"])
    for key, value in changes.items():
        if value is not None:
            setattr(submission, key, value)
    submission.updated_at = models.utcnow()
    db.commit()
    db.refresh(submission)
    return schemas.envelope(_serialize(db, [submission])[0], "Submission updated successfully")


@router.put("/{submission_id}/status")
async def change_status(
    submission_id: str,
    change: schemas.StatusChange,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    admin: models.User = Depends(require_admin),
):
    submission = load_for(db, user, models.Submission, submission_id, "write")
    apply_status(submission, change.status)
    submission.updated_at = models.utcnow()
    db.commit()
    db.refresh(submission)
    return schemas.envelope(_serialize(db, [submission])[0], f"Submission marked {submission.status}")


@router.delete("/{submission_id}")
async def delete_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    submission = load_for(db, user, models.Submission, submission_id, "delete")
    db.delete(submission)
    db.commit()
    return schemas.envelope(message="Submission deleted successfully")
