from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from ..rbac import load_for, scope_query
from .. import models, schemas

router = APIRouter(prefix="/api/v1/fields", tags=["fields"])


@router.get("")
async def list_fields(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    query = scope_query(db.query(models.Field), user, models.Field)
    fields = query.order_by(models.Field.name).all()
    return schemas.envelope([schemas.FieldOut.model_validate(f) for f in fields])


@router.post("", status_code=201)
async def create_field(
    field: schemas.FieldCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    now = models.utcnow()
    db_field = models.Field(**field.model_dump(), owner_id=user.id, created_at=now, updated_at=now)
    db.add(db_field)
    db.commit()
    db.refresh(db_field)
    return schemas.envelope(schemas.FieldOut.model_validate(db_field), "Field created successfully")


@router.get("/{field_id}")
async def get_field(field_id: str, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    db_field = load_for(db, user, models.Field, field_id, "read")
    return schemas.envelope(schemas.FieldOut.model_validate(db_field))


@router.put("/{field_id}")
async def update_field(
    field_id: str,
    field: schemas.FieldPatch,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    db_field = load_for(db, user, models.Field, field_id, "write")
    for key, value in field.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(db_field, key, value)
    db_field.updated_at = models.utcnow()
    db.commit()
    db.refresh(db_field)
    return schemas.envelope(schemas.FieldOut.model_validate(db_field), "Field updated successfully")


@router.delete("/{field_id}")
async def delete_field(field_id: str, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    db_field = load_for(db, user, models.Field, field_id, "delete")
    db.delete(db_field)
    db.commit()
    return schemas.envelope(message="Field deleted successfully")
