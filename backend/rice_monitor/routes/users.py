from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from .. import models, schemas
from ..auth import get_current_user, require_admin
from ..rbac import load_for

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("")
async def list_users(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    admin: models.User = Depends(require_admin),
):
    users = db.query(models.User).order_by(models.User.created_at).all()
    return schemas.envelope([schemas.UserOut.model_validate(u) for u in users])


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    user = load_for(db, current_user, models.User, user_id, "read")
    return schemas.envelope(schemas.UserOut.model_validate(user))


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    update: schemas.UserPatch,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    user = load_for(db, current_user, models.User, user_id, "write")
    changes = update.model_dump(exclude_unset=True)
    if "role" in changes and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Only administrators can change roles")
    for key, value in changes.items():
        if value is not None:
            setattr(user, key, value)
    user.updated_at = models.utcnow()
    db.commit()
    db.refresh(user)
    return schemas.envelope(schemas.UserOut.model_validate(user), "User updated successfully")


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    if current_user.is_admin and current_user.id == user_id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")
    user = load_for(db, current_user, models.User, user_id, "delete")
    db.delete(user)
    db.commit()
    return schemas.envelope(message="User deleted successfully")
