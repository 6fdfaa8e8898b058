from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...services import user_service

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=schemas.User)
def get_profile(user: models.User = Depends(deps.get_current_user)):
    return user


@router.patch("", response_model=schemas.User)
def update_profile(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    return user_service.update_profile(db, user, payload.model_dump(exclude_unset=True))


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def delete_profile(
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    user_service.delete_account(db, user)


@router.put("/password")
def change_password(
    payload: schemas.PasswordChange,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    user_service.change_password(db, user, payload.current_password, payload.new_password)
    return {"message": "Password updated successfully"}
