from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...api import deps
from ...db import models, schemas
from ...db.session import get_db
from ...services import settings_service

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/public", response_model=schemas.PublicSettings)
def get_public_settings(db: Session = Depends(get_db)) -> schemas.PublicSettings:
    settings = settings_service.get_admin_settings(db)
    return schemas.PublicSettings.model_validate(
        {
            "rental_types": settings.rental_types or [],
            "business_hours": settings.business_hours or {},
            "slot_duration": settings.slot_duration,
        }
    )


@router.get("", response_model=schemas.AdminSettings)
def get_settings(
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    return settings_service.get_admin_settings(db)


@router.put("", response_model=schemas.AdminSettings)
def update_settings(
    payload: schemas.AdminSettingsUpdate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    return settings_service.update_admin_settings(db, payload.model_dump(exclude_unset=True))
