from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...services import schedule_service

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("", response_model=list[schemas.SlotAvailability])
def list_slots(
    on: date | None = Query(None, alias="date"),
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
):
    return schedule_service.list_availability(
        db, on=on, start_date=start_date, end_date=end_date
    )


@router.get("/admin", response_model=list[schemas.SlotAvailability])
def list_slots_admin(
    on: date | None = Query(None, alias="date"),
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    return schedule_service.list_availability(
        db, on=on, start_date=start_date, end_date=end_date, include_blocked=True
    )


@router.post("", response_model=schemas.Slot, status_code=status.HTTP_201_CREATED)
def create_slot(
    payload: schemas.SlotCreate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    return schedule_service.create_slot(
        db, on=payload.date, start_time=payload.start_time, end_time=payload.end_time
    )


@router.post("/bulk", response_model=schemas.SlotBulkResult, status_code=status.HTTP_201_CREATED)
def bulk_create_slots(
    payload: schemas.SlotBulkCreate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    created = schedule_service.bulk_create_slots(
        db,
        dates=payload.dates,
        start_time=payload.start_time,
        end_time=payload.end_time,
        duration_min=payload.slot_duration,
    )
    return schemas.SlotBulkResult(
        count=len(created), slots=[schemas.Slot.model_validate(slot) for slot in created]
    )


@router.patch("/{slot_id}", response_model=schemas.Slot)
def update_slot(
    slot_id: int,
    payload: schemas.SlotUpdate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    return schedule_service.update_slot(db, slot_id, payload.model_dump(exclude_unset=True))


@router.post("/{slot_id}/block", response_model=schemas.Slot)
def block_slot(
    slot_id: int,
    payload: schemas.SlotBlock | None = None,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    blocked = payload.blocked if payload is not None else True
    return schedule_service.set_slot_blocked(db, slot_id, blocked)


@router.delete("/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_slot(
    slot_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    schedule_service.delete_slot(db, slot_id)
