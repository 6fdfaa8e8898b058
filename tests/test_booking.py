import pytest
from sqlalchemy import exc as sa_exc
from jamroom.core.constants import ALREADY_CANCELLED, ALREADY_CONFIRMED, SLOT_BLOCKED, SLOT_TAKEN
from jamroom.core.errors import Conflict, Forbidden, NotFound, StoreUnavailable, ValidationError
from jamroom.db import models
from jamroom.services import booking_service, schedule_service, settings_service
from jamroom.services.notification_service import BookingEventKind


def test_create_booking_snapshots_price_and_user(db_session, studio, make_user, make_slot, events):
    user = make_user(name="Arjun", mobile="9876543210")
    slot = make_slot()

    booking = booking_service.create_booking(
        db_session, user, slot.id, "JamRoom", band_name=" The Riffs ", notify=events.append
    )

    assert booking.booking_status == models.BookingStatus.PENDING
    assert booking.payment_status == models.PaymentStatus.PENDING
    assert float(booking.price) == 500
    assert booking.user_name == "Arjun"
    assert booking.user_email == user.email
    assert booking.user_mobile == "9876543210"
    assert booking.band_name == "The Riffs"
    assert (booking.slot_date, booking.start_time, booking.end_time) == (
        slot.date,
        slot.start_time,
        slot.end_time,
    )
    assert [event.kind for event in events] == [BookingEventKind.requested]
    assert events[0].admin_emails == ("admin@jamroom.com",)


def test_create_booking_missing_slot(db_session, studio, make_user):
    user = make_user()
    with pytest.raises(NotFound):
        booking_service.create_booking(db_session, user, 999, "JamRoom")


def test_create_booking_on_blocked_slot(db_session, studio, make_user, make_slot, events):
    user = make_user()
    slot = make_slot(is_blocked=True)

    with pytest.raises(Conflict) as exc_info:
        booking_service.create_booking(db_session, user, slot.id, "JamRoom", notify=events.append)

    assert exc_info.value.detail == SLOT_BLOCKED
    assert db_session.query(models.Booking).count() == 0
    assert events == []


def test_blocked_check_wins_over_unknown_rental_type(db_session, studio, make_user, make_slot):
    user = make_user()
    slot = make_slot(is_blocked=True)

    with pytest.raises(Conflict):
        booking_service.create_booking(db_session, user, slot.id, "Karaoke")


def test_second_request_for_slot_conflicts(db_session, studio, make_user, make_slot):
    first, second = make_user(name="Asha"), make_user(name="Dev")
    slot = make_slot()
    booking_service.create_booking(db_session, first, slot.id, "JamRoom")

    with pytest.raises(Conflict) as exc_info:
        booking_service.create_booking(db_session, second, slot.id, "Instruments")

    assert exc_info.value.detail == SLOT_TAKEN


def test_unique_index_rejects_racing_insert(db_session, studio, make_user, make_slot, monkeypatch):
    first, second = make_user(name="Asha"), make_user(name="Dev")
    slot = make_slot()
    booking_service.create_booking(db_session, first, slot.id, "JamRoom")
    # Simulate a request that passed the read check before the first insert landed.
    monkeypatch.setattr(booking_service, "active_booking_for", lambda db, slot_id: None)

    with pytest.raises(Conflict) as exc_info:
        booking_service.create_booking(db_session, second, slot.id, "JamRoom")

    assert exc_info.value.detail == SLOT_TAKEN
    active = (
        db_session.query(models.Booking)
        .filter(models.Booking.booking_status.in_(models.ACTIVE_BOOKING_STATUSES))
        .count()
    )
    assert active == 1


def test_unknown_rental_type_is_validation_error(db_session, studio, make_user, make_slot):
    user = make_user()
    slot = make_slot()

    with pytest.raises(ValidationError) as exc_info:
        booking_service.create_booking(db_session, user, slot.id, "Karaoke")

    assert "rental_type" in exc_info.value.fields
    assert db_session.query(models.Booking).count() == 0


def test_approve_marks_paid_and_notifies(db_session, studio, make_user, make_slot, events):
    user = make_user()
    admin = make_user(name="Admin", role=models.UserRole.admin)
    slot = make_slot()
    booking = booking_service.create_booking(db_session, user, slot.id, "Full Package")

    approved = booking_service.approve_booking(db_session, booking.id, admin, notify=events.append)

    assert approved.booking_status == models.BookingStatus.CONFIRMED
    assert approved.payment_status == models.PaymentStatus.PAID
    assert events[-1].kind == BookingEventKind.approved
    assert events[-1].actor_name == "Admin"
    [annotated] = schedule_service.list_availability(db_session, on=slot.date)
    assert annotated.is_booked is True
    assert annotated.confirmed_booking_id == booking.id


def test_approve_twice_conflicts(db_session, studio, make_user, make_slot):
    user = make_user()
    admin = make_user(name="Admin", role=models.UserRole.admin)
    slot = make_slot()
    booking = booking_service.create_booking(db_session, user, slot.id, "JamRoom")
    booking_service.approve_booking(db_session, booking.id, admin)

    with pytest.raises(Conflict) as exc_info:
        booking_service.approve_booking(db_session, booking.id, admin)

    assert exc_info.value.detail == ALREADY_CONFIRMED


@pytest.mark.parametrize("terminal", [models.BookingStatus.CANCELLED, models.BookingStatus.REJECTED])
def test_approve_refuses_terminal_bookings(db_session, studio, make_user, make_slot, terminal):
    user = make_user()
    admin = make_user(name="Admin", role=models.UserRole.admin)
    slot = make_slot()
    booking = booking_service.create_booking(db_session, user, slot.id, "JamRoom")
    if terminal == models.BookingStatus.CANCELLED:
        booking_service.cancel_booking(db_session, booking.id, user)
    else:
        booking_service.reject_booking(db_session, booking.id)

    with pytest.raises(Conflict):
        booking_service.approve_booking(db_session, booking.id, admin)


def test_approve_missing_booking(db_session, studio, make_user):
    admin = make_user(name="Admin", role=models.UserRole.admin)
    with pytest.raises(NotFound):
        booking_service.approve_booking(db_session, 42, admin)


def test_reject_appends_reason_to_notes(db_session, studio, make_user, make_slot, events):
    user = make_user()
    slot = make_slot()
    booking = booking_service.create_booking(
        db_session, user, slot.id, "JamRoom", notes="Need two mics"
    )

    rejected = booking_service.reject_booking(
        db_session, booking.id, "  Studio maintenance  ", notify=events.append
    )

    assert rejected.booking_status == models.BookingStatus.REJECTED
    assert rejected.notes == "Need two mics\nRejection reason: Studio maintenance"
    assert events[-1].kind == BookingEventKind.rejected
    assert events[-1].reason == "Studio maintenance"


def test_reject_without_reason_keeps_notes(db_session, studio, make_user, make_slot):
    user = make_user()
    slot = make_slot()
    booking = booking_service.create_booking(db_session, user, slot.id, "JamRoom")

    rejected = booking_service.reject_booking(db_session, booking.id, "   ")

    assert rejected.notes is None


def test_reject_frees_slot(db_session, studio, make_user, make_slot):
    first, second = make_user(name="Asha"), make_user(name="Dev")
    slot = make_slot()
    booking = booking_service.create_booking(db_session, first, slot.id, "JamRoom")
    booking_service.reject_booking(db_session, booking.id, "double booked")

    again = booking_service.create_booking(db_session, second, slot.id, "JamRoom")

    assert again.booking_status == models.BookingStatus.PENDING


def test_reject_cancelled_booking_conflicts(db_session, studio, make_user, make_slot):
    user = make_user()
    slot = make_slot()
    booking = booking_service.create_booking(db_session, user, slot.id, "JamRoom")
    booking_service.cancel_booking(db_session, booking.id, user)

    with pytest.raises(Conflict):
        booking_service.reject_booking(db_session, booking.id, "late")


def test_cancel_by_other_user_is_forbidden(db_session, studio, make_user, make_slot):
    owner, other = make_user(name="Asha"), make_user(name="Dev")
    slot = make_slot()
    booking = booking_service.create_booking(db_session, owner, slot.id, "JamRoom")

    with pytest.raises(Forbidden):
        booking_service.cancel_booking(db_session, booking.id, other)

    db_session.refresh(booking)
    assert booking.booking_status == models.BookingStatus.PENDING


def test_cancel_then_rebook(db_session, studio, make_user, make_slot, events):
    owner, other = make_user(name="Asha"), make_user(name="Dev")
    slot = make_slot()
    booking = booking_service.create_booking(db_session, owner, slot.id, "JamRoom")

    cancelled = booking_service.cancel_booking(db_session, booking.id, owner, notify=events.append)
    rebooked = booking_service.create_booking(db_session, other, slot.id, "Sound System")

    assert cancelled.booking_status == models.BookingStatus.CANCELLED
    assert events[-1].kind == BookingEventKind.cancelled
    assert float(rebooked.price) == 400
    with pytest.raises(Conflict) as exc_info:
        booking_service.cancel_booking(db_session, booking.id, owner)
    assert exc_info.value.detail == ALREADY_CANCELLED


def test_cancel_confirmed_booking_frees_slot(db_session, studio, make_user, make_slot):
    owner = make_user()
    admin = make_user(name="Admin", role=models.UserRole.admin)
    slot = make_slot()
    booking = booking_service.create_booking(db_session, owner, slot.id, "JamRoom")
    booking_service.approve_booking(db_session, booking.id, admin)

    booking_service.cancel_booking(db_session, booking.id, owner)

    [annotated] = schedule_service.list_availability(db_session, on=slot.date)
    assert annotated.is_booked is False
    assert annotated.pending_count == 0


def test_failing_notifier_does_not_undo_booking(db_session, studio, make_user, make_slot):
    user = make_user()
    slot = make_slot()

    def broken(event):
        raise RuntimeError("mail queue down")

    booking = booking_service.create_booking(db_session, user, slot.id, "JamRoom", notify=broken)

    assert db_session.get(models.Booking, booking.id) is not None


def test_get_booking_for_owner_or_admin(db_session, studio, make_user, make_slot):
    owner, other = make_user(name="Asha"), make_user(name="Dev")
    admin = make_user(name="Admin", role=models.UserRole.admin)
    slot = make_slot()
    booking = booking_service.create_booking(db_session, owner, slot.id, "JamRoom")

    assert booking_service.get_booking_for(db_session, booking.id, owner).id == booking.id
    assert booking_service.get_booking_for(db_session, booking.id, admin).id == booking.id
    with pytest.raises(Forbidden):
        booking_service.get_booking_for(db_session, booking.id, other)


def test_list_bookings_filters(db_session, studio, make_user, make_slot):
    user = make_user()
    admin = make_user(name="Admin", role=models.UserRole.admin)
    early = make_slot(start_time="10:00", end_time="11:00")
    late = make_slot(start_time="20:00", end_time="21:00")
    first = booking_service.create_booking(db_session, user, early.id, "JamRoom")
    second = booking_service.create_booking(db_session, user, late.id, "JamRoom")
    booking_service.approve_booking(db_session, second.id, admin)

    pending = booking_service.list_bookings(db_session, status=models.BookingStatus.PENDING)
    mine = booking_service.list_user_bookings(db_session, user)

    assert [booking.id for booking in pending] == [first.id]
    assert [booking.id for booking in mine] == [second.id, first.id]


def test_create_booking_store_outage_is_retryable(db_session, studio, make_user, make_slot, monkeypatch):
    user = make_user()
    slot = make_slot()
    rollbacks = []
    rollback = db_session.rollback

    def tracking_rollback():
        rollbacks.append(True)
        rollback()

    def lost_connection(db, slot_id, for_update=False):
        raise sa_exc.OperationalError("SELECT", {}, Exception("server closed the connection"))

    monkeypatch.setattr(db_session, "rollback", tracking_rollback)
    monkeypatch.setattr(booking_service, "get_slot", lost_connection)

    with pytest.raises(StoreUnavailable) as exc_info:
        booking_service.create_booking(db_session, user, slot.id, "JamRoom")

    assert exc_info.value.retryable is True
    assert exc_info.value.status_code == 503
    assert rollbacks
    assert not db_session.in_transaction()
    assert db_session.query(models.Booking).count() == 0


def test_rate_change_keeps_existing_booking_price(db_session, studio, make_user, make_slot):
    user = make_user()
    first = booking_service.create_booking(db_session, user, make_slot().id, "JamRoom")

    settings_service.update_admin_settings(
        db_session,
        {"rental_types": [{"name": "JamRoom", "description": "", "base_price": 650, "sub_items": []}]},
    )
    db_session.refresh(first)
    second = booking_service.create_booking(
        db_session, user, make_slot(start_time="20:00", end_time="21:00").id, "JamRoom"
    )

    assert float(first.price) == 500
    assert float(second.price) == 650


def test_rejected_rental_type_releases_transaction(db_session, studio, make_user, make_slot):
    slot = make_slot()

    with pytest.raises(ValidationError):
        booking_service.create_booking(db_session, make_user(), slot.id, "Karaoke")
    assert not db_session.in_transaction()

    with pytest.raises(ValidationError):
        booking_service.create_booking(db_session, make_user(), slot.id, "  ")
    assert not db_session.in_transaction()
