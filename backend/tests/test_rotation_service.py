"""QR code get-or-rotate behaviour."""
import json

import pytest

from campus_attendance.models import QRCodeRecord
from campus_attendance.services.qr_service import QRService
from campus_attendance.utils.errors import AuthorizationError, NotFoundError, SessionInactiveError

from conftest import at, identity_of


def test_first_access_in_window_rotates(rotation_service, booked_session, clock):
    clock.set(7, 0)
    grant = rotation_service.get_or_rotate(booked_session.id)

    assert grant.rotated is True
    assert grant.valid_until == at(7, 3)
    assert booked_session.current_qr_code == grant.code


def test_repeated_calls_return_same_code(rotation_service, booked_session, clock):
    clock.set(7, 0)
    first = rotation_service.get_or_rotate(booked_session.id)
    clock.set(7, 2, 59)
    second = rotation_service.get_or_rotate(booked_session.id)

    assert second.code == first.code
    assert second.rotated is False
    assert second.valid_until == first.valid_until


def test_rotates_once_interval_elapsed(rotation_service, booked_session, clock):
    clock.set(7, 0)
    first = rotation_service.get_or_rotate(booked_session.id)
    clock.set(7, 3)
    second = rotation_service.get_or_rotate(booked_session.id)

    assert second.code != first.code
    assert second.rotated is True

    history = QRCodeRecord.query.filter_by(session_id=booked_session.id).order_by(QRCodeRecord.valid_from).all()
    assert [r.code for r in history][-2:] == [first.code, second.code]
    assert len({r.code for r in history}) == len(history)


def test_force_new_rotates_immediately(rotation_service, booked_session, instructor, clock):
    clock.set(7, 0)
    first = rotation_service.get_or_rotate(booked_session.id)
    forced = rotation_service.get_or_rotate(booked_session.id, force_new=True, actor=identity_of(instructor))

    assert forced.code != first.code
    assert forced.rotated is True


def test_validity_is_capped_at_session_end(rotation_service, booked_session, clock):
    clock.set(12, 58)
    grant = rotation_service.get_or_rotate(booked_session.id)
    assert grant.valid_until == at(13, 0)


def test_closed_session_cannot_rotate(rotation_service, session_service, booked_session, instructor, clock):
    clock.set(7, 30)
    session_service.close_session(booked_session.id, identity_of(instructor))

    with pytest.raises(SessionInactiveError):
        rotation_service.get_or_rotate(booked_session.id)


def test_session_past_end_cannot_rotate(rotation_service, booked_session, clock):
    clock.set(13, 1)
    with pytest.raises(SessionInactiveError):
        rotation_service.get_or_rotate(booked_session.id)


def test_unknown_session(rotation_service):
    with pytest.raises(NotFoundError):
        rotation_service.get_or_rotate(999)


def test_other_instructors_cannot_read_code(rotation_service, booked_session, other_instructor, clock):
    clock.set(7, 0)
    with pytest.raises(AuthorizationError):
        rotation_service.get_or_rotate(booked_session.id, actor=identity_of(other_instructor))


def test_lab_manager_can_read_but_not_force(rotation_service, booked_session, lab_manager, clock):
    clock.set(7, 0)
    grant = rotation_service.get_or_rotate(booked_session.id, actor=identity_of(lab_manager))
    assert grant.code

    with pytest.raises(AuthorizationError):
        rotation_service.get_or_rotate(booked_session.id, force_new=True, actor=identity_of(lab_manager))


def test_grant_renders_image_with_payload(rotation_service, booked_session, clock):
    clock.set(7, 0)
    grant = rotation_service.get_or_rotate(booked_session.id)
    data = grant.to_dict(include_image=True)

    assert data['qr_image'].startswith('data:image/png;base64,')
    payload = json.loads(QRService.build_payload(grant.session_id, grant.code, grant.issued_at))
    assert payload['code'] == grant.code
    assert QRService.parse_scanned(json.dumps(payload)) == grant.code


def test_generated_codes_are_opaque():
    codes = {QRService.generate_code() for _ in range(50)}
    assert len(codes) == 50
    assert all(len(code) == 32 for code in codes)
