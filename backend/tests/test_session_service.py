"""Session booking, conflicts, updates and closing."""
import pytest

from campus_attendance import db
from campus_attendance.models import Attendance, QRCodeRecord, SessionStatus
from campus_attendance.services.identity import OriginMetadata, RegisteredAttendee
from campus_attendance.utils.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError

from conftest import at, identity_of


def booking(lab, start, end, **extra):
    data = {
        'environment_id': lab.id,
        'name': 'Networks Lab',
        'type': 'class',
        'start_time': start.isoformat(),
        'end_time': end.isoformat(),
    }
    data.update(extra)
    return data


def test_book_session_issues_first_code(booked_session, clock):
    assert booked_session.is_active is True
    assert booked_session.current_qr_code
    assert booked_session.last_qr_rotation == clock()
    assert booked_session.qr_rotation_minutes == 3

    records = QRCodeRecord.query.filter_by(session_id=booked_session.id).all()
    assert [r.code for r in records] == [booked_session.current_qr_code]


def test_default_rotation_applies(session_service, instructor, lab):
    session = session_service.book_session(booking(lab, at(8), at(9)), identity_of(instructor))
    assert session.qr_rotation_minutes == 3


def test_overlapping_booking_is_rejected(session_service, booked_session, other_instructor, lab):
    with pytest.raises(ConflictError) as exc:
        session_service.book_session(booking(lab, at(12), at(14)), identity_of(other_instructor))

    assert exc.value.details['conflicting_session_ids'] == [booked_session.id]


def test_adjacent_booking_is_allowed(session_service, booked_session, other_instructor, lab):
    session = session_service.book_session(booking(lab, at(13), at(15)), identity_of(other_instructor))
    assert session.id != booked_session.id


def test_closed_session_does_not_block_booking(session_service, booked_session, instructor, other_instructor, lab):
    session_service.close_session(booked_session.id, identity_of(instructor))

    session = session_service.book_session(booking(lab, at(8), at(10)), identity_of(other_instructor))
    assert session.is_active is True


def test_students_cannot_book(session_service, student, lab):
    with pytest.raises(AuthorizationError):
        session_service.book_session(booking(lab, at(8), at(9)), identity_of(student))


@pytest.mark.parametrize('changes', [
    {'name': 'ab'},
    {'type': 'party'},
    {'qr_rotation_minutes': 0},
    {'qr_rotation_minutes': 31},
    {'host_name': 'Guest Speaker'},
])
def test_invalid_booking_input(session_service, instructor, lab, changes):
    with pytest.raises(ValidationError):
        session_service.book_session(booking(lab, at(8), at(9), **changes), identity_of(instructor))


def test_end_before_start_is_invalid(session_service, instructor, lab):
    with pytest.raises(ValidationError):
        session_service.book_session(booking(lab, at(9), at(8)), identity_of(instructor))


def test_unknown_environment(session_service, instructor, lab):
    data = booking(lab, at(8), at(9), environment_id=999)
    with pytest.raises(NotFoundError):
        session_service.book_session(data, identity_of(instructor))


def test_inactive_environment_cannot_be_booked(session_service, instructor, lab):
    lab.is_active = False
    db.session.commit()

    with pytest.raises(ValidationError):
        session_service.book_session(booking(lab, at(8), at(9)), identity_of(instructor))


def test_status_follows_clock(booked_session, clock):
    assert booked_session.status(clock()) is SessionStatus.SCHEDULED
    assert booked_session.status(at(7, 30)) is SessionStatus.ACTIVE
    assert booked_session.status(at(13, 1)) is SessionStatus.CLOSED


def test_update_rechecks_conflicts(session_service, booked_session, instructor, lab):
    later = session_service.book_session(booking(lab, at(14), at(16)), identity_of(instructor))

    with pytest.raises(ConflictError):
        session_service.update_session(later.id, {'start_time': at(12).isoformat()}, identity_of(instructor))

    updated = session_service.update_session(
        later.id, {'start_time': at(13).isoformat(), 'name': 'Extended Lab'}, identity_of(instructor)
    )
    assert updated.start_time == at(13)
    assert updated.name == 'Extended Lab'


def test_only_host_or_admin_can_update(session_service, booked_session, other_instructor, admin):
    with pytest.raises(AuthorizationError):
        session_service.update_session(booked_session.id, {'name': 'Renamed'}, identity_of(other_instructor))

    updated = session_service.update_session(booked_session.id, {'name': 'Renamed'}, identity_of(admin))
    assert updated.name == 'Renamed'


def test_delete_without_attendance_removes_row(session_service, booked_session, instructor):
    session_id = booked_session.id
    assert session_service.delete_session(session_id, identity_of(instructor)) is True

    with pytest.raises(NotFoundError):
        session_service.get_session(session_id)
    assert QRCodeRecord.query.filter_by(session_id=session_id).count() == 0


def test_delete_with_attendance_only_deactivates(session_service, attendance_service, booked_session,
                                                 instructor, student, clock):
    clock.set(7, 5)
    attendance_service.mark_attendance(booked_session.current_qr_code, RegisteredAttendee(student.id))

    assert session_service.delete_session(booked_session.id, identity_of(instructor)) is False
    assert session_service.get_session(booked_session.id).is_active is False


def test_close_checks_out_open_attendances(session_service, rotation_service, attendance_service,
                                           booked_session, instructor, student, student_y, clock):
    clock.set(7, 2)
    code = rotation_service.get_or_rotate(booked_session.id).code
    attendance_service.mark_attendance(code, RegisteredAttendee(student.id), OriginMetadata('10.0.0.1'))
    attendance_service.mark_attendance(code, RegisteredAttendee(student_y.id), OriginMetadata('10.0.0.2'))
    clock.set(7, 5)
    attendance_service.mark_attendance(code, RegisteredAttendee(student.id), OriginMetadata('10.0.0.1'))

    clock.set(7, 10)
    closed = session_service.close_session(booked_session.id, identity_of(instructor))

    assert closed.is_active is False
    assert closed.end_time == at(7, 10)

    y_row = Attendance.query.filter_by(session_id=booked_session.id, user_id=student_y.id).one()
    assert y_row.check_out_time == at(7, 10)
    x_row = Attendance.query.filter_by(session_id=booked_session.id, user_id=student.id).one()
    assert x_row.check_out_time == at(7, 5)


def test_close_before_start_keeps_window(session_service, booked_session, instructor, clock):
    closed = session_service.close_session(booked_session.id, identity_of(instructor))

    assert closed.is_active is False
    assert closed.start_time == at(7)
    assert closed.end_time == at(13)


def test_only_host_or_admin_can_close(session_service, booked_session, other_instructor, lab_manager):
    for actor in (other_instructor, lab_manager):
        with pytest.raises(AuthorizationError):
            session_service.close_session(booked_session.id, identity_of(actor))


def test_session_attendance_summary(session_service, attendance_service, booked_session,
                                    instructor, lab_manager, student, student_y, clock):
    code = booked_session.current_qr_code
    clock.set(7, 5)
    attendance_service.mark_attendance(code, RegisteredAttendee(student.id), OriginMetadata('10.0.0.1'))
    clock.set(7, 20)
    attendance_service.mark_attendance(code, RegisteredAttendee(student_y.id), OriginMetadata('10.0.0.2'))

    report = session_service.session_attendance(booked_session.id, identity_of(lab_manager))

    assert report['summary']['total'] == 2
    assert report['summary']['students'] == 2
    assert report['summary']['on_time'] == 1
    assert report['summary']['late'] == 1
    assert report['summary']['still_present'] == 2
    assert [row['status'] for row in report['attendances']] == ['on-time', 'late']


def test_students_cannot_view_session_attendance(session_service, booked_session, student):
    with pytest.raises(AuthorizationError):
        session_service.session_attendance(booked_session.id, identity_of(student))


def test_active_sessions_listing(session_service, booked_session, lab, clock):
    assert session_service.list_active_sessions() == []

    clock.set(8)
    assert [s.id for s in session_service.list_active_sessions(lab.id)] == [booked_session.id]


def test_environment_schedule(session_service, booked_session, instructor, lab):
    later = session_service.book_session(booking(lab, at(14), at(16)), identity_of(instructor))

    schedule = session_service.list_environment_sessions(lab.id)
    assert [s.id for s in schedule] == [booked_session.id, later.id]

    afternoon = session_service.list_environment_sessions(lab.id, start=at(13, 30))
    assert [s.id for s in afternoon] == [later.id]


def test_closed_session_cannot_be_reopened(session_service, attendance_service, booked_session,
                                           instructor, student, clock):
    code = booked_session.current_qr_code
    clock.set(7, 10)
    session_service.close_session(booked_session.id, identity_of(instructor))

    with pytest.raises(ConflictError):
        session_service.update_session(
            booked_session.id, {'is_active': True, 'name': 'Reopened Lab'}, identity_of(instructor)
        )

    clock.set(7, 20)
    outcome = attendance_service.mark_attendance(code, RegisteredAttendee(student.id))
    assert outcome.rejection.code == 'SESSION_INACTIVE'
    assert session_service.get_session(booked_session.id).is_active is False


def test_is_active_is_not_an_updatable_field(session_service, booked_session, instructor):
    with pytest.raises(ValidationError):
        session_service.update_session(booked_session.id, {'is_active': False}, identity_of(instructor))

    assert session_service.get_session(booked_session.id).is_active is True


def test_session_past_end_cannot_be_updated(session_service, booked_session, instructor, clock):
    clock.set(14, 0)
    with pytest.raises(ConflictError):
        session_service.update_session(booked_session.id, {'name': 'Too Late'}, identity_of(instructor))


def test_second_close_changes_nothing(session_service, attendance_service, booked_session,
                                      instructor, student, clock):
    clock.set(7, 10)
    session_service.close_session(booked_session.id, identity_of(instructor))

    clock.set(9, 0)
    closed = session_service.close_session(booked_session.id, identity_of(instructor))

    assert closed.is_active is False
    assert closed.end_time == at(7, 10)


def test_close_after_scheduled_end_keeps_end(session_service, attendance_service, booked_session,
                                             instructor, student, clock):
    clock.set(12, 30)
    attendance_service.mark_attendance(booked_session.current_qr_code, RegisteredAttendee(student.id))

    clock.set(15, 0)
    closed = session_service.close_session(booked_session.id, identity_of(instructor))

    assert closed.is_active is False
    assert closed.end_time == at(13, 0)
    row = Attendance.query.filter_by(session_id=booked_session.id, user_id=student.id).one()
    assert row.check_out_time == at(13, 0)


@pytest.mark.parametrize('value', ['no', 'false', 0, 1])
def test_allow_externals_must_be_boolean(session_service, booked_session, instructor, lab, value):
    with pytest.raises(ValidationError):
        session_service.update_session(booked_session.id, {'allow_externals': value}, identity_of(instructor))

    with pytest.raises(ValidationError):
        session_service.book_session(booking(lab, at(14), at(15), allow_externals=value), identity_of(instructor))


def test_moving_end_time_moves_code_validity(session_service, booked_session, instructor):
    code = booked_session.current_qr_code

    session_service.update_session(booked_session.id, {'end_time': at(12).isoformat()}, identity_of(instructor))
    assert QRCodeRecord.query.filter_by(code=code).one().valid_until == at(12)

    session_service.update_session(booked_session.id, {'end_time': at(14).isoformat()}, identity_of(instructor))
    assert QRCodeRecord.query.filter_by(code=code).one().valid_until == at(14)
