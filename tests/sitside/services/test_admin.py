import pytest

from sitside.core import errors
from sitside.models.user import User
from sitside.services import admin as admin_service


def test_dashboard_counts_users_and_bookings(db, admin, parent, student, make_user, make_booking) -> None:
    make_user('student')
    make_booking(student, parent, status='pending')
    make_booking(student, parent, status='pending')
    latest = make_booking(student, parent, status='completed')

    stats = admin_service.dashboard_stats(db, recent_limit=2)

    assert stats['stats']['total_users'] == 4
    assert stats['stats']['total_students'] == 2
    assert stats['stats']['total_parents'] == 1
    assert stats['stats']['total_admins'] == 1
    assert stats['stats']['total_bookings'] == 3
    assert stats['stats']['pending_bookings'] == 2
    assert stats['stats']['completed_bookings'] == 1
    assert stats['stats']['bookings_by_status']['cancelled'] == 0
    assert len(stats['recent_users']) == 2
    assert stats['recent_bookings'][0].id == latest.id


def test_list_users_filters_by_role(db, admin, parent, student) -> None:
    users, total = admin_service.list_users(db, role='student')

    assert total == 1
    assert [user.id for user in users] == [student.id]

    with pytest.raises(errors.ValidationError):
        admin_service.list_users(db, role='tutor')


def test_list_bookings_filters_by_status(db, parent, student, make_booking) -> None:
    make_booking(student, parent, status='pending')
    confirmed = make_booking(student, parent, status='confirmed')

    bookings, total = admin_service.list_bookings(db, status='confirmed')

    assert total == 1
    assert bookings[0].id == confirmed.id


def test_toggle_user_flips_active_flag(db, admin, parent) -> None:
    deactivated = admin_service.toggle_user(db, admin, parent.id)
    assert deactivated.is_active is False

    reactivated = admin_service.toggle_user(db, admin, parent.id)
    assert reactivated.is_active is True


def test_toggle_user_guards_self_and_missing(db, admin) -> None:
    with pytest.raises(errors.AuthorizationError):
        admin_service.toggle_user(db, admin, admin.id)

    with pytest.raises(errors.NotFoundError):
        admin_service.toggle_user(db, admin, 999)


def test_verify_student_marks_background_check(db, admin, parent, make_user) -> None:
    student = make_user('student', is_verified=False)

    verified = admin_service.verify_student(db, admin, student.id)

    assert verified.is_verified is True
    assert verified.background_check_status == 'approved'
    with pytest.raises(errors.ValidationError):
        admin_service.verify_student(db, admin, parent.id)


def test_delete_user_removes_user_without_bookings(db, admin, parent) -> None:
    parent_id, parent_email = parent.id, parent.email

    summary, deleted = admin_service.delete_user(db, admin, parent_id)

    assert deleted is True
    assert summary['id'] == parent_id
    assert summary['email'] == parent_email
    assert db.get(User, parent_id) is None


def test_delete_user_deactivates_student_with_bookings(db, admin, parent, student, make_booking) -> None:
    make_booking(student, parent)

    summary, deleted = admin_service.delete_user(db, admin, student.id)

    assert deleted is False
    assert summary['is_active'] is False
    assert db.get(User, student.id) is not None


def test_delete_user_refuses_admins(db, admin, make_user) -> None:
    other_admin = make_user('admin')

    with pytest.raises(errors.AuthorizationError):
        admin_service.delete_user(db, admin, other_admin.id)
