import pytest

from sitside.core import errors
from sitside.models.user import User, default_availability
from sitside.services import users as user_service

PASSWORD = 'secret123'


def _register(db, **overrides) -> User:
    fields = {
        'email': 'Parent@Example.com ',
        'password': 'hunter22',
        'first_name': ' Dana ',
        'last_name': 'Reyes',
        'phone': '555-0142',
        'role': 'parent',
        'emergency_contact': '555-0199',
    }
    fields.update(overrides)
    return user_service.register_user(db, **fields)


def test_register_parent_normalizes_fields(db) -> None:
    user = _register(db)

    assert user.email == 'parent@example.com'
    assert user.first_name == 'Dana'
    assert user.role == 'parent'
    assert user.emergency_contact == '555-0199'
    assert user.hashed_password != 'hunter22'
    assert user.rating == 0
    assert user.review_count == 0
    assert user.is_active is True


def test_register_student_applies_defaults(db) -> None:
    user = _register(db, email='sitter@example.com', role='student', grade=10, school='  Westview High ')

    assert user.school == 'Westview High'
    assert user.hourly_rate == 15.0
    assert user.availability == default_availability()
    assert user.certifications == []
    assert user.is_verified is False


def test_register_duplicate_email_conflicts_without_creating_user(db) -> None:
    _register(db)

    with pytest.raises(errors.ConflictError):
        _register(db, email='PARENT@example.com')

    assert db.query(User).count() == 1


@pytest.mark.parametrize(
    ('overrides', 'message'),
    [
        ({'role': 'admin'}, 'Invalid user type'),
        ({'password': 'abc'}, 'Password must be at least 6 characters.'),
        ({'phone': ' '}, 'Missing required fields: email, password, first_name, last_name, phone, role'),
        ({'role': 'student', 'grade': 10}, 'Students must provide grade and school'),
        ({'role': 'student', 'grade': 8, 'school': 'Middle'}, 'Grade must be between 9 and 12'),
        ({'role': 'student', 'grade': 9, 'school': 'West', 'hourly_rate': 75}, 'Hourly rate must be between 5 and 50.'),
    ],
)
def test_register_validates_input(db, overrides: dict, message: str) -> None:
    with pytest.raises(errors.ValidationError) as exception_info:
        _register(db, **overrides)

    assert exception_info.value.message == message
    assert db.query(User).count() == 0


def test_authenticate_accepts_valid_credentials(db, parent) -> None:
    user = user_service.authenticate(db, parent.email.upper(), PASSWORD)

    assert user.id == parent.id


def test_authenticate_rejects_bad_credentials(db, parent) -> None:
    with pytest.raises(errors.AuthenticationError):
        user_service.authenticate(db, parent.email, 'wrong-password')

    with pytest.raises(errors.AuthenticationError):
        user_service.authenticate(db, 'nobody@example.com', PASSWORD)


def test_authenticate_rejects_suspended_account(db, make_user) -> None:
    suspended = make_user('parent', is_active=False)

    with pytest.raises(errors.AuthenticationError) as exception_info:
        user_service.authenticate(db, suspended.email, PASSWORD)

    assert 'suspended' in exception_info.value.message


def test_seed_admin_creates_configured_account_once(db, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('sitside.core.config.ADMIN_EMAIL', 'Admin@SitSide.com')
    monkeypatch.setattr('sitside.core.config.ADMIN_PASSWORD', 'admin-password')

    first = user_service.seed_admin(db)
    second = user_service.seed_admin(db)

    assert first.id == second.id
    assert first.role == 'admin'
    assert first.email == 'admin@sitside.com'
    assert user_service.authenticate(db, 'admin@sitside.com', 'admin-password').id == first.id


def test_seed_admin_is_skipped_without_credentials(db, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('sitside.core.config.ADMIN_EMAIL', '')

    assert user_service.seed_admin(db) is None
    assert db.query(User).count() == 0


def test_update_profile_applies_allowed_fields(db, student) -> None:
    updated = user_service.update_profile(
        db,
        student.id,
        {'bio': '  Loves board games ', 'hourly_rate': 18, 'location': 'Maple Grove'},
    )

    assert updated.bio == 'Loves board games'
    assert updated.hourly_rate == 18.0
    assert updated.location == 'Maple Grove'


def test_update_profile_rejects_student_fields_for_parent(db, parent) -> None:
    with pytest.raises(errors.AuthorizationError):
        user_service.update_profile(db, parent.id, {'hourly_rate': 20})


def test_update_profile_rejects_unknown_fields(db, parent) -> None:
    with pytest.raises(errors.ValidationError):
        user_service.update_profile(db, parent.id, {'rating': 5})


def test_update_availability_normalizes_grid(db, student, parent) -> None:
    grid = user_service.update_availability(db, student, {'monday': {'morning': True}})

    assert grid['monday'] == {'morning': True, 'afternoon': False, 'evening': False}
    assert grid['sunday'] == {'morning': False, 'afternoon': False, 'evening': False}

    with pytest.raises(errors.ValidationError):
        user_service.update_availability(db, student, {'funday': {'morning': True}})

    with pytest.raises(errors.AuthorizationError):
        user_service.update_availability(db, parent, {'monday': {'morning': True}})


def test_certifications_are_added_once_and_removed(db, student) -> None:
    assert user_service.add_certification(db, student, ' CPR ') == ['CPR']
    assert user_service.add_certification(db, student, 'CPR') == ['CPR']
    assert user_service.add_certification(db, student, 'First Aid') == ['CPR', 'First Aid']
    assert user_service.remove_certification(db, student, 'CPR') == ['First Aid']

    with pytest.raises(errors.ValidationError):
        user_service.add_certification(db, student, '   ')


def test_search_filters_and_orders_students(db, make_user) -> None:
    top = make_user('student', first_name='Ava', location='Springfield', hourly_rate=20.0, rating=4.9, review_count=12)
    busy = make_user('student', first_name='Ben', location='Springfield', hourly_rate=12.0, rating=4.9, review_count=30)
    make_user('student', first_name='Cal', location='Shelbyville', hourly_rate=10.0, rating=5.0, review_count=1)
    make_user('student', first_name='Dee', location='Springfield', is_verified=False)
    make_user('student', first_name='Eve', location='Springfield', is_active=False)

    results = user_service.search_students(db, location='spring')

    assert [student.id for student in results] == [busy.id, top.id]

    cheap = user_service.search_students(db, location='Springfield', max_rate=15)
    assert [student.id for student in cheap] == [busy.id]

    by_name = user_service.search_students(db, q='ava')
    assert [student.id for student in by_name] == [top.id]


def test_search_requires_a_criterion(db) -> None:
    with pytest.raises(errors.ValidationError) as exception_info:
        user_service.search_students(db, q='  ')

    assert exception_info.value.message == 'Search query required'


def test_list_students_paginates(db, make_user) -> None:
    for rating in (1.0, 2.0, 3.0):
        make_user('student', rating=rating)

    first_page, total = user_service.list_students(db, page=1, limit=2)
    second_page, _ = user_service.list_students(db, page=2, limit=2)

    assert total == 3
    assert [student.rating for student in first_page] == [3.0, 2.0]
    assert [student.rating for student in second_page] == [1.0]


def test_get_student_only_returns_active_students(db, parent, make_user) -> None:
    student = make_user('student', is_verified=False)
    inactive = make_user('student', is_active=False)

    assert user_service.get_student(db, student.id).id == student.id
    with pytest.raises(errors.NotFoundError):
        user_service.get_student(db, parent.id)
    with pytest.raises(errors.NotFoundError):
        user_service.get_student(db, inactive.id)


@pytest.mark.parametrize('rate', [float('nan'), float('inf'), float('-inf')])
def test_non_finite_hourly_rates_are_rejected(db, student, rate: float) -> None:
    with pytest.raises(errors.ValidationError):
        user_service.update_profile(db, student.id, {'hourly_rate': rate})

    with pytest.raises(errors.ValidationError):
        _register(db, email='sitter@example.com', role='student', grade=10, school='West', hourly_rate=rate)

    db.refresh(student)
    assert student.hourly_rate == 15.0


def test_search_treats_wildcards_literally(db, make_user) -> None:
    underscored = make_user('student', location='Unit_5 Elm Street')
    make_user('student', location='Unit 5 Oak Street')

    assert [student.id for student in user_service.search_students(db, location='t_5')] == [underscored.id]
    assert user_service.search_students(db, location='%') == []
    assert user_service.search_students(db, q='100%') == []
