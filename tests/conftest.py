import itertools
import os
from datetime import date, time

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from sitside.auth import passwords  # noqa: E402
from sitside.database import Base  # noqa: E402
from sitside.models.booking import Booking  # noqa: E402
from sitside.models.user import User, default_availability  # noqa: E402

PASSWORD = 'secret123'
PASSWORD_HASH = passwords.hash_password(PASSWORD)


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=[User.__table__, Booking.__table__])
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=[Booking.__table__, User.__table__])
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def factory(role: str = 'parent', **overrides) -> User:
        number = next(counter)
        fields = {
            'email': f'{role}{number}@example.com',
            'hashed_password': PASSWORD_HASH,
            'first_name': role.title(),
            'last_name': f'Number{number}',
            'phone': '555-0100',
            'role': role,
        }
        if role == 'student':
            fields.update(
                grade=11,
                school='Central High',
                hourly_rate=15.0,
                certifications=[],
                availability=default_availability(),
                is_verified=True,
            )
        elif role == 'parent':
            fields.update(emergency_contact='555-0199')
        fields.update(overrides)

        user = User(**fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return factory


@pytest.fixture
def student(make_user):
    return make_user('student')


@pytest.fixture
def parent(make_user):
    return make_user('parent')


@pytest.fixture
def admin(make_user):
    return make_user('admin', is_verified=True)


@pytest.fixture
def make_booking(db):
    def factory(student: User, parent: User, status: str = 'pending', **overrides) -> Booking:
        fields = {
            'student_id': student.id,
            'parent_id': parent.id,
            'date': date(2026, 11, 14),
            'start_time': time(14, 0),
            'end_time': time(18, 0),
            'hourly_rate': student.hourly_rate,
            'number_of_children': 2,
            'children_ages': [4, 7],
            'special_instructions': '',
            'emergency_contact': '555-0199',
            'status': status,
        }
        fields.update(overrides)

        booking = Booking(**fields)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return factory
