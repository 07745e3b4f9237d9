from datetime import timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone
from model_bakery import baker

from SmartLearnApp.core.choices import EnrollmentStatus, UserRole


@pytest.fixture(autouse=True)
def clear_throttle_cache():
    cache.clear()
    yield
    cache.clear()


def make_user(role, verified=True, **kwargs):
    return baker.make("users.User", role=role, email_verified=verified, **kwargs)


@pytest.fixture
def teacher():
    return make_user(UserRole.TEACHER, email="t1@example.com")


@pytest.fixture
def other_teacher():
    return make_user(UserRole.TEACHER, email="t2@example.com")


@pytest.fixture
def student():
    return make_user(UserRole.STUDENT, email="s1@example.com")


@pytest.fixture
def other_student():
    return make_user(UserRole.STUDENT, email="s2@example.com")


@pytest.fixture
def course(teacher):
    return baker.make("courses.Course", created_by=teacher, title="Algebra", max_students=30)


@pytest.fixture
def assignment(course, teacher):
    return baker.make(
        "learning.Assignment",
        course=course,
        created_by=teacher,
        title="Homework 1",
        due_date=timezone.now() + timedelta(days=7),
        is_published=True,
    )


@pytest.fixture
def enrolled(student, course):
    return baker.make("courses.Enrollment", student=student, course=course, status=EnrollmentStatus.ACTIVE)
