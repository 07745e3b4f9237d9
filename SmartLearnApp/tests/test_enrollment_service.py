from unittest import mock

import pytest
from model_bakery import baker

from SmartLearnApp.api.serializers import EnrollmentReadSerializer
from SmartLearnApp.core.choices import EnrollmentStatus, UserRole
from SmartLearnApp.core.exceptions import (
    AlreadyEnrolled, CapacityExceeded, CourseInactive, EnrollmentClosed, NotOwner, RoleMismatch,
    UnverifiedIdentity,
)
from SmartLearnApp.courses.models import Enrollment
from SmartLearnApp.courses.querysets import EnrollmentQuerySet
from SmartLearnApp.domain.services import enrollment_service

pytestmark = pytest.mark.django_db


def verified_students(n):
    return baker.make("users.User", role=UserRole.STUDENT, email_verified=True, _quantity=n)


def test_enroll_creates_active_enrollment(student, course):
    enrollment = enrollment_service.enroll(student, course)
    assert enrollment.status == EnrollmentStatus.ACTIVE
    assert enrollment.enrolled_at is not None


def test_double_enroll_leaves_one_active_row(student, course):
    enrollment_service.enroll(student, course)
    with pytest.raises(AlreadyEnrolled):
        enrollment_service.enroll(student, course)
    assert Enrollment.objects.active().filter(student=student, course=course).count() == 1


def test_capacity_one_second_student_rejected(teacher, student, other_student):
    course = baker.make("courses.Course", created_by=teacher, title="Tiny", max_students=1)
    enrollment_service.enroll(student, course)
    with pytest.raises(CapacityExceeded, match=r"\(1/1\)"):
        enrollment_service.enroll(other_student, course)


def test_active_count_never_exceeds_capacity(teacher):
    course = baker.make("courses.Course", created_by=teacher, max_students=3)
    outcomes = []
    for s in verified_students(5):
        try:
            enrollment_service.enroll(s, course)
            outcomes.append("ok")
        except CapacityExceeded:
            outcomes.append("full")
    assert outcomes == ["ok", "ok", "ok", "full", "full"]
    assert course.active_enrollment_count() == 3


def test_inactive_course_rejects_enrollment(teacher, student):
    course = baker.make("courses.Course", created_by=teacher, is_active=False)
    with pytest.raises(CourseInactive):
        enrollment_service.enroll(student, course)


def test_teacher_cannot_enroll(teacher, course):
    with pytest.raises(RoleMismatch):
        enrollment_service.enroll(teacher, course)


def test_unverified_student_cannot_enroll(course):
    student = baker.make("users.User", role=UserRole.STUDENT, email_verified=False)
    with pytest.raises(UnverifiedIdentity):
        enrollment_service.enroll(student, course)
    assert not Enrollment.objects.exists()


def test_drop_frees_the_seat(teacher, student, other_student):
    course = baker.make("courses.Course", created_by=teacher, max_students=1)
    enrollment = enrollment_service.enroll(student, course)
    dropped = enrollment_service.drop_enrollment(student, enrollment)
    assert dropped.status == EnrollmentStatus.DROPPED
    assert enrollment_service.enroll(other_student, course).status == EnrollmentStatus.ACTIVE


def test_reenroll_after_drop_creates_new_row(student, course):
    first = enrollment_service.enroll(student, course)
    enrollment_service.drop_enrollment(student, first)
    second = enrollment_service.enroll(student, course)
    assert second.pk != first.pk
    assert Enrollment.objects.filter(student=student, course=course).count() == 2


def test_closing_twice_is_a_state_error(student, enrolled):
    enrollment_service.drop_enrollment(student, enrolled)
    with pytest.raises(EnrollmentClosed):
        enrollment_service.drop_enrollment(student, enrolled)


def test_student_cannot_drop_someone_elses_enrollment(other_student, enrolled):
    with pytest.raises(NotOwner):
        enrollment_service.drop_enrollment(other_student, enrolled)


def test_complete_is_course_owner_only(teacher, other_teacher, enrolled):
    with pytest.raises(NotOwner):
        enrollment_service.complete_enrollment(other_teacher, enrolled)
    completed = enrollment_service.complete_enrollment(teacher, enrolled)
    assert completed.status == EnrollmentStatus.COMPLETED


def test_list_active_for_student(student, course, enrolled, teacher):
    other = baker.make("courses.Course", created_by=teacher)
    baker.make("courses.Enrollment", student=student, course=other, status=EnrollmentStatus.DROPPED)
    assert list(enrollment_service.list_active_for_student(student)) == [enrolled]


def test_losing_the_enroll_race_is_already_enrolled(student, course):
    baker.make("courses.Enrollment", student=student, course=course, status=EnrollmentStatus.ACTIVE)
    # The duplicate check misses the row a concurrent request just committed.
    with mock.patch.object(EnrollmentQuerySet, "exists", return_value=False):
        with pytest.raises(AlreadyEnrolled) as exc:
            enrollment_service.enroll(student, course)
    assert exc.value.status_code == 409
    assert Enrollment.objects.active().filter(student=student, course=course).count() == 1


def test_listing_carries_seat_counts_without_a_query_per_row(
    student, other_student, teacher, django_assert_num_queries
):
    courses = baker.make("courses.Course", created_by=teacher, max_students=10, _quantity=3)
    for course in courses:
        baker.make("courses.Enrollment", student=student, course=course, status=EnrollmentStatus.ACTIVE)
    baker.make("courses.Enrollment", student=other_student, course=courses[0], status=EnrollmentStatus.ACTIVE)

    listing = enrollment_service.list_active_for_student(student)
    with django_assert_num_queries(2):
        data = EnrollmentReadSerializer(listing, many=True).data
    seats = {row["course"]["id"]: row["course"]["active_enrollment_count"] for row in data}
    assert seats == {courses[0].pk: 2, courses[1].pk: 1, courses[2].pk: 1}
    assert all(row["course"]["created_by"]["id"] == teacher.pk for row in data)
