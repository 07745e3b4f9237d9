"""Domain service functions for the enrollment ledger.

``enroll`` is a read-then-write sequence; it is made safe by locking the
course row for the duration of the transaction (serializing enrollments per
course) and by the conditional unique constraint on active
(student, course) pairs, which turns a lost race into ``AlreadyEnrolled``.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import Prefetch, QuerySet

from SmartLearnApp.core.access import Operation, ensure_authorized
from SmartLearnApp.core.choices import EnrollmentStatus
from SmartLearnApp.core.exceptions import (
    AlreadyEnrolled, CapacityExceeded, CourseInactive, EnrollmentClosed, translate_store_errors,
)
from SmartLearnApp.courses.models import Course, Enrollment
from SmartLearnApp.users.models import User

logger = logging.getLogger(__name__)


@translate_store_errors
@transaction.atomic
def enroll(student: User, course: Course) -> Enrollment:
    """Enroll a student in a course.

    Raises:
        CourseInactive: course was deactivated.
        AlreadyEnrolled: an active enrollment for the pair exists.
        CapacityExceeded: active enrollments already fill the course.
    """
    ensure_authorized(student, Operation.ENROLL, course)
    course = Course.objects.select_for_update().get(pk=course.pk)
    if not course.is_active:
        raise CourseInactive(f"Course '{course.title}' is no longer accepting enrollments.")
    if Enrollment.objects.active().filter(student=student, course=course).exists():
        raise AlreadyEnrolled(f"Already enrolled in '{course.title}'.")
    taken = course.active_enrollment_count()
    if taken >= course.max_students:
        raise CapacityExceeded(f"Course '{course.title}' is full ({taken}/{course.max_students}).")
    try:
        with transaction.atomic():
            enrollment = Enrollment.objects.create(
                student=student, course=course, status=EnrollmentStatus.ACTIVE
            )
    except IntegrityError as exc:
        raise AlreadyEnrolled(f"Already enrolled in '{course.title}'.") from exc
    logger.info(
        "Student %s enrolled in course %s (%s/%s)",
        student.pk, course.pk, taken + 1, course.max_students,
    )
    return enrollment


def _close(enrollment: Enrollment, status: EnrollmentStatus) -> Enrollment:
    enrollment = Enrollment.objects.select_for_update().select_related("course").get(pk=enrollment.pk)
    if enrollment.status != EnrollmentStatus.ACTIVE:
        raise EnrollmentClosed(f"Enrollment is already {enrollment.status}.")
    enrollment.status = status
    enrollment.save(update_fields=["status", "updated_at"])
    logger.info("Enrollment %s -> %s", enrollment.pk, status)
    return enrollment


@translate_store_errors
@transaction.atomic
def drop_enrollment(student: User, enrollment: Enrollment) -> Enrollment:
    """Student leaves a course (active -> dropped). The seat is freed."""
    ensure_authorized(student, Operation.DROP_ENROLLMENT, enrollment)
    return _close(enrollment, EnrollmentStatus.DROPPED)


@translate_store_errors
@transaction.atomic
def complete_enrollment(teacher: User, enrollment: Enrollment) -> Enrollment:
    """Owning teacher marks a student's enrollment completed (active -> completed)."""
    ensure_authorized(teacher, Operation.COMPLETE_ENROLLMENT, enrollment)
    return _close(enrollment, EnrollmentStatus.COMPLETED)


def list_active_for_student(student: User) -> QuerySet[Enrollment]:
    """Active enrollments of the student with course, seat count and teacher resolved."""
    ensure_authorized(student, Operation.LIST_ENROLLMENTS)
    return (
        Enrollment.objects.active()
        .for_student(student)
        .prefetch_related(
            Prefetch("course", queryset=Course.objects.with_enrollment_counts().select_related("created_by"))
        )
        .order_by("-enrolled_at", "-id")
    )
