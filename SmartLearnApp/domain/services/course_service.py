"""Domain service functions for the course registry.

Only teachers create courses; only the owning teacher deactivates one.
Seat usage is always derived from the enrollment ledger at read time.
"""
import logging

from django.db import transaction
from django.db.models import QuerySet

from SmartLearnApp.core.access import Operation, ensure_authorized
from SmartLearnApp.core.exceptions import translate_store_errors
from SmartLearnApp.core.validators import require_text, validate_capacity
from SmartLearnApp.courses.models import Course
from SmartLearnApp.users.models import User

logger = logging.getLogger(__name__)


@translate_store_errors
@transaction.atomic
def create_course(
    teacher: User,
    title: str,
    description: str = "",
    duration: str = "",
    max_students: int = 30,
) -> Course:
    """Create an active course owned by ``teacher``.

    Raises:
        AuthorizationError: caller is not a verified teacher.
        InvalidInput: blank title or capacity outside [1, 100].
    """
    ensure_authorized(teacher, Operation.CREATE_COURSE)
    course = Course.objects.create(
        created_by=teacher,
        title=require_text(title, "Course title"),
        description=description or "",
        duration=duration or "",
        max_students=validate_capacity(max_students),
    )
    logger.info("Course %s created by teacher %s (capacity %s)", course.pk, teacher.pk, course.max_students)
    return course


@translate_store_errors
@transaction.atomic
def deactivate_course(teacher: User, course: Course) -> Course:
    """Soft-deactivate a course (owner only). Existing enrollments are kept."""
    ensure_authorized(teacher, Operation.DEACTIVATE_COURSE, course)
    course = Course.objects.select_for_update().get(pk=course.pk)
    if course.is_active:
        course.is_active = False
        course.save(update_fields=["is_active", "updated_at"])
        logger.info("Course %s deactivated by teacher %s", course.pk, teacher.pk)
    return course


def list_for_teacher(teacher: User) -> QuerySet[Course]:
    """Active courses owned by the teacher, with live active-enrollment counts."""
    ensure_authorized(teacher, Operation.LIST_OWN_COURSES)
    return (
        Course.objects.active()
        .for_owner(teacher)
        .with_enrollment_counts()
        .select_related("created_by")
        .order_by("-created_at", "-id")
    )


def list_enrollable(student: User) -> QuerySet[Course]:
    """Active courses the student is not actively enrolled in, with seat counts."""
    ensure_authorized(student, Operation.LIST_ENROLLABLE_COURSES)
    return (
        Course.objects.enrollable_by(student)
        .with_enrollment_counts()
        .select_related("created_by")
        .order_by("title", "id")
    )
