"""Domain service functions for the assignment catalog."""

import logging
from collections.abc import Iterable
from datetime import datetime

from django.db import transaction
from django.db.models import QuerySet

from SmartLearnApp.core.access import Operation, ensure_authorized
from SmartLearnApp.core.exceptions import CourseInactive, translate_store_errors
from SmartLearnApp.core.validators import parse_due_date, require_text, validate_max_points
from SmartLearnApp.courses.models import Course, Enrollment
from SmartLearnApp.learning.models import Assignment
from SmartLearnApp.users.models import User

logger = logging.getLogger(__name__)


@translate_store_errors
@transaction.atomic
def create_assignment(
    teacher: User,
    course: Course,
    title: str,
    description: str,
    due_date: datetime | str,
    max_points: int = 100,
) -> Assignment:
    """Create a published assignment in a course the teacher owns.

    Raises:
        NotOwner: teacher did not create ``course``.
        InvalidInput: blank title, unparsable due date, max points outside [1, 1000].
        CourseInactive: course was deactivated.
    """
    ensure_authorized(teacher, Operation.CREATE_ASSIGNMENT, course)
    title = require_text(title, "Assignment title")
    due = parse_due_date(due_date)
    points = validate_max_points(max_points)
    if not course.is_active:
        raise CourseInactive(f"Course '{course.title}' is inactive; assignments cannot be added.")
    assignment = Assignment.objects.create(
        course=course,
        created_by=teacher,
        title=title,
        description=description or "",
        due_date=due,
        max_points=points,
        is_published=True,
    )
    logger.info("Assignment %s created in course %s, due %s", assignment.pk, course.pk, due.isoformat())
    return assignment


def list_published_for_courses(course_ids: Iterable[int]) -> QuerySet[Assignment]:
    """Published assignments of the given courses, soonest due first."""
    return (
        Assignment.objects.published()
        .for_courses(course_ids)
        .select_related("course")
        .by_due_date()
    )


def list_for_student(student: User) -> QuerySet[Assignment]:
    """Published assignments of every course the student is actively enrolled in."""
    ensure_authorized(student, Operation.LIST_COURSE_ASSIGNMENTS)
    course_ids = Enrollment.objects.active().for_student(student).values_list("course_id", flat=True)
    return list_published_for_courses(course_ids)


def list_by_teacher(teacher: User) -> QuerySet[Assignment]:
    """All assignments the teacher created, newest first."""
    ensure_authorized(teacher, Operation.LIST_OWN_ASSIGNMENTS)
    return (
        Assignment.objects.created_by_teacher(teacher)
        .select_related("course")
        .newest_first()
    )
