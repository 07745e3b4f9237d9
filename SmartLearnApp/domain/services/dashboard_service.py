"""Derived read views for the teacher and student dashboards.

Nothing here is stored: every figure is recomputed from the registry,
ledger, catalog and submission tables on each call.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import assert_never

from django.db.models import Avg, Sum
from django.utils import timezone

from SmartLearnApp.core.access import Operation, ensure_authorized
from SmartLearnApp.core.choices import DisplayStatus, SubmissionStatus, UserRole
from SmartLearnApp.domain.services import (
    assignment_service, course_service, enrollment_service, submission_service,
)
from SmartLearnApp.learning.models import Assignment, Submission
from SmartLearnApp.users.models import User


@dataclass
class TeacherDashboard:
    total_courses: int
    total_students: int
    total_assignments: int
    pending_grading: int
    awaiting_grade: list[Assignment] = field(default_factory=list)


@dataclass
class AssignmentProgress:
    """One assignment as seen by one student."""
    assignment: Assignment
    submission: Submission | None
    status: DisplayStatus


@dataclass
class StudentDashboard:
    enrolled_courses: int
    pending_assignments: int
    completed_assignments: int
    average_grade: int | None
    assignments: list[AssignmentProgress] = field(default_factory=list)
    upcoming: list[Assignment] = field(default_factory=list)
    graded: list[Submission] = field(default_factory=list)


def teacher_dashboard(teacher: User) -> TeacherDashboard:
    """Course, student and grading figures for a teacher's own courses."""
    courses = course_service.list_for_teacher(teacher)
    assignments = assignment_service.list_by_teacher(teacher)
    awaiting = list(
        assignments.filter(submissions__status=SubmissionStatus.SUBMITTED).distinct()
    )
    return TeacherDashboard(
        total_courses=courses.count(),
        total_students=courses.aggregate(total=Sum("seats_taken"))["total"] or 0,
        total_assignments=assignments.count(),
        pending_grading=len(awaiting),
        awaiting_grade=awaiting,
    )


def student_dashboard(student: User, now: datetime | None = None) -> StudentDashboard:
    """Enrollment, progress and grade figures for a student.

    ``average_grade`` is None when nothing has been graded yet; a grade of 0
    is a real grade and pulls the average down.
    """
    now = now or timezone.now()
    enrollments = enrollment_service.list_active_for_student(student)
    assignments = list(assignment_service.list_for_student(student))
    submissions = submission_service.list_for_student(student)
    by_assignment = {s.assignment_id: s for s in submissions}

    progress = [
        AssignmentProgress(
            assignment=a,
            submission=by_assignment.get(a.pk),
            status=submission_service.derive_status(a, by_assignment.get(a.pk), now),
        )
        for a in assignments
    ]
    handed_in = (DisplayStatus.SUBMITTED, DisplayStatus.GRADED)
    graded = submissions.graded()
    average = graded.aggregate(avg=Avg("grade"))["avg"]
    return StudentDashboard(
        enrolled_courses=enrollments.count(),
        pending_assignments=sum(
            1 for p in progress if p.status not in handed_in and p.assignment.due_date > now
        ),
        completed_assignments=submissions.handed_in().count(),
        average_grade=math.floor(average + 0.5) if average is not None else None,
        assignments=progress,
        upcoming=[p.assignment for p in progress if p.assignment.due_date > now],
        graded=list(graded.order_by("-graded_at", "-id")),
    )


def dashboard_for(caller: User, now: datetime | None = None) -> TeacherDashboard | StudentDashboard:
    """Dashboard matching the caller's role."""
    ensure_authorized(caller, Operation.VIEW_DASHBOARD)
    match caller.user_role:
        case UserRole.TEACHER:
            return teacher_dashboard(caller)
        case UserRole.STUDENT:
            return student_dashboard(caller, now)
        case _ as unreachable:
            assert_never(unreachable)
