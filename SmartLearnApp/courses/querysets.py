"""Custom querysets encapsulating ownership, enrollment and publication filters."""

from collections.abc import Iterable
from typing import Self

from django.db.models import Count, Exists, OuterRef, Q, QuerySet

from SmartLearnApp.core.choices import EnrollmentStatus, SubmissionStatus

ACTIVE_ENROLLMENT = Q(enrollments__status=EnrollmentStatus.ACTIVE)


class CourseQuerySet(QuerySet):
    """QuerySet with helpers for course activity, ownership and seat counts."""

    def active(self) -> Self:
        """Courses that still accept enrollments (subject to capacity)."""
        return self.filter(is_active=True)

    def for_owner(self, user) -> Self:
        """Courses created by the given teacher."""
        return self.filter(created_by=user)

    def with_enrollment_counts(self) -> Self:
        """Annotate ``seats_taken`` (active enrollments), computed from the ledger at read time."""
        return self.annotate(seats_taken=Count("enrollments", filter=ACTIVE_ENROLLMENT))

    def enrollable_by(self, student) -> Self:
        """Active courses the student is not currently actively enrolled in."""
        from SmartLearnApp.courses.models import Enrollment

        current = Enrollment.objects.active().filter(course=OuterRef("pk"), student=student)
        return self.active().filter(~Exists(current))


class EnrollmentQuerySet(QuerySet):
    """QuerySet helpers for the enrollment ledger."""

    def active(self) -> Self:
        return self.filter(status=EnrollmentStatus.ACTIVE)

    def for_student(self, student) -> Self:
        return self.filter(student=student)


class AssignmentQuerySet(QuerySet):
    """QuerySet helpers for assignment visibility and ordering."""

    def published(self) -> Self:
        """Assignments students may see and act on."""
        return self.filter(is_published=True)

    def for_courses(self, course_ids: Iterable[int]) -> Self:
        return self.filter(course_id__in=list(course_ids))

    def by_due_date(self) -> Self:
        """Soonest due first; ties keep creation order."""
        return self.order_by("due_date", "created_at", "id")

    def created_by_teacher(self, teacher) -> Self:
        return self.filter(created_by=teacher)

    def newest_first(self) -> Self:
        return self.order_by("-created_at", "-id")


class SubmissionQuerySet(QuerySet):
    """QuerySet helpers for filtering submissions by role."""

    def for_teacher(self, user) -> Self:
        """Submissions to assignments the teacher created."""
        return self.filter(assignment__created_by=user)

    def for_student(self, user) -> Self:
        """Submissions belonging to the student."""
        return self.filter(student=user)

    def handed_in(self) -> Self:
        """Submitted or graded (drafts excluded)."""
        return self.filter(status__in=[SubmissionStatus.SUBMITTED, SubmissionStatus.GRADED])

    def awaiting_grade(self) -> Self:
        return self.filter(status=SubmissionStatus.SUBMITTED)

    def graded(self) -> Self:
        return self.filter(status=SubmissionStatus.GRADED, grade__isnull=False)
