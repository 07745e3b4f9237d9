"""Learning domain models: Assignment and Submission."""

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from simple_history.models import HistoricalRecords

from SmartLearnApp.core.choices import SubmissionStatus
from SmartLearnApp.courses.models import Course
from SmartLearnApp.courses.querysets import AssignmentQuerySet, SubmissionQuerySet

User = settings.AUTH_USER_MODEL

class Assignment(models.Model):
    """A graded task in a course, owned by the teacher who created it.

    Assignments are published on creation; ``is_published`` stays as the
    switch that hides an assignment from students.
    """
    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name="assignments")
    created_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name="assignments_created")
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    due_date = models.DateTimeField()
    max_points = models.PositiveSmallIntegerField(
        default=100, validators=[MinValueValidator(1), MaxValueValidator(1000)]
    )
    is_published = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = AssignmentQuerySet.as_manager()

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(max_points__gte=1) & models.Q(max_points__lte=1000),
                name="ck_assignment_points_range",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.title} (#{self.pk})"


class Submission(models.Model):
    """A student's work for an assignment (unique per assignment+student).

    A resubmission overwrites the row. ``grade`` and ``graded_at`` are set
    together, only by grading; ``grade=None`` means "not graded", which is
    different from a grade of 0.
    """
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name="submissions")
    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name="submissions")
    content = models.TextField(blank=True, default="")
    file_url = models.CharField(max_length=500, blank=True, default="")
    status = models.CharField(max_length=16, choices=SubmissionStatus.choices, default=SubmissionStatus.DRAFT)
    is_late = models.BooleanField(default=False)
    submitted_at = models.DateTimeField(null=True, blank=True)
    grade = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    feedback = models.TextField(null=True, blank=True)
    graded_at = models.DateTimeField(null=True, blank=True)
    graded_by = models.ForeignKey(
        User, on_delete=models.PROTECT, null=True, blank=True, related_name="graded_submissions"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = SubmissionQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["assignment", "student"], name="uq_assignment_student"),
            models.CheckConstraint(
                condition=models.Q(grade__isnull=True) | models.Q(grade__lte=100),
                name="ck_submission_grade_range",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(grade__isnull=True, graded_at__isnull=True)
                    | models.Q(grade__isnull=False, graded_at__isnull=False)
                ),
                name="ck_submission_grade_with_timestamp",
            ),
        ]

    @property
    def has_grade(self) -> bool:
        return self.grade is not None

    def __str__(self) -> str:
        return f"{self.student} -> {self.assignment} ({self.status})"
