"""Course domain models: Course and Enrollment."""

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from simple_history.models import HistoricalRecords

from SmartLearnApp.core.choices import EnrollmentStatus
from SmartLearnApp.courses.querysets import CourseQuerySet, EnrollmentQuerySet


User = settings.AUTH_USER_MODEL

class Course(models.Model):
    """A course created and owned by one teacher.

    Fields:
        title / description: Human readable text.
        duration: Free-form duration label (e.g. "8 weeks").
        max_students: Capacity, 1..100.
        is_active: Soft-deactivation flag; courses are never deleted.
        created_by: Owning teacher.
        created_at / updated_at: Timestamps.
        history: Audit history (django-simple-history).
    The number of occupied seats is never stored; see ``active_enrollment_count``.
    """
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    duration = models.CharField(max_length=100, blank=True)
    max_students = models.PositiveSmallIntegerField(
        default=30, validators=[MinValueValidator(1), MaxValueValidator(100)]
    )
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name="courses_created")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = CourseQuerySet.as_manager()

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(max_students__gte=1) & models.Q(max_students__lte=100),
                name="ck_course_capacity_range",
            ),
        ]

    def active_enrollment_count(self) -> int:
        """Seats currently taken (count of active enrollments)."""
        return self.enrollments.filter(status=EnrollmentStatus.ACTIVE).count()

    def __str__(self) -> str:
        return f"{self.title} (#{self.pk})"

class Enrollment(models.Model):
    """Membership of a student in a course.

    Fields:
        student: Enrolled student.
        course: Target course.
        status: active -> completed | dropped (one-directional).
        enrolled_at: Timestamp.
    Constraints:
        uq_active_enrollment: at most one *active* row per (student, course);
        re-enrolling after a drop creates a new row.
    """
    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name="enrollments")
    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name="enrollments")
    status = models.CharField(max_length=16, choices=EnrollmentStatus.choices, default=EnrollmentStatus.ACTIVE)
    enrolled_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = EnrollmentQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["student", "course"],
                condition=models.Q(status=EnrollmentStatus.ACTIVE),
                name="uq_active_enrollment",
            ),
        ]

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE

    def __str__(self) -> str:
        return f"{self.student} -> {self.course} ({self.status})"
