"""Typed enumerations (TextChoices) for roles, enrollment, submission and display states."""
from django.db import models

class UserRole(models.TextChoices):
    """Role assigned to a profile at creation; never changes afterwards."""
    TEACHER = "teacher", "Teacher"
    STUDENT = "student", "Student"

class EnrollmentStatus(models.TextChoices):
    """Enrollment lifecycle: active -> completed | dropped, one-directional."""
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    DROPPED = "dropped", "Dropped"

class SubmissionStatus(models.TextChoices):
    """Stored submission lifecycle: draft -> submitted -> graded."""
    DRAFT = "draft", "Draft"
    SUBMITTED = "submitted", "Submitted"
    GRADED = "graded", "Graded"

class DisplayStatus(models.TextChoices):
    """Derived per-assignment status shown to a student; never persisted."""
    PENDING = "pending", "Pending"
    OVERDUE = "overdue", "Overdue"
    DRAFT = "draft", "Draft"
    SUBMITTED = "submitted", "Submitted"
    GRADED = "graded", "Graded"
