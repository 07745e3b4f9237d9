"""Serializers for registration, profiles, courses, enrollments, assignments, submissions and dashboards."""

from rest_framework import serializers
from django.contrib.auth import get_user_model

from SmartLearnApp.core.choices import UserRole
from SmartLearnApp.courses.models import Course, Enrollment
from SmartLearnApp.learning.models import Assignment, Submission
from SmartLearnApp.learning.storage import get_artifact_store

User = get_user_model()

class RegistrationSerializer(serializers.ModelSerializer):
    """Serializer handling user registration with role validation."""
    password = serializers.CharField(write_only=True, min_length=8, help_text="User password (write‑only).")

    class Meta:
        model = User
        fields = ["id", "email", "password", "name", "role"]

    def validate_role(self, value: str) -> str:
        """Restrict teacher role creation to staff users."""
        request = self.context.get("request")
        if value == UserRole.TEACHER and (not request or not request.user.is_staff):
            raise serializers.ValidationError("Teacher registration requires staff privileges.")
        return value

    def create(self, validated: dict) -> User:
        """Create and return a new, not yet verified, user."""
        user = User(
            email=validated["email"],
            name=validated.get("name", ""),
            role=validated["role"],
            username=validated["email"],
        )
        user.set_password(validated["password"])
        user.save()
        return user


class UserSerializer(serializers.ModelSerializer):
    """Public, safe representation of a profile."""

    class Meta:
        model = User
        fields = ["id", "email", "name", "role", "avatar_url"]


class ProfileSerializer(serializers.ModelSerializer):
    """The caller's own profile; only name and avatar are writable."""

    class Meta:
        model = User
        fields = ["id", "email", "name", "role", "avatar_url", "email_verified"]
        read_only_fields = ["id", "email", "role", "email_verified"]


class SignOutSerializer(serializers.Serializer):
    refresh = serializers.CharField(help_text="Refresh token to revoke.")


class CourseWriteSerializer(serializers.Serializer):
    """Payload for creating a course; range checks happen in the course service."""
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    duration = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    max_students = serializers.IntegerField(required=False, default=30, help_text="Capacity, 1..100.")


class CourseReadSerializer(serializers.ModelSerializer):
    """Course with owner and live seat usage."""
    created_by = UserSerializer(read_only=True)
    active_enrollment_count = serializers.SerializerMethodField()
    seats_remaining = serializers.SerializerMethodField()

    class Meta:
        model = Course
        fields = [
            "id", "title", "description", "duration", "max_students", "is_active",
            "created_by", "active_enrollment_count", "seats_remaining", "created_at", "updated_at",
        ]

    def get_active_enrollment_count(self, obj: Course) -> int:
        annotated = getattr(obj, "seats_taken", None)
        if annotated is not None:
            return annotated
        return obj.active_enrollment_count()

    def get_seats_remaining(self, obj: Course) -> int:
        return max(0, obj.max_students - self.get_active_enrollment_count(obj))


class EnrollmentReadSerializer(serializers.ModelSerializer):
    """Enrollment with its course resolved."""
    course = CourseReadSerializer(read_only=True)

    class Meta:
        model = Enrollment
        fields = ["id", "course", "student", "status", "enrolled_at"]


class AssignmentWriteSerializer(serializers.Serializer):
    """Payload for creating an assignment; the due date is parsed by the service."""
    course = serializers.PrimaryKeyRelatedField(queryset=Course.objects.all())
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    due_date = serializers.CharField(help_text="ISO-8601 date or datetime.")
    max_points = serializers.IntegerField(required=False, default=100, help_text="1..1000.")


class AssignmentReadSerializer(serializers.ModelSerializer):
    """Assignment with its course title."""
    course_title = serializers.CharField(source="course.title", read_only=True)

    class Meta:
        model = Assignment
        fields = [
            "id", "course", "course_title", "title", "description", "due_date",
            "max_points", "is_published", "created_by", "created_at",
        ]


class SubmissionWriteSerializer(serializers.Serializer):
    """Text and/or a previously uploaded artifact reference.

    Emptiness is checked by the workflow so the error names the rule.
    """
    content = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    artifact_ref = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=500)


class ArtifactUploadSerializer(serializers.Serializer):
    file = serializers.FileField(help_text="pdf, doc, docx, txt, zip or rar; at most 10 MB.")


class SubmissionReadSerializer(serializers.ModelSerializer):
    """Submission with student and resolved artifact URL."""
    student = UserSerializer(read_only=True)
    artifact_url = serializers.SerializerMethodField()

    class Meta:
        model = Submission
        fields = [
            "id", "assignment", "student", "content", "file_url", "artifact_url", "status",
            "is_late", "submitted_at", "grade", "feedback", "graded_at",
        ]

    def get_artifact_url(self, obj: Submission) -> str | None:
        if not obj.file_url:
            return None
        return get_artifact_store().resolve(obj.file_url)


class GradeWriteSerializer(serializers.Serializer):
    """Grade payload; the 0..100 range is enforced by the grading workflow."""
    grade = serializers.IntegerField()
    feedback = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class TeacherDashboardSerializer(serializers.Serializer):
    total_courses = serializers.IntegerField()
    total_students = serializers.IntegerField()
    total_assignments = serializers.IntegerField()
    pending_grading = serializers.IntegerField()
    awaiting_grade = AssignmentReadSerializer(many=True)


class AssignmentProgressSerializer(serializers.Serializer):
    assignment = AssignmentReadSerializer()
    submission = SubmissionReadSerializer(allow_null=True)
    status = serializers.CharField()


class StudentDashboardSerializer(serializers.Serializer):
    enrolled_courses = serializers.IntegerField()
    pending_assignments = serializers.IntegerField()
    completed_assignments = serializers.IntegerField()
    average_grade = serializers.IntegerField(allow_null=True)
    assignments = AssignmentProgressSerializer(many=True)
    upcoming = AssignmentReadSerializer(many=True)
    graded = SubmissionReadSerializer(many=True)
