"""REST API views for authentication, profiles, courses, enrollments, assignments, submissions and dashboards.

Views only parse input and render output; every rule lives in the domain
services, which raise typed ``APIException`` subclasses.
"""

from typing import assert_never

from django.shortcuts import get_object_or_404

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.request import Request
from rest_framework.views import APIView

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiResponse,
    OpenApiParameter,
    PolymorphicProxySerializer,
)

from SmartLearnApp.api.mixins import CallerMixin, PaginationMixin
from SmartLearnApp.api.throttles import SubmissionRateThrottle
from SmartLearnApp.core.choices import UserRole
from SmartLearnApp.core.identity import identity_provider
from SmartLearnApp.courses.models import Course, Enrollment
from SmartLearnApp.domain.services import (
    assignment_service,
    course_service,
    dashboard_service,
    enrollment_service,
    submission_service,
)
from SmartLearnApp.learning.models import Assignment, Submission
from SmartLearnApp.learning.storage import get_artifact_store
from SmartLearnApp.users.directory import update_profile
from SmartLearnApp.api.serializers import (
    RegistrationSerializer,
    UserSerializer,
    ProfileSerializer,
    SignOutSerializer,
    CourseWriteSerializer,
    CourseReadSerializer,
    EnrollmentReadSerializer,
    AssignmentWriteSerializer,
    AssignmentReadSerializer,
    SubmissionWriteSerializer,
    ArtifactUploadSerializer,
    SubmissionReadSerializer,
    GradeWriteSerializer,
    TeacherDashboardSerializer,
    StudentDashboardSerializer,
)

AUTH_RESPONSES = {
    401: OpenApiResponse(description="Authentication required."),
    403: OpenApiResponse(description="Forbidden: unverified email, wrong role or not the owner."),
    404: OpenApiResponse(description="Not Found"),
}

CONFLICT_RESPONSE = {
    409: OpenApiResponse(description="Conflicts with current state (capacity, duplicate, already graded)."),
}

VALIDATION_RESPONSE = {
    400: OpenApiResponse(description="Validation error."),
    422: OpenApiResponse(description="Operation not allowed in the current state."),
}


# ---------- Auth ----------
@extend_schema(
    tags=["Auth"],
    request=RegistrationSerializer,
    responses={201: UserSerializer, **VALIDATION_RESPONSE},
    description="Register a new user. Teacher role requires staff privileges.",
)
class RegistrationView(APIView):
    """User registration endpoint."""
    permission_classes = [AllowAny]

    def post(self, request: Request) -> Response:
        """Create a user after validating role constraints."""
        ser = RegistrationSerializer(data=request.data, context={"request": request})
        ser.is_valid(raise_exception=True)
        user = ser.save()
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@extend_schema(
    tags=["Auth"],
    request=SignOutSerializer,
    responses={205: OpenApiResponse(description="Signed out."), **AUTH_RESPONSES, **VALIDATION_RESPONSE},
    description="Revoke a refresh token so it can no longer mint access tokens.",
)
class SignOutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request: Request) -> Response:
        ser = SignOutSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        identity_provider.sign_out(ser.validated_data["refresh"])
        return Response(status=status.HTTP_205_RESET_CONTENT)


@extend_schema_view(
    get=extend_schema(tags=["Auth"], responses={200: ProfileSerializer, **AUTH_RESPONSES}),
    patch=extend_schema(
        tags=["Auth"],
        request=ProfileSerializer,
        responses={200: ProfileSerializer, **AUTH_RESPONSES, **VALIDATION_RESPONSE},
        description="Update display name and avatar URL. Role and email cannot change here.",
    ),
)
class ProfileView(CallerMixin, APIView):
    """The caller's own profile."""
    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        return Response(ProfileSerializer(self.caller).data)

    def patch(self, request: Request) -> Response:
        ser = ProfileSerializer(self.caller, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        profile = update_profile(
            self.caller,
            name=ser.validated_data.get("name"),
            avatar_url=ser.validated_data.get("avatar_url"),
        )
        return Response(ProfileSerializer(profile).data)


# ---------- Courses ----------
@extend_schema_view(
    list=extend_schema(
        tags=["Courses"],
        description="Teachers see their own active courses; students see courses they can still enroll in.",
        responses={200: CourseReadSerializer(many=True), **AUTH_RESPONSES},
    ),
    create=extend_schema(
        tags=["Courses"],
        request=CourseWriteSerializer,
        responses={201: CourseReadSerializer, **AUTH_RESPONSES, **VALIDATION_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["teacher"], "ownership": "owner-on-create"}},
    ),
    enroll=extend_schema(
        tags=["Enrollments"],
        request=None,
        responses={201: EnrollmentReadSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE, **VALIDATION_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["student"], "ownership": "self"}},
    ),
    deactivate=extend_schema(
        tags=["Courses"],
        request=None,
        responses={200: CourseReadSerializer, **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["teacher"], "ownership": "owner"}},
    ),
)
class CourseViewSet(CallerMixin, PaginationMixin, viewsets.GenericViewSet):
    """Course registry: create, browse, enroll and deactivate."""
    queryset = Course.objects.select_related("created_by")
    serializer_class = CourseReadSerializer
    permission_classes = [IsAuthenticated]

    def list(self, request: Request, *args, **kwargs) -> Response:
        """List courses appropriate to the caller's role."""
        caller = self.caller
        match caller.user_role:
            case UserRole.TEACHER:
                qs = course_service.list_for_teacher(caller)
            case UserRole.STUDENT:
                qs = course_service.list_enrollable(caller)
            case _ as unreachable:
                assert_never(unreachable)
        return self.paginate_and_respond(qs, CourseReadSerializer)

    def create(self, request: Request, *args, **kwargs) -> Response:
        """Create a course and return read representation."""
        ser = CourseWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        course = course_service.create_course(self.caller, **ser.validated_data)
        return Response(CourseReadSerializer(course).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def enroll(self, request: Request, pk: int | None = None) -> Response:
        """Enroll the calling student in the course."""
        enrollment = enrollment_service.enroll(self.caller, self.get_object())
        return Response(EnrollmentReadSerializer(enrollment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def deactivate(self, request: Request, pk: int | None = None) -> Response:
        """Stop accepting enrollments and assignments (owner only)."""
        course = course_service.deactivate_course(self.caller, self.get_object())
        return Response(CourseReadSerializer(course).data)


# ---------- Enrollments ----------
@extend_schema_view(
    list=extend_schema(
        tags=["Enrollments"],
        responses={200: EnrollmentReadSerializer(many=True), **AUTH_RESPONSES},
    ),
    drop=extend_schema(
        tags=["Enrollments"],
        request=None,
        responses={200: EnrollmentReadSerializer, **AUTH_RESPONSES, **VALIDATION_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["student"], "ownership": "self"}},
    ),
    complete=extend_schema(
        tags=["Enrollments"],
        request=None,
        responses={200: EnrollmentReadSerializer, **AUTH_RESPONSES, **VALIDATION_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["teacher"], "ownership": "course-owner"}},
    ),
)
class EnrollmentViewSet(CallerMixin, PaginationMixin, viewsets.GenericViewSet):
    """Enrollment ledger: a student's active enrollments and their closing transitions."""
    queryset = Enrollment.objects.select_related("course", "course__created_by")
    serializer_class = EnrollmentReadSerializer
    permission_classes = [IsAuthenticated]

    def list(self, request: Request, *args, **kwargs) -> Response:
        qs = enrollment_service.list_active_for_student(self.caller)
        return self.paginate_and_respond(qs, EnrollmentReadSerializer)

    @action(detail=True, methods=["post"])
    def drop(self, request: Request, pk: int | None = None) -> Response:
        enrollment = enrollment_service.drop_enrollment(self.caller, self.get_object())
        return Response(EnrollmentReadSerializer(enrollment).data)

    @action(detail=True, methods=["post"])
    def complete(self, request: Request, pk: int | None = None) -> Response:
        enrollment = enrollment_service.complete_enrollment(self.caller, self.get_object())
        return Response(EnrollmentReadSerializer(enrollment).data)


# ---------- Assignments ----------
@extend_schema_view(
    list=extend_schema(
        tags=["Assignments"],
        description="Teachers see assignments they created; students see published assignments of their courses.",
        responses={200: AssignmentReadSerializer(many=True), **AUTH_RESPONSES},
    ),
    create=extend_schema(
        tags=["Assignments"],
        request=AssignmentWriteSerializer,
        responses={201: AssignmentReadSerializer, **AUTH_RESPONSES, **VALIDATION_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["teacher"], "ownership": "course-owner"}},
    ),
)
class AssignmentViewSet(CallerMixin, PaginationMixin, viewsets.GenericViewSet):
    """Assignment catalog."""
    queryset = Assignment.objects.select_related("course")
    serializer_class = AssignmentReadSerializer
    permission_classes = [IsAuthenticated]

    def list(self, request: Request, *args, **kwargs) -> Response:
        caller = self.caller
        match caller.user_role:
            case UserRole.TEACHER:
                qs = assignment_service.list_by_teacher(caller)
            case UserRole.STUDENT:
                qs = assignment_service.list_for_student(caller)
            case _ as unreachable:
                assert_never(unreachable)
        return self.paginate_and_respond(qs, AssignmentReadSerializer)

    def create(self, request: Request, *args, **kwargs) -> Response:
        ser = AssignmentWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        assignment = assignment_service.create_assignment(self.caller, **ser.validated_data)
        return Response(AssignmentReadSerializer(assignment).data, status=status.HTTP_201_CREATED)


# ---------- Submissions ----------
@extend_schema_view(
    list=extend_schema(
        tags=["Submissions"],
        description="All submissions to the assignment (owning teacher only).",
        responses={200: SubmissionReadSerializer(many=True), **AUTH_RESPONSES},
    ),
    retrieve=extend_schema(
        tags=["Submissions"],
        responses={200: SubmissionReadSerializer, **AUTH_RESPONSES},
    ),
    create=extend_schema(
        tags=["Submissions"],
        request=SubmissionWriteSerializer,
        description=(
            "Submit or resubmit work for the assignment. Requires text content or an "
            "artifact reference returned by the upload endpoint. Endpoint is rate-limited."
        ),
        responses={
            201: SubmissionReadSerializer,
            429: OpenApiResponse(description="Too many requests / throttled."),
            **AUTH_RESPONSES,
            **CONFLICT_RESPONSE,
            **VALIDATION_RESPONSE,
        },
        extensions={"x-permissions": {"required_roles": ["student"], "ownership": "self"}},
    ),
    draft=extend_schema(
        tags=["Submissions"],
        request=SubmissionWriteSerializer,
        responses={200: SubmissionReadSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE, **VALIDATION_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["student"], "ownership": "self"}},
    ),
    upload=extend_schema(
        tags=["Submissions"],
        request={"multipart/form-data": ArtifactUploadSerializer},
        description="Store a file and return its artifact reference for a later submit or draft.",
        responses={
            201: OpenApiResponse(description="Artifact stored; body holds `artifact_ref` and `url`."),
            503: OpenApiResponse(description="Artifact store unavailable."),
            **AUTH_RESPONSES,
            **VALIDATION_RESPONSE,
        },
        extensions={"x-permissions": {"required_roles": ["student"], "ownership": "self"}},
    ),
    grade=extend_schema(
        tags=["Grades"],
        request=GradeWriteSerializer,
        responses={200: SubmissionReadSerializer, **AUTH_RESPONSES, **VALIDATION_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["teacher"], "ownership": "assignment-owner"}},
    ),
)
@extend_schema(parameters=[OpenApiParameter("assignment_pk", int, OpenApiParameter.PATH)])
class SubmissionViewSet(CallerMixin, PaginationMixin, viewsets.GenericViewSet):
    """Submission workflow nested under an assignment."""
    queryset = Submission.objects.select_related("assignment", "student")
    serializer_class = SubmissionReadSerializer
    permission_classes = [IsAuthenticated]
    throttle_classes: list[type] = []

    def get_throttles(self):
        """Apply rate throttle only on create."""
        if self.action == "create":
            self.throttle_classes = [SubmissionRateThrottle]
        return super().get_throttles()

    def get_queryset(self):
        return self.queryset.filter(assignment_id=self.kwargs.get("assignment_pk"))

    def get_assignment(self) -> Assignment:
        return get_object_or_404(Assignment.objects.select_related("course"), pk=self.kwargs.get("assignment_pk"))

    def list(self, request: Request, *args, **kwargs) -> Response:
        qs = submission_service.list_submissions_for_assignment(self.caller, self.get_assignment())
        return self.paginate_and_respond(qs, SubmissionReadSerializer)

    def retrieve(self, request: Request, *args, **kwargs) -> Response:
        submission = submission_service.get_submission(self.caller, self.get_object())
        return Response(SubmissionReadSerializer(submission).data)

    def create(self, request: Request, *args, **kwargs) -> Response:
        """Submit work for the assignment."""
        ser = SubmissionWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        submission = submission_service.submit(
            self.caller,
            self.get_assignment(),
            content=ser.validated_data.get("content"),
            artifact_ref=ser.validated_data.get("artifact_ref"),
        )
        return Response(SubmissionReadSerializer(submission).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["put"])
    def draft(self, request: Request, *args, **kwargs) -> Response:
        """Save work in progress without handing it in."""
        ser = SubmissionWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        submission = submission_service.save_draft(
            self.caller,
            self.get_assignment(),
            content=ser.validated_data.get("content"),
            artifact_ref=ser.validated_data.get("artifact_ref"),
        )
        return Response(SubmissionReadSerializer(submission).data)

    @action(detail=False, methods=["post"], parser_classes=[MultiPartParser, FormParser])
    def upload(self, request: Request, *args, **kwargs) -> Response:
        """Validate and store an artifact; returns the reference to submit."""
        ser = ArtifactUploadSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        ref = submission_service.attach_artifact(self.caller, self.get_assignment(), ser.validated_data["file"])
        url = get_artifact_store().resolve(ref)
        return Response({"artifact_ref": ref, "url": url}, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def grade(self, request: Request, *args, **kwargs) -> Response:
        """Grade or regrade a handed-in submission."""
        ser = GradeWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        submission = submission_service.grade_submission(
            self.caller,
            self.get_object(),
            ser.validated_data["grade"],
            ser.validated_data.get("feedback"),
        )
        return Response(SubmissionReadSerializer(submission).data)


# ---------- Dashboard ----------
@extend_schema(
    tags=["Dashboard"],
    responses={
        200: PolymorphicProxySerializer(
            component_name="Dashboard",
            serializers=[TeacherDashboardSerializer, StudentDashboardSerializer],
            resource_type_field_name=None,
        ),
        **AUTH_RESPONSES,
    },
)
class DashboardView(CallerMixin, APIView):
    """Role-specific summary figures, derived on each request."""
    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        dashboard = dashboard_service.dashboard_for(self.caller)
        if isinstance(dashboard, dashboard_service.TeacherDashboard):
            return Response(TeacherDashboardSerializer(dashboard).data)
        return Response(StudentDashboardSerializer(dashboard).data)
