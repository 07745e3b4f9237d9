import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from model_bakery import baker
from rest_framework.test import APIClient

from SmartLearnApp.core.choices import UserRole

pytestmark = pytest.mark.django_db

PASSWORD = "pass1234"


def make_account(email, role, verified=True, **kwargs):
    u = baker.make("users.User", email=email, role=role, email_verified=verified, **kwargs)
    u.set_password(PASSWORD); u.save()
    return u


def login(user):
    client = APIClient()
    tokens = client.post("/api/v1/auth/token/", {"email": user.email, "password": PASSWORD}, format="json").data
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
    client.refresh_token = tokens["refresh"]
    return client


@pytest.fixture
def teacher_account():
    return make_account("teacher@example.com", UserRole.TEACHER, is_staff=True)


@pytest.fixture
def student_account():
    return make_account("student@example.com", UserRole.STUDENT)


@pytest.fixture
def in_memory_media(settings):
    settings.STORAGES = {
        **settings.STORAGES,
        "default": {"BACKEND": "django.core.files.storage.InMemoryStorage"},
    }


def test_register_student():
    resp = APIClient().post(
        "/api/v1/auth/register/",
        {"email": "new@example.com", "password": "longpassword", "name": "New", "role": "student"},
        format="json",
    )
    assert resp.status_code == 201
    assert resp.data["role"] == "student"


def test_register_teacher_requires_staff():
    resp = APIClient().post(
        "/api/v1/auth/register/",
        {"email": "t@example.com", "password": "longpassword", "role": "teacher"},
        format="json",
    )
    assert resp.status_code == 400


def test_anonymous_requests_are_rejected():
    assert APIClient().get("/api/v1/courses/").status_code == 401


def test_full_course_workflow(teacher_account, student_account):
    t_client = login(teacher_account)
    s_client = login(student_account)

    course = t_client.post("/api/v1/courses/", {"title": "Databases", "max_students": 2}, format="json")
    assert course.status_code == 201
    course_id = course.data["id"]
    assert course.data["seats_remaining"] == 2

    assignment = t_client.post(
        "/api/v1/assignments/",
        {"course": course_id, "title": "ER diagram", "due_date": "2099-01-01T00:00:00Z", "max_points": 10},
        format="json",
    )
    assert assignment.status_code == 201
    assignment_id = assignment.data["id"]

    listed = s_client.get("/api/v1/courses/")
    assert [c["id"] for c in listed.data["results"]] == [course_id]

    enroll = s_client.post(f"/api/v1/courses/{course_id}/enroll/")
    assert enroll.status_code == 201
    assert enroll.data["status"] == "active"
    assert s_client.post(f"/api/v1/courses/{course_id}/enroll/").status_code == 409

    submit = s_client.post(
        f"/api/v1/assignments/{assignment_id}/submissions/", {"content": "entities and relations"}, format="json"
    )
    assert submit.status_code == 201
    submission_id = submit.data["id"]
    assert submit.data["status"] == "submitted"

    assert t_client.post(
        f"/api/v1/assignments/{assignment_id}/submissions/{submission_id}/grade/", {"grade": 101}, format="json"
    ).status_code == 400

    graded = t_client.post(
        f"/api/v1/assignments/{assignment_id}/submissions/{submission_id}/grade/",
        {"grade": 95, "feedback": "Great"},
        format="json",
    )
    assert graded.status_code == 200
    assert graded.data["grade"] == 95
    assert graded.data["status"] == "graded"

    resubmit = s_client.post(
        f"/api/v1/assignments/{assignment_id}/submissions/", {"content": "v2"}, format="json"
    )
    assert resubmit.status_code == 409

    dashboard = s_client.get("/api/v1/dashboard/")
    assert dashboard.status_code == 200
    assert dashboard.data["average_grade"] == 95
    assert dashboard.data["assignments"][0]["status"] == "graded"

    t_dash = t_client.get("/api/v1/dashboard/")
    assert t_dash.data["total_students"] == 1
    assert t_dash.data["pending_grading"] == 0


def test_unverified_student_cannot_enroll(course):
    unverified = make_account("late@example.com", UserRole.STUDENT, verified=False)
    resp = login(unverified).post(f"/api/v1/courses/{course.id}/enroll/")
    assert resp.status_code == 403
    assert resp.data["detail"].code == "unverified_identity"


def test_capacity_exceeded_is_a_conflict(teacher, student_account, other_student):
    course = baker.make("courses.Course", created_by=teacher, max_students=1)
    baker.make("courses.Enrollment", course=course, student=other_student)
    resp = login(student_account).post(f"/api/v1/courses/{course.id}/enroll/")
    assert resp.status_code == 409
    assert resp.data["detail"].code == "capacity_exceeded"


def test_grading_a_draft_is_a_state_error(teacher, student, assignment, enrolled):
    teacher.set_password(PASSWORD); teacher.save()
    draft = baker.make("learning.Submission", assignment=assignment, student=student)
    resp = login(teacher).post(
        f"/api/v1/assignments/{assignment.id}/submissions/{draft.id}/grade/", {"grade": 50}, format="json"
    )
    assert resp.status_code == 422


def test_empty_submission_is_rejected(student, assignment, enrolled):
    student.set_password(PASSWORD); student.save()
    resp = login(student).post(f"/api/v1/assignments/{assignment.id}/submissions/", {"content": " "}, format="json")
    assert resp.status_code == 400
    assert resp.data["detail"].code == "empty_submission"


def test_draft_endpoint(student, assignment, enrolled):
    student.set_password(PASSWORD); student.save()
    resp = login(student).put(
        f"/api/v1/assignments/{assignment.id}/submissions/draft/", {"content": "wip"}, format="json"
    )
    assert resp.status_code == 200
    assert resp.data["status"] == "draft"


def test_upload_then_submit_artifact(student, assignment, enrolled, in_memory_media):
    student.set_password(PASSWORD); student.save()
    client = login(student)
    upload = client.post(
        f"/api/v1/assignments/{assignment.id}/submissions/upload/",
        {"file": SimpleUploadedFile("essay.pdf", b"%PDF-1.4")},
        format="multipart",
    )
    assert upload.status_code == 201
    ref = upload.data["artifact_ref"]
    assert ref.startswith(f"submissions/{student.id}/{assignment.id}/")

    submit = client.post(f"/api/v1/assignments/{assignment.id}/submissions/", {"artifact_ref": ref}, format="json")
    assert submit.status_code == 201
    assert submit.data["artifact_url"].endswith(ref)


def test_upload_rejects_disallowed_type(student, assignment, enrolled, in_memory_media):
    student.set_password(PASSWORD); student.save()
    resp = login(student).post(
        f"/api/v1/assignments/{assignment.id}/submissions/upload/",
        {"file": SimpleUploadedFile("script.sh", b"echo")},
        format="multipart",
    )
    assert resp.status_code == 400
    assert resp.data["detail"].code == "artifact_rejected"


def test_submission_listing_is_owner_only(teacher, other_teacher, assignment):
    other_teacher.set_password(PASSWORD); other_teacher.save()
    resp = login(other_teacher).get(f"/api/v1/assignments/{assignment.id}/submissions/")
    assert resp.status_code == 403


def test_profile_read_and_update(student_account):
    client = login(student_account)
    assert client.get("/api/v1/auth/me/").data["email"] == "student@example.com"
    resp = client.patch("/api/v1/auth/me/", {"name": "Sam", "role": "teacher"}, format="json")
    assert resp.status_code == 200
    assert resp.data["name"] == "Sam"
    assert resp.data["role"] == "student"


def test_sign_out_revokes_refresh_token(student_account):
    client = login(student_account)
    refresh = client.refresh_token
    assert client.post("/api/v1/auth/sign-out/", {"refresh": refresh}, format="json").status_code == 205
    again = APIClient().post("/api/v1/auth/token/refresh/", {"refresh": refresh}, format="json")
    assert again.status_code == 401


def test_enrollment_drop_via_api(student_account, course):
    client = login(student_account)
    enrollment_id = client.post(f"/api/v1/courses/{course.id}/enroll/").data["id"]
    assert [e["id"] for e in client.get("/api/v1/enrollments/").data["results"]] == [enrollment_id]
    dropped = client.post(f"/api/v1/enrollments/{enrollment_id}/drop/")
    assert dropped.status_code == 200
    assert dropped.data["status"] == "dropped"
    assert client.post(f"/api/v1/enrollments/{enrollment_id}/drop/").status_code == 422


def test_schema_is_served(student_account):
    assert login(student_account).get("/api/v1/schema/").status_code == 200


def test_foreign_or_oversized_artifact_ref_is_rejected(student, other_student, assignment, enrolled, in_memory_media):
    student.set_password(PASSWORD); student.save()
    ref = login(student).post(
        f"/api/v1/assignments/{assignment.id}/submissions/upload/",
        {"file": SimpleUploadedFile("essay.pdf", b"%PDF-1.4")},
        format="multipart",
    ).data["artifact_ref"]

    other_student.set_password(PASSWORD); other_student.save()
    baker.make("courses.Enrollment", course=assignment.course, student=other_student)
    other = login(other_student)
    url = f"/api/v1/assignments/{assignment.id}/submissions/"
    stolen = other.post(url, {"artifact_ref": ref}, format="json")
    assert stolen.status_code == 400
    assert stolen.data["detail"].code == "artifact_rejected"
    assert other.post(url, {"artifact_ref": "x" * 501}, format="json").status_code == 400
