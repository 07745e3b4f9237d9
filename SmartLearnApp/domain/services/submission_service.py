"""Domain service functions for the submission workflow and grading.

State machine: no row -> draft -> submitted -> graded. Absence of a row is
the implicit first state; a resubmission stays in submitted.

Rules:
    - Only actively enrolled students submit; the row is keyed by
      (assignment, student) and a resubmission overwrites it.
    - Once graded, the student path is closed (``AlreadyGraded``).
    - Only the teacher who created the assignment grades it; regrading a
      graded submission is a correction and overwrites grade and feedback.
"""

import logging
from datetime import datetime
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from SmartLearnApp.core.access import Operation, ensure_authorized
from SmartLearnApp.core.choices import DisplayStatus, SubmissionStatus
from SmartLearnApp.core.conf import get_setting
from SmartLearnApp.core.exceptions import (
    AlreadyGraded, AlreadySubmitted, ArtifactRejected, AssignmentUnavailable, EmptySubmission,
    NotEnrolled, NotSubmitted, PastDue, SubmissionConflict, translate_store_errors,
)
from SmartLearnApp.core.validators import validate_artifact, validate_grade
from SmartLearnApp.courses.models import Enrollment
from SmartLearnApp.learning.models import Assignment, Submission
from SmartLearnApp.learning.storage import ArtifactStore, get_artifact_store
from SmartLearnApp.users.models import User

logger = logging.getLogger(__name__)


def _ensure_can_work_on(student: User, assignment: Assignment) -> None:
    """Assignment must be published and the student actively enrolled in its course."""
    if not assignment.is_published:
        raise AssignmentUnavailable()
    if not Enrollment.objects.active().filter(student=student, course_id=assignment.course_id).exists():
        raise NotEnrolled(f"Enroll in the course before working on '{assignment.title}'.")


def _ensure_artifact_issued(
    student: User, assignment: Assignment, artifact_ref: str, store: ArtifactStore | None
) -> None:
    """A non-empty reference must come from attach_artifact for this student and assignment."""
    if not artifact_ref:
        return
    store = store or get_artifact_store()
    if not store.owns(student.pk, assignment.pk, artifact_ref):
        raise ArtifactRejected("Artifact reference was not issued for this assignment.")


def _locked_submission(student: User, assignment: Assignment) -> Submission | None:
    return (
        Submission.objects.select_for_update()
        .filter(assignment=assignment, student=student)
        .first()
    )


def _upsert(student: User, assignment: Assignment, current: Submission | None, **fields: Any) -> Submission:
    """Insert or overwrite the (assignment, student) row with ``fields``."""
    if current is None:
        try:
            with transaction.atomic():
                return Submission.objects.create(assignment=assignment, student=student, **fields)
        except IntegrityError as exc:
            raise SubmissionConflict() from exc
    for name, value in fields.items():
        setattr(current, name, value)
    current.save(update_fields=[*fields, "updated_at"])
    return current


@translate_store_errors
@transaction.atomic
def save_draft(
    student: User,
    assignment: Assignment,
    content: str | None = None,
    artifact_ref: str | None = None,
    store: ArtifactStore | None = None,
) -> Submission:
    """Create or update a draft; allowed only before the work is handed in."""
    ensure_authorized(student, Operation.SAVE_DRAFT, assignment)
    _ensure_can_work_on(student, assignment)
    _ensure_artifact_issued(student, assignment, artifact_ref or "", store)
    current = _locked_submission(student, assignment)
    if current is not None:
        if current.status == SubmissionStatus.GRADED:
            raise AlreadyGraded()
        if current.status == SubmissionStatus.SUBMITTED:
            raise AlreadySubmitted()
    submission = _upsert(
        student, assignment, current,
        content=content or "",
        file_url=artifact_ref or "",
        status=SubmissionStatus.DRAFT,
    )
    logger.info("Draft saved for assignment %s by student %s", assignment.pk, student.pk)
    return submission


@translate_store_errors
@transaction.atomic
def submit(
    student: User,
    assignment: Assignment,
    content: str | None = None,
    artifact_ref: str | None = None,
    now: datetime | None = None,
    store: ArtifactStore | None = None,
) -> Submission:
    """Hand in work for an assignment (insert or overwrite).

    Raises:
        NotEnrolled: no active enrollment in the assignment's course.
        PastDue: past due and SMARTLEARN['ALLOW_LATE_SUBMISSIONS'] is off.
        EmptySubmission: neither text content nor an artifact reference.
        ArtifactRejected: artifact_ref was not issued to this student for this assignment.
        AlreadyGraded: the existing submission was graded.
    """
    ensure_authorized(student, Operation.SUBMIT, assignment)
    _ensure_can_work_on(student, assignment)
    now = now or timezone.now()
    is_late = now > assignment.due_date
    if is_late and not get_setting("ALLOW_LATE_SUBMISSIONS"):
        raise PastDue(f"'{assignment.title}' was due {assignment.due_date.isoformat()}.")
    content = content or ""
    artifact_ref = artifact_ref or ""
    if not content.strip() and not artifact_ref:
        raise EmptySubmission()
    _ensure_artifact_issued(student, assignment, artifact_ref, store)

    current = _locked_submission(student, assignment)
    if current is not None and current.status == SubmissionStatus.GRADED:
        raise AlreadyGraded()
    resubmission = current is not None and current.status == SubmissionStatus.SUBMITTED
    submission = _upsert(
        student, assignment, current,
        content=content,
        file_url=artifact_ref,
        status=SubmissionStatus.SUBMITTED,
        submitted_at=now,
        is_late=is_late,
    )
    if is_late:
        logger.warning(
            "Late submission %s for assignment %s by student %s (due %s)",
            submission.pk, assignment.pk, student.pk, assignment.due_date.isoformat(),
        )
    logger.info(
        "%s %s for assignment %s by student %s",
        "Resubmitted" if resubmission else "Submitted", submission.pk, assignment.pk, student.pk,
    )
    return submission


def attach_artifact(
    student: User,
    assignment: Assignment,
    upload: Any,
    store: ArtifactStore | None = None,
) -> str:
    """Validate and store an uploaded file, returning its artifact reference.

    The allow-list and size ceiling are enforced here, before the store is
    invoked. The reference is then passed to ``submit`` or ``save_draft``.
    """
    ensure_authorized(student, Operation.UPLOAD_ARTIFACT, assignment)
    _ensure_can_work_on(student, assignment)
    validate_artifact(upload)
    store = store or get_artifact_store()
    return store.store(student.pk, assignment.pk, upload)


@translate_store_errors
@transaction.atomic
def grade_submission(
    teacher: User,
    submission: Submission,
    grade: int,
    feedback: str | None = None,
    now: datetime | None = None,
) -> Submission:
    """Grade (or regrade) a handed-in submission.

    Raises:
        NotOwner: teacher did not create the parent assignment.
        InvalidGrade: grade outside [0, 100].
        NotSubmitted: submission is still a draft.
    """
    ensure_authorized(teacher, Operation.GRADE, submission)
    value = validate_grade(grade)
    locked = Submission.objects.select_for_update().get(pk=submission.pk)
    if locked.status == SubmissionStatus.DRAFT:
        raise NotSubmitted()
    regrade = locked.status == SubmissionStatus.GRADED
    locked.grade = value
    locked.feedback = feedback
    locked.status = SubmissionStatus.GRADED
    locked.graded_at = now or timezone.now()
    locked.graded_by = teacher
    locked.save(update_fields=["grade", "feedback", "status", "graded_at", "graded_by", "updated_at"])
    logger.info(
        "%s submission %s with %s by teacher %s",
        "Regraded" if regrade else "Graded", locked.pk, value, teacher.pk,
    )
    return locked


def get_submission(caller: User, submission: Submission) -> Submission:
    """Return a submission if caller is its student or the assignment's owner."""
    ensure_authorized(caller, Operation.VIEW_SUBMISSION, submission)
    return submission


def list_submissions_for_assignment(teacher: User, assignment: Assignment) -> QuerySet[Submission]:
    """All handed-in and draft submissions to an assignment (owner only)."""
    ensure_authorized(teacher, Operation.REVIEW_SUBMISSIONS, assignment)
    return (
        Submission.objects.filter(assignment=assignment)
        .select_related("student", "assignment")
        .order_by("-submitted_at", "-id")
    )


def list_for_student(student: User) -> QuerySet[Submission]:
    """The student's own submissions, most recently submitted first."""
    ensure_authorized(student, Operation.LIST_OWN_SUBMISSIONS)
    return (
        Submission.objects.for_student(student)
        .select_related("assignment", "assignment__course")
        .order_by("-submitted_at", "-id")
    )


def derive_status(
    assignment: Assignment,
    submission: Submission | None,
    now: datetime | None = None,
) -> DisplayStatus:
    """Display status of an assignment for one student; never stored.

    ``overdue`` means past due with no submission at all.
    """
    if submission is not None:
        return DisplayStatus(submission.status)
    now = now or timezone.now()
    if assignment.due_date < now:
        return DisplayStatus.OVERDUE
    return DisplayStatus.PENDING
