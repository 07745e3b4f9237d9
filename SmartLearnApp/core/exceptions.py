"""Typed workflow errors.

Every error is a DRF ``APIException`` so the HTTP layer renders it with the
right status code and a message naming the violated rule. Five kinds:

* ``ValidationError`` (400): malformed input, correctable by the caller.
* ``AuthorizationError`` (403, 401 when unauthenticated): never retried.
* ``ConflictError`` (409): safe to retry after re-reading state.
* ``StateError`` (422): the current state forbids the transition.
* ``InfrastructureError`` (503): record or artifact store failure.
"""

import functools
import logging
from typing import Any, Callable, TypeVar

from django.db import DatabaseError, IntegrityError
from rest_framework import status
from rest_framework.exceptions import APIException

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class WorkflowError(APIException):
    """Base class of every typed workflow failure."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Workflow operation failed."
    default_code = "workflow_error"


# ---------- Validation ----------
class ValidationError(WorkflowError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input."
    default_code = "validation_error"


class InvalidInput(ValidationError):
    default_code = "invalid_input"


class InvalidGrade(ValidationError):
    default_detail = "Grade must be an integer between 0 and 100."
    default_code = "invalid_grade"


class EmptySubmission(ValidationError):
    default_detail = "A submission needs text content or an attached file."
    default_code = "empty_submission"


class ArtifactRejected(ValidationError):
    default_detail = "File was rejected."
    default_code = "artifact_rejected"


# ---------- Authorization ----------
class AuthorizationError(WorkflowError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied."
    default_code = "authorization_error"


class Unauthenticated(AuthorizationError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required."
    default_code = "unauthenticated"


class UnverifiedIdentity(AuthorizationError):
    default_detail = "Email address must be verified first."
    default_code = "unverified_identity"


class RoleMismatch(AuthorizationError):
    default_detail = "Your role does not allow this action."
    default_code = "role_mismatch"


class NotOwner(AuthorizationError):
    default_detail = "You do not own this resource."
    default_code = "not_owner"


# ---------- Conflict ----------
class ConflictError(WorkflowError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflicting state; reload and retry."
    default_code = "conflict"


class CapacityExceeded(ConflictError):
    default_detail = "Course is full."
    default_code = "capacity_exceeded"


class AlreadyEnrolled(ConflictError):
    default_detail = "Already enrolled in this course."
    default_code = "already_enrolled"


class AlreadyGraded(ConflictError):
    default_detail = "Submission has already been graded and cannot be changed."
    default_code = "already_graded"


class SubmissionConflict(ConflictError):
    default_detail = "Submission was changed concurrently; reload and retry."
    default_code = "submission_conflict"


# ---------- State ----------
class StateError(WorkflowError):
    status_code = 422
    default_detail = "Operation not allowed in the current state."
    default_code = "state_error"


class NotSubmitted(StateError):
    default_detail = "Submission has not been submitted yet."
    default_code = "not_submitted"


class PastDue(StateError):
    default_detail = "Assignment is past due and late submissions are not accepted."
    default_code = "past_due"


class NotEnrolled(StateError):
    default_detail = "You are not actively enrolled in this course."
    default_code = "not_enrolled"


class CourseInactive(StateError):
    default_detail = "Course is no longer active."
    default_code = "course_inactive"


class AlreadySubmitted(StateError):
    default_detail = "Submission was already handed in; drafts can no longer be saved."
    default_code = "already_submitted"


class EnrollmentClosed(StateError):
    default_detail = "Enrollment is no longer active."
    default_code = "enrollment_closed"


class AssignmentUnavailable(StateError):
    default_detail = "Assignment is not published."
    default_code = "assignment_unavailable"


# ---------- Lookup / infrastructure ----------
class ProfileNotFound(WorkflowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Profile not found."
    default_code = "profile_not_found"


class InfrastructureError(WorkflowError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Storage is temporarily unavailable; retry later."
    default_code = "infrastructure_error"


def translate_store_errors(func: F) -> F:
    """Surface record-store failures as ``InfrastructureError``.

    ``IntegrityError`` is left alone: services translate it into the matching
    conflict error themselves, so one escaping here is a bug, not an outage.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except IntegrityError:
            raise
        except DatabaseError as exc:
            logger.exception("Record store failure in %s", func.__qualname__)
            raise InfrastructureError() from exc
    return wrapper  # type: ignore[return-value]
