"""Access guard: authorizes every workflow operation against the caller.

``authorize`` is a pure decision function. Rules are evaluated in order:

1. the caller must be authenticated;
2. mutating operations require a verified email address;
3. role-scoped operations require the matching role;
4. operations on an owned target require the caller to be its recorded
   owner (teachers) or its recorded subject (students).

Services call ``ensure_authorized`` first and abort on denial.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, assert_never

from django.db import models

from SmartLearnApp.core.choices import UserRole
from SmartLearnApp.core.exceptions import (
    AuthorizationError, NotOwner, RoleMismatch, Unauthenticated, UnverifiedIdentity,
)
from SmartLearnApp.courses.models import Course, Enrollment
from SmartLearnApp.learning.models import Assignment, Submission

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """What an operation demands of its caller."""
    mutating: bool
    role: UserRole | None = None
    owned: bool = False


class Operation(enum.Enum):
    """Every guarded workflow operation."""
    CREATE_COURSE = "create a course"
    DEACTIVATE_COURSE = "deactivate this course"
    LIST_OWN_COURSES = "list their own courses"
    LIST_ENROLLABLE_COURSES = "browse enrollable courses"
    ENROLL = "enroll in a course"
    DROP_ENROLLMENT = "drop this enrollment"
    COMPLETE_ENROLLMENT = "complete this enrollment"
    LIST_ENROLLMENTS = "list enrollments"
    CREATE_ASSIGNMENT = "add assignments to this course"
    LIST_OWN_ASSIGNMENTS = "list their own assignments"
    LIST_COURSE_ASSIGNMENTS = "list course assignments"
    SAVE_DRAFT = "save a draft"
    SUBMIT = "submit work"
    UPLOAD_ARTIFACT = "upload files"
    LIST_OWN_SUBMISSIONS = "list their own submissions"
    REVIEW_SUBMISSIONS = "review submissions to this assignment"
    VIEW_SUBMISSION = "view this submission"
    GRADE = "grade this submission"
    VIEW_DASHBOARD = "view a dashboard"

    @property
    def rule(self) -> Rule:
        return RULES[self]

    @property
    def label(self) -> str:
        return self.value


RULES: dict[Operation, Rule] = {
    Operation.CREATE_COURSE: Rule(mutating=True, role=UserRole.TEACHER),
    Operation.DEACTIVATE_COURSE: Rule(mutating=True, role=UserRole.TEACHER, owned=True),
    Operation.LIST_OWN_COURSES: Rule(mutating=False, role=UserRole.TEACHER),
    Operation.LIST_ENROLLABLE_COURSES: Rule(mutating=False, role=UserRole.STUDENT),
    Operation.ENROLL: Rule(mutating=True, role=UserRole.STUDENT),
    Operation.DROP_ENROLLMENT: Rule(mutating=True, role=UserRole.STUDENT, owned=True),
    Operation.COMPLETE_ENROLLMENT: Rule(mutating=True, role=UserRole.TEACHER, owned=True),
    Operation.LIST_ENROLLMENTS: Rule(mutating=False, role=UserRole.STUDENT),
    Operation.CREATE_ASSIGNMENT: Rule(mutating=True, role=UserRole.TEACHER, owned=True),
    Operation.LIST_OWN_ASSIGNMENTS: Rule(mutating=False, role=UserRole.TEACHER),
    Operation.LIST_COURSE_ASSIGNMENTS: Rule(mutating=False, role=UserRole.STUDENT),
    Operation.SAVE_DRAFT: Rule(mutating=True, role=UserRole.STUDENT),
    Operation.SUBMIT: Rule(mutating=True, role=UserRole.STUDENT),
    Operation.UPLOAD_ARTIFACT: Rule(mutating=True, role=UserRole.STUDENT),
    Operation.LIST_OWN_SUBMISSIONS: Rule(mutating=False, role=UserRole.STUDENT),
    Operation.REVIEW_SUBMISSIONS: Rule(mutating=False, role=UserRole.TEACHER, owned=True),
    Operation.VIEW_SUBMISSION: Rule(mutating=False, owned=True),
    Operation.GRADE: Rule(mutating=True, role=UserRole.TEACHER, owned=True),
    Operation.VIEW_DASHBOARD: Rule(mutating=False),
}


class DenialReason(models.TextChoices):
    UNAUTHENTICATED = "unauthenticated", "Unauthenticated"
    UNVERIFIED_IDENTITY = "unverified_identity", "Unverified identity"
    ROLE_MISMATCH = "role_mismatch", "Role mismatch"
    NOT_OWNER = "not_owner", "Not owner"


@dataclass(frozen=True)
class Allowed:
    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class Denied:
    reason: DenialReason
    detail: str

    def __bool__(self) -> bool:
        return False


ALLOWED = Allowed()

DENIAL_ERRORS: dict[DenialReason, type[AuthorizationError]] = {
    DenialReason.UNAUTHENTICATED: Unauthenticated,
    DenialReason.UNVERIFIED_IDENTITY: UnverifiedIdentity,
    DenialReason.ROLE_MISMATCH: RoleMismatch,
    DenialReason.NOT_OWNER: NotOwner,
}


def owner_id_of(obj: Any) -> int | None:
    """Recorded owning teacher of a course, assignment, enrollment or submission."""
    if isinstance(obj, (Course, Assignment)):
        return obj.created_by_id
    if isinstance(obj, Enrollment):
        return obj.course.created_by_id
    if isinstance(obj, Submission):
        return obj.assignment.created_by_id
    return None


def subject_id_of(obj: Any) -> int | None:
    """Recorded student an enrollment or submission is about."""
    if isinstance(obj, (Enrollment, Submission)):
        return obj.student_id
    return None


def authorize(caller: Any, operation: Operation, target: Any = None) -> Allowed | Denied:
    """Decide whether caller may perform operation on target. No side effects."""
    rule = operation.rule
    if caller is None or not getattr(caller, "is_authenticated", False):
        return Denied(DenialReason.UNAUTHENTICATED, "Authentication required.")
    if rule.mutating and not caller.email_verified:
        return Denied(DenialReason.UNVERIFIED_IDENTITY, "Verify your email address before making changes.")
    try:
        role = UserRole(caller.role)
    except ValueError:
        return Denied(DenialReason.ROLE_MISMATCH, "Profile has neither a teacher nor a student role.")
    if rule.role is not None and role != rule.role:
        return Denied(
            DenialReason.ROLE_MISMATCH,
            f"Only {rule.role.label.lower()}s may {operation.label}.",
        )
    if rule.owned:
        match role:
            case UserRole.TEACHER:
                recorded, relation = owner_id_of(target), "the owning teacher"
            case UserRole.STUDENT:
                recorded, relation = subject_id_of(target), "the student it belongs to"
            case _ as unreachable:
                assert_never(unreachable)
        if recorded is None or recorded != caller.pk:
            return Denied(DenialReason.NOT_OWNER, f"Only {relation} may {operation.label}.")
    return ALLOWED


def ensure_authorized(caller: Any, operation: Operation, target: Any = None) -> None:
    """Raise the matching AuthorizationError when authorize() denies."""
    decision = authorize(caller, operation, target)
    if isinstance(decision, Denied):
        logger.warning(
            "Denied %s for caller %s: %s",
            operation.name, getattr(caller, "pk", None), decision.reason,
        )
        raise DENIAL_ERRORS[decision.reason](decision.detail)
