import logging

import pytest
from django.contrib.auth.models import AnonymousUser
from model_bakery import baker

from SmartLearnApp.core.access import (
    ALLOWED, Denied, DenialReason, Operation, RULES, authorize, ensure_authorized,
)
from SmartLearnApp.core.choices import UserRole
from SmartLearnApp.core.exceptions import NotOwner, RoleMismatch, Unauthenticated, UnverifiedIdentity

pytestmark = pytest.mark.django_db


def test_every_operation_has_a_rule():
    assert set(RULES) == set(Operation)


def test_anonymous_caller_is_unauthenticated():
    decision = authorize(AnonymousUser(), Operation.VIEW_DASHBOARD)
    assert isinstance(decision, Denied)
    assert decision.reason == DenialReason.UNAUTHENTICATED
    assert authorize(None, Operation.VIEW_DASHBOARD).reason == DenialReason.UNAUTHENTICATED


def test_unauthenticated_maps_to_401():
    with pytest.raises(Unauthenticated) as exc:
        ensure_authorized(AnonymousUser(), Operation.CREATE_COURSE)
    assert exc.value.status_code == 401


def test_mutation_requires_verified_email():
    teacher = baker.make("users.User", role=UserRole.TEACHER, email_verified=False)
    decision = authorize(teacher, Operation.CREATE_COURSE)
    assert decision.reason == DenialReason.UNVERIFIED_IDENTITY
    with pytest.raises(UnverifiedIdentity):
        ensure_authorized(teacher, Operation.CREATE_COURSE)


def test_reads_do_not_require_verified_email():
    teacher = baker.make("users.User", role=UserRole.TEACHER, email_verified=False)
    assert authorize(teacher, Operation.LIST_OWN_COURSES) is ALLOWED


def test_student_cannot_create_course(student):
    decision = authorize(student, Operation.CREATE_COURSE)
    assert decision.reason == DenialReason.ROLE_MISMATCH
    assert decision.detail == "Only teachers may create a course."


def test_teacher_cannot_enroll(teacher, course):
    with pytest.raises(RoleMismatch):
        ensure_authorized(teacher, Operation.ENROLL, course)


def test_unknown_role_is_a_role_mismatch():
    odd = baker.make("users.User", role="admin", email_verified=True)
    assert authorize(odd, Operation.VIEW_DASHBOARD).reason == DenialReason.ROLE_MISMATCH


def test_owner_may_act_on_own_course(teacher, course):
    assert authorize(teacher, Operation.DEACTIVATE_COURSE, course)


def test_other_teacher_is_not_owner(other_teacher, course):
    decision = authorize(other_teacher, Operation.DEACTIVATE_COURSE, course)
    assert decision.reason == DenialReason.NOT_OWNER
    assert not decision


def test_owned_operation_without_target_is_denied(teacher):
    assert authorize(teacher, Operation.GRADE, None).reason == DenialReason.NOT_OWNER


def test_submission_visible_to_its_student_and_owner(teacher, other_teacher, student, other_student, assignment):
    submission = baker.make("learning.Submission", assignment=assignment, student=student)
    assert authorize(student, Operation.VIEW_SUBMISSION, submission)
    assert authorize(teacher, Operation.VIEW_SUBMISSION, submission)
    assert not authorize(other_student, Operation.VIEW_SUBMISSION, submission)
    assert not authorize(other_teacher, Operation.VIEW_SUBMISSION, submission)


def test_denial_is_logged(other_teacher, course, caplog):
    with caplog.at_level(logging.WARNING, logger="SmartLearnApp.core.access"):
        with pytest.raises(NotOwner):
            ensure_authorized(other_teacher, Operation.CREATE_ASSIGNMENT, course)
    assert "Denied CREATE_ASSIGNMENT" in caplog.text
