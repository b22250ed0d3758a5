from decimal import Decimal
from uuid import uuid4

import pytest

from bayanihan.core.exceptions import (
    ApplicationNotFoundException,
    ForbiddenException,
    StateConflictException,
    ValidationException,
)
from bayanihan.models.base import utcnow
from bayanihan.models.enums import ApplicationStatus, JobStatus, NotificationKind, UserRole
from bayanihan.models.job import Application
from bayanihan.services import lifecycle
from bayanihan.services.lifecycle import (
    Actor,
    CreditGoal,
    Notify,
    NotifyMatchingWorkers,
    SendSms,
    accept_one_reject_rest,
)


def statuses(job):
    return {a.user_id: a.status for a in job.applications}


class TestAcceptOneRejectRest:
    def test_winner_accepted_everyone_else_rejected(self):
        ids = [uuid4() for _ in range(4)]
        apps = [Application(i, ApplicationStatus.PENDING, utcnow()) for i in ids]

        result = accept_one_reject_rest(apps, ids[2])

        assert [a.user_id for a in result] == ids
        assert [a.status for a in result].count(ApplicationStatus.ACCEPTED) == 1
        assert result[2].status == ApplicationStatus.ACCEPTED
        assert all(a.status == ApplicationStatus.REJECTED for i, a in enumerate(result) if i != 2)

    def test_unknown_winner(self):
        apps = [Application(uuid4(), ApplicationStatus.PENDING, utcnow())]
        with pytest.raises(ApplicationNotFoundException):
            accept_one_reject_rest(apps, uuid4())


class TestPostJob:
    def test_creates_open_job_and_asks_for_matching(self, employer):
        job, effects = lifecycle.post_job(
            employer,
            title="  Paint the gate ",
            price=Decimal("750"),
            barangay="Poblacion",
            skills_required=["Painting", "painting ", ""],
        )

        assert job.title == "Paint the gate"
        assert job.is_open and job.status == JobStatus.OPEN.value
        assert job.applicants == [] and job.assigned_to is None and not job.completed
        assert job.skills_required == ["Painting"]
        assert effects == [NotifyMatchingWorkers(job_id=job.id)]

    def test_workers_cannot_post(self, worker):
        with pytest.raises(ForbiddenException):
            lifecycle.post_job(worker, title="x", price=Decimal("1"), barangay="y")

    @pytest.mark.parametrize("price", [Decimal("0"), Decimal("-5")])
    def test_price_must_be_positive(self, employer, price):
        with pytest.raises(ValidationException):
            lifecycle.post_job(employer, title="Job", price=price, barangay="Poblacion")


class TestApply:
    def test_apply_adds_pending_application(self, make_job, employer, worker):
        job = make_job()
        effects = lifecycle.apply(job, worker)

        assert statuses(job) == {worker.id: ApplicationStatus.PENDING}
        kinds = [e.kind for e in effects]
        assert kinds == [NotificationKind.JOB_APPLIED, NotificationKind.APPLICATION_SENT]
        assert effects[0].recipient_id == employer.id

    def test_apply_twice(self, make_job, worker):
        job = make_job()
        lifecycle.apply(job, worker)
        with pytest.raises(StateConflictException, match="Already applied"):
            lifecycle.apply(job, worker)
        assert len(job.applications) == 1

    def test_own_job(self, make_job, employer):
        job = make_job()
        both = Actor(id=employer.id, role=UserRole.BOTH)
        with pytest.raises(StateConflictException, match="own job"):
            lifecycle.apply(job, both)

    def test_employer_role_cannot_apply(self, make_job):
        with pytest.raises(ForbiddenException, match="Employers cannot apply"):
            lifecycle.apply(make_job(), Actor(id=uuid4(), role=UserRole.EMPLOYER))

    def test_closed_job(self, make_job, employer, worker):
        job = make_job()
        lifecycle.close_job(job, employer)
        with pytest.raises(StateConflictException, match="Job is closed"):
            lifecycle.apply(job, worker)

    def test_no_reapply_after_rejection(self, make_job, employer, worker):
        job = make_job()
        lifecycle.apply(job, worker)
        lifecycle.reject_application(job, employer, worker.id)
        with pytest.raises(StateConflictException, match="rejected"):
            lifecycle.apply(job, worker)


class TestCancel:
    def test_cancel_removes_entry_and_allows_reapply(self, make_job, worker):
        job = make_job()
        lifecycle.apply(job, worker)
        effects = lifecycle.cancel_application(job, worker)

        assert job.applications == []
        assert {e.kind for e in effects} == {NotificationKind.APPLICATION_CANCELLED}
        lifecycle.apply(job, worker)
        assert statuses(job) == {worker.id: ApplicationStatus.PENDING}

    def test_cannot_cancel_accepted(self, make_job, employer, worker):
        job = make_job()
        lifecycle.apply(job, worker)
        lifecycle.assign_worker(job, employer, worker.id)
        with pytest.raises(StateConflictException, match="accepted"):
            lifecycle.cancel_application(job, worker)

    def test_cannot_cancel_rejected(self, make_job, employer, worker):
        job = make_job()
        lifecycle.apply(job, worker)
        lifecycle.reject_application(job, employer, worker.id)
        with pytest.raises(StateConflictException):
            lifecycle.cancel_application(job, worker)

    def test_nothing_to_cancel(self, make_job, worker):
        with pytest.raises(ApplicationNotFoundException):
            lifecycle.cancel_application(make_job(), worker)


class TestAssign:
    def test_assign_accepts_one_rejects_rest(self, make_job, employer, worker, other_worker):
        job = make_job(price=Decimal("1000"))
        lifecycle.apply(job, worker)
        lifecycle.apply(job, other_worker)

        effects = lifecycle.assign_worker(job, employer, worker.id)

        assert statuses(job) == {
            worker.id: ApplicationStatus.ACCEPTED,
            other_worker.id: ApplicationStatus.REJECTED,
        }
        assert job.assigned_to == worker.id
        assert job.is_open is False
        assert job.status == JobStatus.ASSIGNED.value
        assert any(isinstance(e, SendSms) and e.recipient_id == worker.id for e in effects)

        with pytest.raises(StateConflictException):
            lifecycle.apply(job, other_worker)

    def test_second_assignment_is_refused(self, make_job, employer, worker, other_worker):
        job = make_job()
        lifecycle.apply(job, worker)
        lifecycle.apply(job, other_worker)
        lifecycle.assign_worker(job, employer, worker.id)

        with pytest.raises(StateConflictException, match="already assigned"):
            lifecycle.assign_worker(job, employer, other_worker.id)
        assert [a.status for a in job.applications].count(ApplicationStatus.ACCEPTED) == 1

    def test_only_poster_or_admin(self, make_job, worker, other_worker, admin):
        job = make_job()
        lifecycle.apply(job, worker)
        with pytest.raises(ForbiddenException):
            lifecycle.assign_worker(job, other_worker, worker.id)
        lifecycle.assign_worker(job, admin, worker.id)
        assert job.assigned_to == worker.id

    def test_unknown_applicant(self, make_job, employer):
        with pytest.raises(ApplicationNotFoundException):
            lifecycle.assign_worker(make_job(), employer, uuid4())

    def test_status_update_routes_to_assign_and_reject(self, make_job, employer, worker, other_worker):
        job = make_job()
        lifecycle.apply(job, worker)
        lifecycle.apply(job, other_worker)

        lifecycle.update_applicant_status(job, employer, other_worker.id, ApplicationStatus.REJECTED)
        lifecycle.update_applicant_status(job, employer, worker.id, ApplicationStatus.ACCEPTED)

        assert statuses(job)[worker.id] == ApplicationStatus.ACCEPTED
        assert job.assigned_to == worker.id
        with pytest.raises(ValidationException):
            lifecycle.update_applicant_status(job, employer, worker.id, ApplicationStatus.PENDING)


class TestInvitations:
    def test_invite_notifies_and_texts(self, make_job, employer, worker):
        job = make_job()
        effects = lifecycle.invite(
            job, employer, invitee_id=worker.id, invitee_role=worker.role, already_invited=False
        )
        assert isinstance(effects[0], Notify) and effects[0].kind == NotificationKind.JOB_INVITATION
        assert isinstance(effects[1], SendSms)
        assert job.applications == []

    def test_invite_guards(self, make_job, employer, worker):
        job = make_job()
        with pytest.raises(ValidationException, match="Invalid worker type"):
            lifecycle.invite(job, employer, invitee_id=uuid4(), invitee_role=UserRole.EMPLOYER, already_invited=False)
        with pytest.raises(StateConflictException, match="Already invited"):
            lifecycle.invite(job, employer, invitee_id=worker.id, invitee_role=worker.role, already_invited=True)
        with pytest.raises(ForbiddenException):
            lifecycle.invite(job, worker, invitee_id=uuid4(), invitee_role=UserRole.EMPLOYEE, already_invited=False)

    def test_accepting_creates_pending_application(self, make_job, worker):
        job = make_job()
        lifecycle.accept_invitation(job, worker)
        assert statuses(job) == {worker.id: ApplicationStatus.PENDING}
        with pytest.raises(StateConflictException):
            lifecycle.accept_invitation(job, worker)


class TestComplete:
    def test_completion_flow(self, make_job, employer, worker):
        job = make_job(price=Decimal("1000"))

        with pytest.raises(StateConflictException, match="No worker assigned"):
            lifecycle.complete_job(job, employer, proof="s3://bucket/proof.jpg")

        lifecycle.apply(job, worker)
        lifecycle.assign_worker(job, employer, worker.id)

        with pytest.raises(StateConflictException, match="Payment proof required"):
            lifecycle.complete_job(job, employer, proof="  ")

        effects = lifecycle.complete_job(job, employer, proof="s3://bucket/proof.jpg")
        assert job.completed is True
        assert job.is_open is False
        assert job.status == JobStatus.COMPLETED.value
        assert job.payment_proof == "s3://bucket/proof.jpg"
        credits = [e for e in effects if isinstance(e, CreditGoal)]
        assert credits == [CreditGoal(worker_id=worker.id, amount=Decimal("1000"), job_id=job.id, job_title=job.title)]

        with pytest.raises(StateConflictException, match="already completed"):
            lifecycle.complete_job(job, employer, proof="s3://bucket/again.jpg")

    def test_finalize_is_noop_when_completed(self, make_job, employer, worker):
        job = make_job()
        lifecycle.apply(job, worker)
        lifecycle.assign_worker(job, employer, worker.id)

        first = lifecycle.finalize_completion(job, proof="payment://1", credit_amount=Decimal("900"))
        second = lifecycle.finalize_completion(job, proof="payment://1", credit_amount=Decimal("900"))

        assert any(isinstance(e, CreditGoal) and e.amount == Decimal("900") for e in first)
        assert second == []

    def test_closed_or_completed_job_is_not_editable(self, make_job, employer, worker):
        job = make_job()
        lifecycle.apply(job, worker)
        lifecycle.assign_worker(job, employer, worker.id)
        lifecycle.complete_job(job, employer, proof="s3://b/p.png")
        with pytest.raises(StateConflictException):
            lifecycle.close_job(job, employer)
        with pytest.raises(StateConflictException):
            lifecycle.edit_job(job, employer, {"title": "New"})


class TestEditAndDelete:
    def test_edit_descriptive_fields_only(self, make_job, employer):
        job = make_job()
        lifecycle.edit_job(job, employer, {"title": " Bigger sink ", "skills_required": ["Plumbing", "plumbing"]})
        assert job.title == "Bigger sink"
        assert job.skills_required == ["Plumbing"]

        with pytest.raises(ValidationException):
            lifecycle.edit_job(job, employer, {"assigned_to": uuid4()})
        with pytest.raises(ValidationException):
            lifecycle.edit_job(job, employer, {"title": ""})

    def test_delete_is_idempotent(self, make_job, employer):
        job = make_job()
        assert lifecycle.delete_job(job, employer) != []
        assert job.is_deleted is True and job.deleted_at is not None
        assert lifecycle.delete_job(job, employer) == []
        assert lifecycle.delete_job(None, employer) == []

    def test_delete_needs_owner(self, make_job, worker):
        with pytest.raises(ForbiddenException):
            lifecycle.delete_job(make_job(), worker)
