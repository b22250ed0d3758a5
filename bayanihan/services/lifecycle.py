"""
Job lifecycle controller - the job state machine.

    open --apply/invite--> open (applicants accumulate)
    open --assign--------> assigned --complete--> completed
    open|assigned --close--> closed
    any --delete--> tombstoned (soft delete)

Every transition here is pure: it checks the guards, mutates the Job
instance in memory and returns the side effects to run *after* the
caller has committed. Nothing in this module touches the database or
the network, so the rules are testable with plain Job objects.

Guard failures raise the API exception that describes them (403 for the
wrong actor, 404 for a missing application, 400 with a reason for a
state conflict).
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union
from uuid import UUID

from bayanihan.core.exceptions import (
    ApplicationNotFoundException,
    ForbiddenException,
    StateConflictException,
    ValidationException,
)
from bayanihan.models.base import utcnow
from bayanihan.models.enums import ApplicationStatus, JobStatus, NotificationKind, UserRole
from bayanihan.models.job import Application, Job
from bayanihan.services.matching import normalize_skill

EDITABLE_FIELDS = frozenset({"title", "description", "skills_required", "barangay", "location", "price"})


@dataclass(frozen=True)
class Actor:
    """The caller as supplied by the identity gate."""

    id: UUID
    role: UserRole
    verified: bool = False
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        return self.name or "A user"


# ── Effects ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Notify:
    recipient_id: UUID
    kind: NotificationKind
    message: str
    job_id: Optional[UUID] = None


@dataclass(frozen=True)
class SendSms:
    """Delivered only if the recipient opted in and has a mobile number."""

    recipient_id: UUID
    message: str


@dataclass(frozen=True)
class CreditGoal:
    worker_id: UUID
    amount: Decimal
    job_id: UUID
    job_title: str


@dataclass(frozen=True)
class NotifyMatchingWorkers:
    job_id: UUID


Effect = Union[Notify, SendSms, CreditGoal, NotifyMatchingWorkers]


# ── Sub-ledger helpers ────────────────────────────────────────────────────────


def accept_one_reject_rest(applications: Sequence[Application], winner_id: UUID) -> List[Application]:
    """
    Return a new applicant list where `winner_id` is accepted and every
    other applicant is rejected. Order is preserved.

    Raises:
        ApplicationNotFoundException: winner has no application.
    """
    if not any(a.user_id == winner_id for a in applications):
        raise ApplicationNotFoundException()
    return [
        a.with_status(ApplicationStatus.ACCEPTED if a.user_id == winner_id else ApplicationStatus.REJECTED)
        for a in applications
    ]


def _replace_status(applications: Sequence[Application], user_id: UUID, status: ApplicationStatus) -> List[Application]:
    return [a.with_status(status) if a.user_id == user_id else a for a in applications]


def clean_skills(skills: Optional[Iterable[str]]) -> List[str]:
    """Strip blanks and drop case-insensitive duplicates, keeping first spelling."""
    cleaned, seen = [], set()
    for skill in skills or []:
        if not skill or not skill.strip():
            continue
        key = normalize_skill(skill)
        if key not in seen:
            seen.add(key)
            cleaned.append(" ".join(skill.split()))
    return cleaned


# ── Guards ────────────────────────────────────────────────────────────────────


def _is_poster(job: Job, actor: Actor) -> bool:
    return job.posted_by == actor.id


def _require_poster(job: Job, actor: Actor, alert: str) -> None:
    if not _is_poster(job, actor):
        raise ForbiddenException("Not authorized", alert=alert)


def _require_poster_or_admin(job: Job, actor: Actor, alert: str) -> None:
    if not (_is_poster(job, actor) or actor.is_admin):
        raise ForbiddenException("Not authorized", alert=alert)


def _require_not_completed(job: Job) -> None:
    if job.completed:
        raise StateConflictException(
            "Job already completed",
            code="JOB_COMPLETED",
            alert="This job has already been marked as completed",
        )


def _require_open(job: Job) -> None:
    if not job.is_open:
        raise StateConflictException(
            "Job is closed",
            code="JOB_CLOSED",
            alert="This job is no longer accepting applications",
        )


def _require_worker_role(role: UserRole) -> None:
    if role == UserRole.EMPLOYER:
        raise ForbiddenException(
            "Employers cannot apply to jobs",
            alert="Switch to a worker account to apply for jobs",
        )
    if not role.can_work:
        raise ForbiddenException(
            "Employee profile required",
            alert="Only workers can apply for jobs",
        )


def _require_pending(application: Application) -> None:
    if application.status != ApplicationStatus.PENDING:
        raise StateConflictException(
            f"Application is already {application.status.value}",
            code="APPLICATION_NOT_PENDING",
        )


def _validate_descriptive_fields(fields: Dict[str, Any]) -> None:
    missing = [
        name
        for name in ("title", "barangay")
        if name in fields and not (fields[name] or "").strip()
    ]
    if "price" in fields and (fields["price"] is None or Decimal(fields["price"]) <= 0):
        missing.append("price")
    if missing:
        raise ValidationException(
            "Missing required fields",
            details={"required": ["title", "price", "barangay"], "invalid": missing},
        )


# ── Transitions ───────────────────────────────────────────────────────────────


def post_job(
    actor: Actor,
    *,
    title: str,
    price: Decimal,
    barangay: str,
    description: Optional[str] = None,
    skills_required: Optional[Iterable[str]] = None,
    location: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[Job, List[Effect]]:
    """Create an open job with an empty applicant list."""
    if not actor.role.can_post:
        raise ForbiddenException(
            "Only employers can post jobs",
            alert="Switch to an employer account to post jobs",
        )
    _validate_descriptive_fields({"title": title or "", "price": price, "barangay": barangay or ""})

    job = Job(
        title=title.strip(),
        description=description,
        skills_required=clean_skills(skills_required),
        barangay=barangay.strip(),
        location=location,
        price=Decimal(price),
        posted_by=actor.id,
        date_posted=now or utcnow(),
    )
    return job, [NotifyMatchingWorkers(job_id=job.id)]


def apply(job: Job, actor: Actor, *, now: Optional[datetime] = None) -> List[Effect]:
    """Append a pending application for the actor."""
    _require_worker_role(actor.role)
    if _is_poster(job, actor):
        raise StateConflictException(
            "Cannot apply to own job",
            code="OWN_JOB",
            alert="You cannot apply to a job you posted",
        )
    _require_open(job)

    existing = job.find_application(actor.id)
    if existing is not None:
        if existing.status == ApplicationStatus.REJECTED:
            raise StateConflictException(
                "Application was rejected",
                code="APPLICATION_REJECTED",
                alert="Your application to this job was rejected; you cannot reapply",
            )
        raise StateConflictException(
            "Already applied",
            code="ALREADY_APPLIED",
            alert="You have already applied to this job",
        )

    job.set_applications([
        *job.applications,
        Application(user_id=actor.id, status=ApplicationStatus.PENDING, applied_at=now or utcnow()),
    ])
    return [
        Notify(
            job.posted_by,
            NotificationKind.JOB_APPLIED,
            f'{actor.display_name} applied to your job "{job.title}"',
            job.id,
        ),
        Notify(actor.id, NotificationKind.APPLICATION_SENT, f'You applied to "{job.title}"', job.id),
    ]


def cancel_application(job: Job, actor: Actor) -> List[Effect]:
    """Remove the actor's pending application entirely (no rejected trail)."""
    application = job.find_application(actor.id)
    if application is None:
        raise ApplicationNotFoundException()
    if application.status == ApplicationStatus.ACCEPTED:
        raise StateConflictException(
            "Cannot cancel accepted application",
            code="APPLICATION_ACCEPTED",
            alert="You have already been assigned to this job",
        )
    _require_pending(application)

    job.set_applications([a for a in job.applications if a.user_id != actor.id])
    return [
        Notify(
            job.posted_by,
            NotificationKind.APPLICATION_CANCELLED,
            f'{actor.display_name} cancelled their application for "{job.title}"',
            job.id,
        ),
        Notify(
            actor.id,
            NotificationKind.APPLICATION_CANCELLED,
            f'You cancelled your application for "{job.title}"',
            job.id,
        ),
    ]


def invite(
    job: Job,
    actor: Actor,
    *,
    invitee_id: UUID,
    invitee_role: UserRole,
    already_invited: bool,
) -> List[Effect]:
    """Invite a worker to apply. The invitation itself is the notification."""
    _require_poster(job, actor, alert="You can only invite workers to your own jobs")
    _require_open(job)
    if not invitee_role.can_work or invitee_id == job.posted_by:
        raise ValidationException("Invalid worker type")
    if already_invited:
        raise StateConflictException(
            "Already invited",
            code="ALREADY_INVITED",
            alert="This worker has already been invited to this job",
        )
    if job.find_application(invitee_id) is not None:
        raise StateConflictException(
            "Already applied",
            code="ALREADY_APPLIED",
            alert="This worker has already applied to this job",
        )

    return [
        Notify(
            invitee_id,
            NotificationKind.JOB_INVITATION,
            f'You\'ve been invited to apply for "{job.title}" by {actor.display_name}',
            job.id,
        ),
        SendSms(
            invitee_id,
            f'You have been invited to apply for "{job.title}" in {job.barangay}. '
            f"Pay: PHP {job.price}. Log in to Bayanihan to respond.",
        ),
    ]


def accept_invitation(job: Job, actor: Actor, *, now: Optional[datetime] = None) -> List[Effect]:
    """Invitee turns the invitation into a pending application."""
    _require_worker_role(actor.role)
    _require_open(job)
    if job.find_application(actor.id) is not None:
        raise StateConflictException(
            "Already applied",
            code="ALREADY_APPLIED",
            alert="You have already applied to this job",
        )

    job.set_applications([
        *job.applications,
        Application(user_id=actor.id, status=ApplicationStatus.PENDING, applied_at=now or utcnow()),
    ])
    return [
        Notify(
            job.posted_by,
            NotificationKind.JOB_APPLIED,
            f'{actor.display_name} accepted your job invitation and applied for "{job.title}"',
            job.id,
        ),
    ]


def assign_worker(job: Job, actor: Actor, worker_id: UUID) -> List[Effect]:
    """
    Accept one pending applicant and reject all others. Only a job that
    is still open and unassigned can be assigned; the caller holds the
    job row lock, so a concurrent second assignment sees assigned_to set.
    """
    _require_poster_or_admin(job, actor, alert="You can only assign workers to your own jobs")
    _require_not_completed(job)
    if job.assigned_to is not None:
        raise StateConflictException(
            "Worker already assigned",
            code="ALREADY_ASSIGNED",
            alert="This job already has an assigned worker",
        )
    _require_open(job)

    application = job.find_application(worker_id)
    if application is None:
        raise ApplicationNotFoundException()
    _require_pending(application)

    job.set_applications(accept_one_reject_rest(job.applications, worker_id))
    job.assigned_to = worker_id
    job.is_open = False
    job.status = JobStatus.ASSIGNED.value
    return [
        Notify(worker_id, NotificationKind.JOB_ACCEPTED, f'You\'ve been assigned to "{job.title}"', job.id),
        SendSms(
            worker_id,
            f'You have been assigned to a new job: "{job.title}". Log in to Bayanihan for details.',
        ),
    ]


def reject_application(job: Job, actor: Actor, worker_id: UUID) -> List[Effect]:
    _require_poster_or_admin(job, actor, alert="You can only manage applications for your own jobs")
    _require_not_completed(job)

    application = job.find_application(worker_id)
    if application is None:
        raise ApplicationNotFoundException()
    _require_pending(application)

    job.set_applications(_replace_status(job.applications, worker_id, ApplicationStatus.REJECTED))
    return [
        Notify(
            worker_id,
            NotificationKind.APPLICATION_REJECTED,
            f'Your application for "{job.title}" was not selected',
            job.id,
        ),
    ]


def update_applicant_status(
    job: Job,
    actor: Actor,
    worker_id: UUID,
    status: ApplicationStatus,
) -> List[Effect]:
    """Generic disposition endpoint: accepted means assign, rejected means reject."""
    if status == ApplicationStatus.ACCEPTED:
        return assign_worker(job, actor, worker_id)
    if status == ApplicationStatus.REJECTED:
        return reject_application(job, actor, worker_id)
    raise ValidationException(
        "Invalid status",
        details={"allowed": [ApplicationStatus.ACCEPTED.value, ApplicationStatus.REJECTED.value]},
    )


def close_job(job: Job, actor: Actor) -> List[Effect]:
    """Poster stops the job early. Closing a closed job changes nothing."""
    _require_poster(job, actor, alert="You can only close your own jobs")
    _require_not_completed(job)
    job.is_open = False
    job.status = JobStatus.CLOSED.value
    return []


def check_completable(job: Job, actor: Actor) -> None:
    """Every completion guard except the proof itself (checked before storing an upload)."""
    _require_poster_or_admin(job, actor, alert="You can only mark your own jobs as completed")
    if job.assigned_to is None:
        raise StateConflictException(
            "No worker assigned",
            code="NO_WORKER_ASSIGNED",
            alert="You must assign a worker to the job before marking it as completed",
        )
    _require_not_completed(job)


def complete_job(
    job: Job,
    actor: Actor,
    *,
    proof: Optional[str],
    now: Optional[datetime] = None,
) -> List[Effect]:
    """Manual settlement: the poster supplies proof and the worker is credited job.price."""
    check_completable(job, actor)
    if not proof or not proof.strip():
        raise StateConflictException(
            "Payment proof required",
            code="PROOF_REQUIRED",
            alert="Please upload an image or receipt showing proof of payment to the worker",
        )
    return finalize_completion(job, proof=proof, credit_amount=job.price, now=now)


def finalize_completion(
    job: Job,
    *,
    proof: str,
    credit_amount: Decimal,
    now: Optional[datetime] = None,
) -> List[Effect]:
    """
    The completion effect shared by the manual and gateway paths.
    Returns no effects when the job is already completed, so replayed
    gateway callbacks are harmless.
    """
    if job.completed:
        return []
    if job.assigned_to is None:
        raise StateConflictException("No worker assigned", code="NO_WORKER_ASSIGNED")

    job.completed = True
    job.completed_at = now or utcnow()
    job.status = JobStatus.COMPLETED.value
    job.is_open = False
    job.payment_proof = proof

    return [
        Notify(
            job.assigned_to,
            NotificationKind.JOB_COMPLETED,
            f'Job "{job.title}" has been marked as completed. Payment: PHP {credit_amount}',
            job.id,
        ),
        Notify(
            job.posted_by,
            NotificationKind.JOB_COMPLETED,
            f'You have successfully completed the job "{job.title}"',
            job.id,
        ),
        CreditGoal(worker_id=job.assigned_to, amount=Decimal(credit_amount), job_id=job.id, job_title=job.title),
    ]


def edit_job(job: Job, actor: Actor, changes: Dict[str, Any]) -> List[Effect]:
    """Update descriptive fields; lifecycle fields are never editable."""
    _require_poster_or_admin(job, actor, alert="You can only edit your own jobs")
    if job.completed:
        raise StateConflictException(
            "Cannot edit a completed job",
            code="JOB_COMPLETED",
            alert="Completed jobs can no longer be edited",
        )

    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationException("Field cannot be edited", details={"fields": sorted(unknown)})
    _validate_descriptive_fields(changes)

    for name, value in changes.items():
        if name == "skills_required":
            value = clean_skills(value)
        elif name in ("title", "barangay"):
            value = value.strip()
        elif name == "price":
            value = Decimal(value)
        setattr(job, name, value)
    return []


def delete_job(job: Optional[Job], actor: Actor, *, now: Optional[datetime] = None) -> List[Effect]:
    """
    Soft delete. A missing or already-deleted job is a successful no-op
    so that clients can retry freely.
    """
    if job is None or job.is_deleted:
        return []
    _require_poster_or_admin(job, actor, alert="You can only delete your own jobs")

    job.is_deleted = True
    job.deleted_at = now or utcnow()
    return [
        Notify(job.posted_by, NotificationKind.JOB_UPDATE, f'Your job "{job.title}" was deleted', job.id),
    ]
