"""
NegotiationRecord store: creation, discussion, withdrawal and expiry.

Every mutation is a conditional update on the state that was read, so a
concurrent change makes the write miss instead of overwriting it.
Accepting, rejecting and agreeing live in ``agreement``.
"""
import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from core import exceptions as errors
from core.constants import NEGOTIATION_OPEN_STATUSES, ROLE_CLIENT, ROLE_WORKER
from core.notifications import notify_on_commit
from core.utils import resolve_role
from apps.jobs.models import Job
from apps.users.models import Worker
from apps.realtime import events
from .models import NegotiationRecord

logger = logging.getLogger(__name__)


def get_record(record_id):
    try:
        return NegotiationRecord.objects.select_related('job', 'worker', 'client').get(pk=record_id)
    except NegotiationRecord.DoesNotExist:
        raise errors.RecordNotFound()


def lock_record(record_id):
    """Read a record under a row lock. Must be called inside transaction.atomic()."""
    try:
        return NegotiationRecord.objects.select_for_update().get(pk=record_id)
    except NegotiationRecord.DoesNotExist:
        raise errors.RecordNotFound()


def get_record_for(record_id, user):
    """Read a record on behalf of ``user``; non-parties get Forbidden."""
    record = get_record(record_id)
    resolve_role(user, record)
    return record


def records_for_user(user):
    return NegotiationRecord.objects.filter(
        Q(client=user) | Q(worker__user=user)
    ).select_related('job', 'worker')


def validate_terms(message, proposed_rate):
    """Return the cleaned ``(message, rate)`` or raise ValidationError."""
    message = (message or '').strip()
    min_length = settings.NEGOTIATION_MIN_MESSAGE_LENGTH
    max_length = settings.NEGOTIATION_MAX_MESSAGE_LENGTH
    if len(message) < min_length:
        raise errors.ValidationError(
            f"Message must be at least {min_length} characters",
            errors={'message': [f"Ensure this field has at least {min_length} characters."]},
        )
    if len(message) > max_length:
        raise errors.ValidationError(
            f"Message cannot exceed {max_length} characters",
            errors={'message': [f"Ensure this field has no more than {max_length} characters."]},
        )

    try:
        rate = Decimal(str(proposed_rate))
    except (InvalidOperation, TypeError, ValueError):
        raise errors.ValidationError("Proposed rate must be a number", errors={'proposed_rate': ["A valid number is required."]})
    if not rate.is_finite() or rate <= 0:
        raise errors.ValidationError("Proposed rate must be greater than zero", errors={'proposed_rate': ["Must be greater than zero."]})
    if rate > settings.NEGOTIATION_MAX_RATE:
        raise errors.ValidationError(
            f"Proposed rate cannot exceed {settings.NEGOTIATION_MAX_RATE:,}",
            errors={'proposed_rate': [f"Must not exceed {settings.NEGOTIATION_MAX_RATE}."]},
        )
    rate = rate.quantize(Decimal('0.01'))
    # Sub-cent rates round to zero.
    if rate <= 0:
        raise errors.ValidationError("Proposed rate must be at least 0.01", errors={'proposed_rate': ["Must be at least 0.01."]})
    return message, rate


def create_record(initiator_role, actor, job_id, message, proposed_rate, worker_id=None):
    """
    Open an application (``initiator_role='worker'``) or an invitation
    (``initiator_role='client'``) on ``job_id``.

    The client of the record is always the job owner. For applications the
    worker is the acting user; for invitations it is ``worker_id``.
    """
    message, rate = validate_terms(message, proposed_rate)

    try:
        job = Job.objects.select_related('client').get(pk=job_id)
    except Job.DoesNotExist:
        raise errors.NotFound("Job not found", code='JOB_NOT_FOUND')

    if initiator_role == ROLE_WORKER:
        if not getattr(actor, 'is_worker', False):
            raise errors.Forbidden("Worker access required", code='WORKER_ACCESS_REQUIRED')
        worker = actor.worker
        kind = 'application'
    elif initiator_role == ROLE_CLIENT:
        if job.client_id != actor.pk:
            raise errors.Forbidden("Only the job owner can invite workers", code='NOT_JOB_OWNER')
        try:
            worker = Worker.objects.select_related('user').get(pk=worker_id)
        except Worker.DoesNotExist:
            raise errors.NotFound("Worker not found", code='WORKER_NOT_FOUND')
        kind = 'invitation'
    else:
        raise errors.ValidationError(f"Unknown initiator role: {initiator_role}")

    if worker.user_id == job.client_id:
        raise errors.ValidationError(
            "You cannot negotiate on your own job", code='SELF_NEGOTIATION_NOT_ALLOWED'
        )
    if not job.is_open:
        raise errors.ValidationError("This job is no longer open", code='JOB_NOT_OPEN')

    with transaction.atomic():
        duplicate = NegotiationRecord.objects.filter(
            job=job, worker=worker, contract__isnull=True, status__in=NEGOTIATION_OPEN_STATUSES,
        ).exists()
        if duplicate:
            raise errors.ValidationError(
                "An open negotiation already exists for this job and worker", code='DUPLICATE_NEGOTIATION'
            )

        expires_at = None
        if kind == 'invitation':
            expires_at = timezone.now() + timedelta(days=settings.INVITATION_TTL_DAYS)

        record = NegotiationRecord.objects.create(
            kind=kind,
            job=job,
            client_id=job.client_id,
            worker=worker,
            message=message,
            proposed_rate=rate,
            expires_at=expires_at,
        )
        logger.info(f"{kind.capitalize()} {record.pk} created on job {job.pk} by user {actor.pk}")

        events.negotiation_changed(record, events.NEGOTIATION_CREATED)
        recipient = job.client if kind == 'application' else worker.user
        notify_on_commit(
            [recipient],
            f"New {kind} for job: {job.title}",
            (
                f"Dear {recipient.first_name or recipient.username},\n\n"
                f"You have a new {kind} for the job '{job.title}' with a proposed rate of {rate}.\n"
                f"Please log in to review and respond.\n\n"
                f"Best regards,\nMarketplace Team"
            ),
            f"New {kind} for '{job.title}' ({rate}). Log in to respond.",
        )
    return record


def _is_expired(record, now):
    return record.expires_at is not None and record.expires_at <= now


def start_discussion(record_id, actor):
    """pending -> in_discussion. A record already in discussion is returned unchanged."""
    with transaction.atomic():
        record = lock_record(record_id)
        resolve_role(actor, record)
        if record.status == 'in_discussion':
            return record
        if record.status != 'pending' or record.contract_id is not None:
            raise errors.InvalidTransition(f"Cannot start a discussion on a {record.status} negotiation")

        now = timezone.now()
        if _is_expired(record, now):
            raise errors.InvalidTransition("This invitation has expired", code='INVITATION_EXPIRED')

        updated = NegotiationRecord.objects.filter(
            pk=record.pk, status='pending', contract__isnull=True,
        ).update(status='in_discussion', discussion_started_at=now, responded_at=now, updated_at=now)
        record.refresh_from_db()
        if not updated:
            if record.status == 'in_discussion':
                return record
            raise errors.InvalidTransition(f"Cannot start a discussion on a {record.status} negotiation")

        logger.info(f"Negotiation {record.pk} moved to discussion by user {actor.pk}")
        events.negotiation_changed(record, events.NEGOTIATION_UPDATED)
    return record


def cancel_record(record_id, actor):
    """The initiating party withdraws a negotiation that has no contract yet."""
    with transaction.atomic():
        record = lock_record(record_id)
        role = resolve_role(actor, record)
        if role != record.initiator_role:
            raise errors.Forbidden(f"Only the {record.initiator_role} can withdraw this {record.kind}")
        if not record.is_open:
            raise errors.InvalidTransition(f"Cannot withdraw a {record.status} negotiation")

        now = timezone.now()
        updated = NegotiationRecord.objects.filter(
            pk=record.pk, contract__isnull=True, status__in=NEGOTIATION_OPEN_STATUSES,
        ).update(status='cancelled', updated_at=now)
        if not updated:
            raise errors.InvalidTransition("The negotiation changed, please refresh")
        record.refresh_from_db()

        logger.info(f"Negotiation {record.pk} withdrawn by {role} (user {actor.pk})")
        events.negotiation_changed(record, events.NEGOTIATION_UPDATED)
    return record


def expire_invitations(now=None):
    """Cancel pending invitations whose ``expires_at`` has passed. Returns the count."""
    now = now or timezone.now()
    with transaction.atomic():
        stale = list(
            NegotiationRecord.objects.filter(
                kind='invitation', status='pending', contract__isnull=True, expires_at__lte=now,
            ).select_related('worker')
        )
        if not stale:
            return 0
        count = NegotiationRecord.objects.filter(
            pk__in=[record.pk for record in stale], status='pending', contract__isnull=True,
        ).update(status='cancelled', updated_at=now)
        for record in stale:
            events.negotiation_changed(record, events.NEGOTIATION_UPDATED)
    logger.info(f"Expired {count} pending invitations")
    return count


def supersede_open_records(record, now):
    """Cancel the other open negotiations of the job that ``record`` won."""
    others = list(
        NegotiationRecord.objects.filter(
            job_id=record.job_id, contract__isnull=True, status__in=NEGOTIATION_OPEN_STATUSES,
        ).exclude(pk=record.pk).select_related('worker')
    )
    if not others:
        return 0
    count = NegotiationRecord.objects.filter(
        pk__in=[other.pk for other in others], contract__isnull=True, status__in=NEGOTIATION_OPEN_STATUSES,
    ).update(status='cancelled', updated_at=now)
    for other in others:
        events.negotiation_changed(other, events.NEGOTIATION_UPDATED)
    logger.info(f"Cancelled {count} competing negotiations on job {record.job_id}")
    return count
