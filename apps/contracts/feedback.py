import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Avg, Count, Q
from django.utils import timezone

from core import exceptions as errors
from core.constants import ROLE_CLIENT
from core.notifications import notify_on_commit
from core.utils import resolve_role
from apps.realtime import events
from apps.users.models import Client, Worker
from .lifecycle import lock_contract
from .models import Contract

logger = logging.getLogger(__name__)


def validate_feedback(rating, comment):
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise errors.ValidationError("Rating must be between 1 and 5", errors={'rating': ['Must be an integer from 1 to 5.']})
    comment = (comment or '').strip()
    min_length = settings.FEEDBACK_MIN_COMMENT_LENGTH
    max_length = settings.FEEDBACK_MAX_COMMENT_LENGTH
    if len(comment) < min_length:
        raise errors.ValidationError(
            f"Feedback must be at least {min_length} characters",
            errors={'comment': [f"Ensure this field has at least {min_length} characters."]},
        )
    if len(comment) > max_length:
        raise errors.ValidationError(
            f"Feedback cannot exceed {max_length} characters",
            errors={'comment': [f"Ensure this field has no more than {max_length} characters."]},
        )
    return rating, comment


def refresh_party_stats(contract):
    """Recompute the rating aggregates of both parties of ``contract``."""
    worker_stats = Contract.objects.filter(worker_id=contract.worker_id).aggregate(
        average_rating=Avg('client_rating'),
        completed=Count('id', filter=Q(contract_status='completed')),
    )
    Worker.objects.filter(pk=contract.worker_id).update(
        average_rating=round(worker_stats['average_rating'] or 0.0, 2),
        total_jobs_completed=worker_stats['completed'],
    )

    client_stats = Contract.objects.filter(client_id=contract.client_id).aggregate(
        average_rating=Avg('worker_rating'),
        completed=Count('id', filter=Q(contract_status='completed')),
    )
    Client.objects.filter(user_id=contract.client_id).update(
        average_rating=round(client_stats['average_rating'] or 0.0, 2),
        total_contracts_completed=client_stats['completed'],
    )


def submit_feedback(contract_id, actor, rating, comment):
    """
    Record the acting party's rating and comment on a completed contract.

    Each role writes once. The contract status is never changed; when the
    second feedback lands the job is closed.
    """
    rating, comment = validate_feedback(rating, comment)
    with transaction.atomic():
        contract = lock_contract(contract_id)
        role = resolve_role(actor, contract)
        if contract.contract_status != 'completed':
            raise errors.NotCompleted()
        if contract.has_feedback_from(role):
            raise errors.AlreadySubmitted()

        now = timezone.now()
        updated = Contract.objects.filter(
            pk=contract.pk, contract_status='completed', **{f'{role}_rating__isnull': True}
        ).update(**{
            f'{role}_rating': rating,
            f'{role}_feedback': comment,
            f'{role}_feedback_at': now,
            'updated_at': now,
        })
        contract.refresh_from_db()
        if not updated:
            if contract.has_feedback_from(role):
                raise errors.AlreadySubmitted()
            raise errors.NotCompleted()

        if contract.client_rating is not None and contract.worker_rating is not None:
            Contract.objects.filter(pk=contract.pk, feedback_completed_at__isnull=True).update(feedback_completed_at=now)
            contract.refresh_from_db()
            contract.job.mark_closed()

        refresh_party_stats(contract)

        recipient = contract.worker.user if role == ROLE_CLIENT else contract.client
        notify_on_commit(
            [recipient],
            f"New feedback for job: {contract.job.title}",
            (
                f"The {role} has left feedback for the job '{contract.job.title}'.\n"
                f"Rating: {rating}/5\n"
                f"Review: {comment}\n\n"
                f"Best regards,\nMarketplace Team"
            ),
            f"New feedback for '{contract.job.title}'. Rating: {rating}/5.",
        )
        logger.info(f"{role.capitalize()} rated contract {contract.pk} with {rating}/5")
        events.contract_changed(contract, events.CONTRACT_FEEDBACK)
    return contract
