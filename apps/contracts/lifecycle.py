"""
Contract work-state machine.

    active -> in_progress -> awaiting_client_confirmation -> completed
    active | in_progress -> cancelled

Each transition is a conditional update on the status that was read, so a
duplicate click or a cancel racing a completion lands at most once.
"""
import logging
from collections import namedtuple

from django.db import transaction
from django.utils import timezone

from core import exceptions as errors
from core.constants import ROLE_CLIENT, ROLE_WORKER, CONTRACT_CANCELLABLE_STATUSES
from core.notifications import notify_on_commit
from core.utils import resolve_role
from apps.realtime import events
from .models import Contract

logger = logging.getLogger(__name__)

Transition = namedtuple('Transition', ['from_statuses', 'to_status', 'roles', 'timestamps'])

TRANSITIONS = {
    'start': Transition(('active',), 'in_progress', (ROLE_WORKER,), ('start_date',)),
    'complete': Transition(('in_progress',), 'awaiting_client_confirmation', (ROLE_WORKER,), ('worker_completed_at',)),
    'confirm': Transition(('awaiting_client_confirmation',), 'completed', (ROLE_CLIENT,), ('client_confirmed_at', 'completed_at')),
    'cancel': Transition(CONTRACT_CANCELLABLE_STATUSES, 'cancelled', (ROLE_CLIENT, ROLE_WORKER), ('cancelled_at',)),
}


def get_contract(contract_id):
    try:
        return Contract.objects.select_related('job', 'worker', 'client').get(pk=contract_id)
    except Contract.DoesNotExist:
        raise errors.ContractNotFound()


def lock_contract(contract_id):
    try:
        return Contract.objects.select_for_update().get(pk=contract_id)
    except Contract.DoesNotExist:
        raise errors.ContractNotFound()


def get_contract_for(contract_id, user):
    contract = get_contract(contract_id)
    resolve_role(user, contract)
    return contract


def can_transition(current_status, action):
    transition = TRANSITIONS.get(action)
    return transition is not None and current_status in transition.from_statuses


def apply_transition(contract_id, actor, action, reason=None):
    transition = TRANSITIONS[action]
    with transaction.atomic():
        contract = lock_contract(contract_id)
        role = resolve_role(actor, contract)
        if role not in transition.roles:
            required = transition.roles[0]
            raise errors.Forbidden(f"{required.capitalize()} access required", code=f'{required.upper()}_ACCESS_REQUIRED')

        current = contract.contract_status
        if current not in transition.from_statuses:
            raise errors.InvalidTransition(f"Cannot {action} a contract that is {current}")

        now = timezone.now()
        fields = {name: now for name in transition.timestamps}
        if action == 'cancel':
            fields.update(cancelled_by=role, cancellation_reason=reason or None)
        updated = Contract.objects.filter(pk=contract.pk, contract_status=current).update(
            contract_status=transition.to_status, updated_at=now, **fields
        )
        if not updated:
            raise errors.InvalidTransition(f"Cannot {action} this contract, its status changed")
        contract.refresh_from_db()

        _after_transition(contract, action, role)
        logger.info(f"Contract {contract.pk} {current} -> {contract.contract_status} by {role} (user {actor.pk})")
        events.contract_changed(contract, events.CONTRACT_UPDATED)
    return contract


def _after_transition(contract, action, role):
    job = contract.job
    worker_user = contract.worker.user
    if action == 'complete':
        notify_on_commit(
            [contract.client],
            f"Work completed for job: {job.title}",
            (
                f"The worker has marked the work for '{job.title}' as completed.\n"
                f"Please review it and confirm the completion.\n\n"
                f"Best regards,\nMarketplace Team"
            ),
            f"Work for '{job.title}' is done. Please confirm completion.",
        )
    elif action == 'confirm':
        job.mark_completed()
        from .feedback import refresh_party_stats
        refresh_party_stats(contract)
        notify_on_commit(
            [contract.client, worker_user],
            f"Contract completed for job: {job.title}",
            (
                f"The contract for '{job.title}' is completed.\n"
                f"You can now leave feedback for the other party.\n\n"
                f"Best regards,\nMarketplace Team"
            ),
            f"Contract for '{job.title}' completed. Leave your feedback.",
        )
    elif action == 'cancel':
        job.reopen()
        other = worker_user if role == ROLE_CLIENT else contract.client
        notify_on_commit(
            [other],
            f"Contract cancelled for job: {job.title}",
            (
                f"The {role} has cancelled the contract for '{job.title}'.\n"
                f"Reason: {contract.cancellation_reason or 'Not provided'}\n\n"
                f"Best regards,\nMarketplace Team"
            ),
            f"Contract for '{job.title}' was cancelled by the {role}.",
        )


def start_work(contract_id, actor):
    return apply_transition(contract_id, actor, 'start')


def complete_work(contract_id, actor):
    return apply_transition(contract_id, actor, 'complete')


def confirm_completion(contract_id, actor):
    return apply_transition(contract_id, actor, 'confirm')


def cancel_contract(contract_id, actor, reason=None):
    if reason is not None and len(reason) > 500:
        raise errors.ValidationError("Reason cannot exceed 500 characters", errors={'reason': ['Too long.']})
    return apply_transition(contract_id, actor, 'cancel', reason=reason)
