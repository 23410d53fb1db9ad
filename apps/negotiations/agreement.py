"""
Agreement coordinator: mutual consent before a contract exists.

Each party owns one flag. When the second flag goes up, the same
transaction creates the Contract and claims it on the record with a
conditional update (``contract IS NULL`` plus the state that was read).
Only one claim can match, so concurrent "I agree" requests produce one
contract; the loser re-reads the record and returns the winner's outcome.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction
from django.utils import timezone

from core import exceptions as errors
from core.constants import AGREEMENT_OPEN_STATUSES
from core.notifications import notify_on_commit
from core.utils import resolve_role
from apps.contracts.models import Contract
from apps.realtime import events
from .models import NegotiationRecord, agreement_status
from .store import get_record, lock_record, supersede_open_records

logger = logging.getLogger(__name__)

# Re-evaluations allowed when the record changes between read and write.
MAX_AGREEMENT_ATTEMPTS = 3


@dataclass
class AgreementResult:
    record: NegotiationRecord
    contract: Optional[Contract] = None
    contract_created: bool = False


class StaleRecord(Exception):
    """The conditional write missed: the record changed after it was read."""


def claim_contract(record, expected, final_status, **extra_fields):
    """
    Create the Contract for ``record`` and attach it in one atomic unit.

    ``expected`` holds the field values the caller read; the claim only
    lands if the row still has them and no contract yet. Returns the new
    Contract, raises AlreadyContracted if another request claimed first,
    or StaleRecord if the row changed in some other way.
    """
    now = timezone.now()
    try:
        with transaction.atomic():
            contract = Contract.objects.build_from_negotiation(record)
            contract.save()
            claimed = NegotiationRecord.objects.filter(
                pk=record.pk, contract__isnull=True, **expected,
            ).update(
                contract=contract,
                status=final_status,
                client_agreed=True,
                worker_agreed=True,
                agreement_completed_at=now,
                updated_at=now,
                **extra_fields,
            )
            if not claimed:
                raise StaleRecord()
    except StaleRecord:
        # The savepoint rolled the contract insert back.
        if NegotiationRecord.objects.filter(pk=record.pk, contract__isnull=False).exists():
            raise errors.AlreadyContracted()
        raise

    record.job.assign(record.worker)
    supersede_open_records(record, now)

    worker_user = record.worker.user
    notify_on_commit(
        [record.client, worker_user],
        f"Contract created for job: {record.job.title}",
        (
            f"A contract has been created for the job '{record.job.title}'.\n"
            f"Agreed rate: {contract.agreed_rate}\n\n"
            f"The worker can start the work from the contracts page.\n\n"
            f"Best regards,\nMarketplace Team"
        ),
        f"Contract created for '{record.job.title}' at {contract.agreed_rate}.",
    )
    logger.info(
        f"Contract {contract.pk} created from {record.kind} {record.pk} "
        f"(job {record.job_id}, rate {contract.agreed_rate})"
    )
    return contract


def _retry_on_stale(operation, record_id, *args):
    for attempt in range(1, MAX_AGREEMENT_ATTEMPTS + 1):
        try:
            return operation(record_id, *args)
        except StaleRecord:
            logger.info(f"Negotiation {record_id} changed during write (attempt {attempt}), re-reading")
        except errors.AlreadyContracted:
            record = get_record(record_id)
            logger.info(
                f"Negotiation {record_id} already has contract {record.contract_id}, returning current state"
            )
            return AgreementResult(record=record, contract=record.contract, contract_created=False)
    raise errors.InvalidTransition(
        "The negotiation changed while saving, please refresh", code='CONCURRENT_UPDATE'
    )


def _apply_agreement(record_id, actor, agreed):
    with transaction.atomic():
        record = lock_record(record_id)
        role = resolve_role(actor, record)

        if record.contract_id is not None:
            if agreed and record.has_agreed(role):
                raise errors.AlreadyContracted()
            raise errors.InvalidTransition("Agreement cannot change once the contract exists")
        if record.status not in AGREEMENT_OPEN_STATUSES:
            raise errors.InvalidTransition(f"Cannot change agreement on a {record.status} negotiation")

        expected = {
            'status': record.status,
            'client_agreed': record.client_agreed,
            'worker_agreed': record.worker_agreed,
        }
        flags = {
            'client_agreed': record.client_agreed,
            'worker_agreed': record.worker_agreed,
        }
        flags[record.agreed_flag_field(role)] = agreed

        contract = None
        if flags['client_agreed'] and flags['worker_agreed']:
            if not record.job.is_open:
                raise errors.InvalidTransition("This job is no longer open", code='JOB_NOT_OPEN')
            contract = claim_contract(record, expected, final_status='both_agreed')
        else:
            # Clearing a flag only regresses the status for that flag.
            updated = NegotiationRecord.objects.filter(
                pk=record.pk, contract__isnull=True, **expected,
            ).update(status=agreement_status(**flags), updated_at=timezone.now(), **flags)
            if not updated:
                raise StaleRecord()

        record.refresh_from_db()
        logger.info(
            f"{role.capitalize()} set agreement={agreed} on negotiation {record.pk}, now {record.status}"
        )
        events.negotiation_changed(record, events.NEGOTIATION_AGREEMENT)
        if contract is not None:
            events.contract_changed(contract, events.CONTRACT_CREATED)
    return AgreementResult(record=record, contract=contract, contract_created=contract is not None)


def set_agreement(record_id, actor, agreed):
    """
    Set or clear the acting party's agreement flag.

    Returns an AgreementResult. When this call's flag completes the pair,
    the contract is created and ``contract_created`` is True. A request that
    loses the race gets the winner's record and contract with
    ``contract_created`` False.
    """
    return _retry_on_stale(_apply_agreement, record_id, actor, bool(agreed))


def _apply_response(record_id, actor, action):
    with transaction.atomic():
        record = lock_record(record_id)
        role = resolve_role(actor, record)
        if role != record.responder_role:
            raise errors.InvalidTransition(f"Only the {record.responder_role} can respond to this {record.kind}")
        if record.status != 'pending' or record.contract_id is not None:
            raise errors.InvalidTransition(f"This {record.kind} has already been processed")

        now = timezone.now()
        if record.expires_at is not None and record.expires_at <= now:
            raise errors.InvalidTransition("This invitation has expired", code='INVITATION_EXPIRED')

        contract = None
        if action == 'reject':
            updated = NegotiationRecord.objects.filter(
                pk=record.pk, status='pending', contract__isnull=True,
            ).update(status='rejected', responded_at=now, updated_at=now)
            if not updated:
                raise StaleRecord()
        elif action == 'accept':
            if not record.job.is_open:
                raise errors.InvalidTransition("This job is no longer open", code='JOB_NOT_OPEN')
            contract = claim_contract(record, {'status': 'pending'}, final_status='accepted', responded_at=now)
        else:
            raise errors.ValidationError("Action must be accept or reject", errors={'action': ['Invalid choice.']})

        record.refresh_from_db()
        logger.info(f"{role.capitalize()} {action}ed {record.kind} {record.pk}")
        events.negotiation_changed(record, events.NEGOTIATION_UPDATED)
        if contract is not None:
            events.contract_changed(contract, events.CONTRACT_CREATED)
    return AgreementResult(record=record, contract=contract, contract_created=contract is not None)


def respond(record_id, actor, action):
    """
    The non-initiating party accepts or rejects a pending record without
    discussion. Accepting creates the contract through the same claim.
    """
    return _retry_on_stale(_apply_response, record_id, actor, action)
