from core.utils import party_user_ids
from apps.realtime import bus

NEGOTIATION_CREATED = 'negotiation:created'
NEGOTIATION_UPDATED = 'negotiation:updated'
NEGOTIATION_AGREEMENT = 'negotiation:agreement'
CONTRACT_CREATED = 'contract:created'
CONTRACT_UPDATED = 'contract:updated'
CONTRACT_FEEDBACK = 'contract:feedback'


def negotiation_snapshot(record_id):
    from apps.negotiations.models import NegotiationRecord
    from apps.negotiations.serializers import NegotiationRecordSerializer
    record = NegotiationRecord.objects.select_related('job', 'worker').get(pk=record_id)
    return NegotiationRecordSerializer(record).data


def contract_snapshot(contract_id):
    from apps.contracts.models import Contract
    from apps.contracts.serializers import ContractSerializer
    contract = Contract.objects.select_related('job', 'worker').get(pk=contract_id)
    return ContractSerializer(contract).data


def negotiation_changed(record, event):
    bus.publish_on_commit(party_user_ids(record), event, lambda: negotiation_snapshot(record.pk))


def contract_changed(contract, event):
    bus.publish_on_commit(party_user_ids(contract), event, lambda: contract_snapshot(contract.pk))
