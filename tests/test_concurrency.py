"""Concurrent writers racing on the same negotiation or contract."""

import threading
from unittest.mock import patch

import pytest
from django.db import connection

from apps.contracts import lifecycle
from apps.contracts.models import Contract
from apps.jobs.models import Job
from apps.negotiations import store
from apps.negotiations.agreement import set_agreement
from core import exceptions as errors

from .conftest import MESSAGE, RATE

ROUNDS = 5

pytestmark = pytest.mark.django_db(transaction=True)


def run_concurrently(*calls):
    """Start every call at the same moment, each on its own thread and connection."""
    barrier = threading.Barrier(len(calls))
    outcomes = [None] * len(calls)

    def target(index, call):
        try:
            barrier.wait()
            outcomes[index] = call()
        except Exception as e:
            outcomes[index] = e
        finally:
            connection.close()

    threads = [threading.Thread(target=target, args=(index, call)) for index, call in enumerate(calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


@pytest.fixture(autouse=True)
def quiet_bus():
    with patch("apps.realtime.bus.publish"):
        yield


def open_discussion(client_user, worker_user, number):
    job = Job.objects.create(client=client_user, title=f"Paint room {number}", description="Two coats, white.")
    record = store.create_record("worker", worker_user, job.pk, MESSAGE, RATE)
    return store.start_discussion(record.pk, worker_user)


class TestConcurrentAgreement:
    def test_double_submit_creates_one_contract(self, client_user, worker_user):
        for number in range(ROUNDS):
            record = open_discussion(client_user, worker_user, number)
            set_agreement(record.pk, worker_user, True)

            outcomes = run_concurrently(
                lambda: set_agreement(record.pk, client_user, True),
                lambda: set_agreement(record.pk, client_user, True),
            )

            assert not [o for o in outcomes if isinstance(o, Exception)], outcomes
            contracts = Contract.objects.filter(negotiation__pk=record.pk)
            assert contracts.count() == 1
            assert sorted(o.contract_created for o in outcomes) == [False, True]
            assert {o.contract.pk for o in outcomes} == {contracts.get().pk}
            assert store.get_record(record.pk).contract_id == contracts.get().pk

    def test_both_parties_agree_at_once(self, client_user, worker_user):
        for number in range(ROUNDS):
            record = open_discussion(client_user, worker_user, number)

            outcomes = run_concurrently(
                lambda: set_agreement(record.pk, client_user, True),
                lambda: set_agreement(record.pk, worker_user, True),
            )

            assert not [o for o in outcomes if isinstance(o, Exception)], outcomes
            reread = store.get_record(record.pk)
            assert reread.status == "both_agreed"
            assert Contract.objects.filter(negotiation__pk=record.pk).count() == 1
            created = [o for o in outcomes if o.contract_created]
            assert len(created) == 1
            assert created[0].contract.pk == reread.contract_id


class TestConcurrentTransitions:
    def test_cancel_racing_completion(self, client_user, worker_user):
        for number in range(ROUNDS):
            record = open_discussion(client_user, worker_user, number)
            set_agreement(record.pk, worker_user, True)
            contract = set_agreement(record.pk, client_user, True).contract
            lifecycle.start_work(contract.pk, worker_user)

            outcomes = run_concurrently(
                lambda: lifecycle.cancel_contract(contract.pk, client_user, "Changed plans"),
                lambda: lifecycle.complete_work(contract.pk, worker_user),
            )

            winners = [o for o in outcomes if isinstance(o, Contract)]
            losers = [o for o in outcomes if not isinstance(o, Contract)]
            assert len(winners) == 1
            assert len(losers) == 1 and isinstance(losers[0], errors.InvalidTransition), outcomes
            final = Contract.objects.get(pk=contract.pk)
            assert final.contract_status == winners[0].contract_status
            assert final.contract_status in ("cancelled", "awaiting_client_confirmation")
