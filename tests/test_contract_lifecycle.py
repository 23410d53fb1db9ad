"""Tests for the contract work-state machine."""

from unittest.mock import patch

import pytest

from apps.contracts import lifecycle
from apps.contracts.models import Contract
from apps.jobs.models import Job
from core import exceptions as errors


def status_of(contract):
    return Contract.objects.values_list("contract_status", flat=True).get(pk=contract.pk)


class TestHappyPath:
    def test_start_complete_confirm(self, contract, client_user, worker_user, job):
        started = lifecycle.start_work(contract.pk, worker_user)
        assert started.contract_status == "in_progress"
        assert started.start_date is not None

        completed = lifecycle.complete_work(contract.pk, worker_user)
        assert completed.contract_status == "awaiting_client_confirmation"
        assert completed.worker_completed_at is not None

        confirmed = lifecycle.confirm_completion(contract.pk, client_user)
        assert confirmed.contract_status == "completed"
        assert confirmed.client_confirmed_at is not None
        assert confirmed.completed_at is not None
        assert confirmed.can_be_rated

        job.refresh_from_db()
        assert job.status == "completed"

    def test_completion_counts_for_worker(self, completed_contract, worker_user, client_user):
        worker_user.worker.refresh_from_db()
        client_user.client.refresh_from_db()
        assert worker_user.worker.total_jobs_completed == 1
        assert client_user.client.total_contracts_completed == 1


class TestInvalidTransitions:
    def test_complete_before_start(self, contract, worker_user):
        with pytest.raises(errors.InvalidTransition):
            lifecycle.complete_work(contract.pk, worker_user)
        assert status_of(contract) == "active"

    def test_confirm_before_complete(self, contract, client_user, worker_user):
        lifecycle.start_work(contract.pk, worker_user)
        with pytest.raises(errors.InvalidTransition):
            lifecycle.confirm_completion(contract.pk, client_user)
        assert status_of(contract) == "in_progress"

    def test_start_twice(self, contract, worker_user):
        lifecycle.start_work(contract.pk, worker_user)
        with pytest.raises(errors.InvalidTransition):
            lifecycle.start_work(contract.pk, worker_user)

    def test_no_transition_leaves_completed(self, completed_contract, client_user, worker_user):
        for call, actor in [
            (lifecycle.start_work, worker_user),
            (lifecycle.complete_work, worker_user),
            (lifecycle.confirm_completion, client_user),
            (lifecycle.cancel_contract, client_user),
        ]:
            with pytest.raises(errors.InvalidTransition):
                call(completed_contract.pk, actor)
        assert status_of(completed_contract) == "completed"

    @pytest.mark.parametrize(
        "current, action",
        [
            ("active", "start"),
            ("in_progress", "complete"),
            ("awaiting_client_confirmation", "confirm"),
            ("active", "cancel"),
            ("in_progress", "cancel"),
        ],
    )
    def test_table_allows(self, current, action):
        assert lifecycle.can_transition(current, action)

    @pytest.mark.parametrize(
        "current, action",
        [
            ("active", "complete"),
            ("active", "confirm"),
            ("in_progress", "start"),
            ("awaiting_client_confirmation", "cancel"),
            ("completed", "cancel"),
            ("cancelled", "start"),
            ("active", "reopen"),
        ],
    )
    def test_table_refuses(self, current, action):
        assert not lifecycle.can_transition(current, action)


class TestActors:
    def test_client_cannot_start(self, contract, client_user):
        with pytest.raises(errors.Forbidden) as exc_info:
            lifecycle.start_work(contract.pk, client_user)
        assert exc_info.value.code == "WORKER_ACCESS_REQUIRED"
        assert status_of(contract) == "active"

    def test_worker_cannot_confirm(self, contract, worker_user):
        lifecycle.start_work(contract.pk, worker_user)
        lifecycle.complete_work(contract.pk, worker_user)
        with pytest.raises(errors.Forbidden) as exc_info:
            lifecycle.confirm_completion(contract.pk, worker_user)
        assert exc_info.value.code == "CLIENT_ACCESS_REQUIRED"

    def test_outsider_forbidden(self, contract, outsider):
        with pytest.raises(errors.Forbidden):
            lifecycle.start_work(contract.pk, outsider)
        with pytest.raises(errors.Forbidden):
            lifecycle.get_contract_for(contract.pk, outsider)

    def test_unknown_contract(self, worker_user, db):
        with pytest.raises(errors.ContractNotFound):
            lifecycle.start_work(9999, worker_user)


class TestCancel:
    def test_worker_cancels_active(self, contract, worker_user, job):
        cancelled = lifecycle.cancel_contract(contract.pk, worker_user, reason="Family emergency")
        assert cancelled.contract_status == "cancelled"
        assert cancelled.cancelled_by == "worker"
        assert cancelled.cancellation_reason == "Family emergency"
        assert cancelled.cancelled_at is not None

        job.refresh_from_db()
        assert job.status == "open"
        assert job.assigned_worker is None

    def test_client_cancels_in_progress(self, contract, client_user, worker_user):
        lifecycle.start_work(contract.pk, worker_user)
        cancelled = lifecycle.cancel_contract(contract.pk, client_user)
        assert cancelled.cancelled_by == "client"
        assert cancelled.cancellation_reason is None

    def test_cannot_cancel_awaiting_confirmation(self, contract, client_user, worker_user):
        lifecycle.start_work(contract.pk, worker_user)
        lifecycle.complete_work(contract.pk, worker_user)
        with pytest.raises(errors.InvalidTransition):
            lifecycle.cancel_contract(contract.pk, client_user)
        assert status_of(contract) == "awaiting_client_confirmation"

    def test_cancel_loses_to_completion(self, contract, client_user, worker_user):
        lifecycle.start_work(contract.pk, worker_user)
        lifecycle.complete_work(contract.pk, worker_user)
        with pytest.raises(errors.InvalidTransition):
            lifecycle.cancel_contract(contract.pk, client_user)
        confirmed = lifecycle.confirm_completion(contract.pk, client_user)
        assert confirmed.contract_status == "completed"

    def test_reason_too_long(self, contract, client_user):
        with pytest.raises(errors.ValidationError):
            lifecycle.cancel_contract(contract.pk, client_user, reason="x" * 501)
        assert status_of(contract) == "active"

    def test_cancelled_is_final(self, contract, worker_user):
        lifecycle.cancel_contract(contract.pk, worker_user)
        with pytest.raises(errors.InvalidTransition):
            lifecycle.start_work(contract.pk, worker_user)
        assert Job.objects.get(pk=contract.job_id).status == "open"


class TestEvents:
    def test_each_transition_publishes_update(
        self, contract, client_user, worker_user, django_capture_on_commit_callbacks
    ):
        with patch("apps.realtime.bus.publish") as publish:
            with django_capture_on_commit_callbacks(execute=True):
                lifecycle.start_work(contract.pk, worker_user)
            with django_capture_on_commit_callbacks(execute=True):
                lifecycle.complete_work(contract.pk, worker_user)

        assert [call.args[1] for call in publish.call_args_list] == ["contract:updated", "contract:updated"]
        statuses = [call.args[2]["contract_status"] for call in publish.call_args_list]
        assert statuses == ["in_progress", "awaiting_client_confirmation"]
        for call in publish.call_args_list:
            assert call.args[0] == [client_user.pk, worker_user.pk]

    def test_failed_transition_publishes_nothing(self, contract, worker_user, django_capture_on_commit_callbacks):
        with patch("apps.realtime.bus.publish") as publish:
            with django_capture_on_commit_callbacks(execute=True):
                with pytest.raises(errors.InvalidTransition):
                    lifecycle.complete_work(contract.pk, worker_user)
        publish.assert_not_called()

    def test_client_emailed_when_work_completed(
        self, contract, worker_user, django_capture_on_commit_callbacks, mailoutbox
    ):
        lifecycle.start_work(contract.pk, worker_user)
        with patch("apps.realtime.bus.publish"):
            with django_capture_on_commit_callbacks(execute=True):
                lifecycle.complete_work(contract.pk, worker_user)
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == ["alice@example.com"]
