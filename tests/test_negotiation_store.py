"""Tests for creating, discussing, withdrawing and expiring negotiation records."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.negotiations import store
from apps.negotiations.models import NegotiationRecord
from core import exceptions as errors

from .conftest import MESSAGE, RATE


class TestCreateRecord:
    def test_application_starts_pending(self, application, job, client_user, worker_user):
        assert application.kind == "application"
        assert application.status == "pending"
        assert application.client_id == client_user.pk
        assert application.worker.user_id == worker_user.pk
        assert application.proposed_rate == Decimal("500.00")
        assert application.initiator_role == "worker"
        assert not application.client_agreed and not application.worker_agreed
        assert application.contract_id is None
        assert application.expires_at is None

    def test_invitation_expires_after_a_week(self, invitation):
        assert invitation.kind == "invitation"
        assert invitation.initiator_role == "client"
        remaining = invitation.expires_at - timezone.now()
        assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)

    def test_message_is_stripped(self, job, worker_user):
        record = store.create_record("worker", worker_user, job.pk, f"   {MESSAGE}   ", RATE)
        assert record.message == MESSAGE

    @pytest.mark.parametrize("message", ["", "too short", " " * 30 + "short"])
    def test_short_message_rejected(self, job, worker_user, message):
        with pytest.raises(errors.ValidationError) as exc_info:
            store.create_record("worker", worker_user, job.pk, message, RATE)
        assert "message" in exc_info.value.errors
        assert not NegotiationRecord.objects.exists()

    def test_long_message_rejected(self, job, worker_user):
        with pytest.raises(errors.ValidationError):
            store.create_record("worker", worker_user, job.pk, "x" * 2001, RATE)

    @pytest.mark.parametrize("rate", [0, -10, "abc", None, "NaN", "0.001", "0.004"])
    def test_invalid_rate_rejected(self, job, worker_user, rate):
        with pytest.raises(errors.ValidationError) as exc_info:
            store.create_record("worker", worker_user, job.pk, MESSAGE, rate)
        assert "proposed_rate" in exc_info.value.errors

    def test_rate_above_limit_rejected(self, job, worker_user):
        with pytest.raises(errors.ValidationError):
            store.create_record("worker", worker_user, job.pk, MESSAGE, Decimal("1000000.01"))

    def test_unknown_job(self, worker_user, db):
        with pytest.raises(errors.NotFound) as exc_info:
            store.create_record("worker", worker_user, 9999, MESSAGE, RATE)
        assert exc_info.value.code == "JOB_NOT_FOUND"

    def test_client_cannot_apply(self, job, make_user):
        other_client = make_user("dave", "client")
        with pytest.raises(errors.Forbidden):
            store.create_record("worker", other_client, job.pk, MESSAGE, RATE)

    def test_only_job_owner_invites(self, job, worker_user, make_user):
        other_client = make_user("dave", "client")
        with pytest.raises(errors.Forbidden) as exc_info:
            store.create_record("client", other_client, job.pk, MESSAGE, RATE, worker_id=worker_user.worker.pk)
        assert exc_info.value.code == "NOT_JOB_OWNER"

    def test_invite_unknown_worker(self, job, client_user):
        with pytest.raises(errors.NotFound) as exc_info:
            store.create_record("client", client_user, job.pk, MESSAGE, RATE, worker_id=9999)
        assert exc_info.value.code == "WORKER_NOT_FOUND"

    def test_cannot_negotiate_on_own_job(self, make_user):
        from apps.jobs.models import Job
        from apps.users.models import Client

        both = make_user("erin", "worker")
        Client.objects.create(user=both)
        own_job = Job.objects.create(client=both, title="Paint fence", description="Two coats, white.")
        with pytest.raises(errors.ValidationError) as exc_info:
            store.create_record("worker", both, own_job.pk, MESSAGE, RATE)
        assert exc_info.value.code == "SELF_NEGOTIATION_NOT_ALLOWED"

    def test_job_must_be_open(self, job, worker_user):
        job.status = "in_progress"
        job.save()
        with pytest.raises(errors.ValidationError) as exc_info:
            store.create_record("worker", worker_user, job.pk, MESSAGE, RATE)
        assert exc_info.value.code == "JOB_NOT_OPEN"

    def test_duplicate_open_record_rejected(self, application, job, client_user, worker_user):
        with pytest.raises(errors.ValidationError) as exc_info:
            store.create_record("client", client_user, job.pk, MESSAGE, RATE, worker_id=worker_user.worker.pk)
        assert exc_info.value.code == "DUPLICATE_NEGOTIATION"

    def test_new_record_allowed_after_withdrawal(self, application, job, worker_user):
        store.cancel_record(application.pk, worker_user)
        record = store.create_record("worker", worker_user, job.pk, MESSAGE, RATE)
        assert record.pk != application.pk


class TestStartDiscussion:
    def test_moves_pending_to_discussion(self, application, client_user):
        record = store.start_discussion(application.pk, client_user)
        assert record.status == "in_discussion"
        assert record.discussion_started_at is not None

    def test_is_idempotent(self, discussion, worker_user):
        again = store.start_discussion(discussion.pk, worker_user)
        assert again.status == "in_discussion"
        assert again.discussion_started_at == discussion.discussion_started_at

    def test_outsider_forbidden(self, application, outsider):
        with pytest.raises(errors.Forbidden):
            store.start_discussion(application.pk, outsider)
        application.refresh_from_db()
        assert application.status == "pending"

    def test_rejected_record_cannot_be_discussed(self, application, client_user, worker_user):
        NegotiationRecord.objects.filter(pk=application.pk).update(status="rejected")
        with pytest.raises(errors.InvalidTransition):
            store.start_discussion(application.pk, worker_user)

    def test_expired_invitation(self, invitation, worker_user):
        NegotiationRecord.objects.filter(pk=invitation.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
        with pytest.raises(errors.InvalidTransition) as exc_info:
            store.start_discussion(invitation.pk, worker_user)
        assert exc_info.value.code == "INVITATION_EXPIRED"

    def test_unknown_record(self, worker_user):
        with pytest.raises(errors.RecordNotFound):
            store.start_discussion(9999, worker_user)


class TestCancelRecord:
    def test_initiator_withdraws(self, discussion, worker_user):
        record = store.cancel_record(discussion.pk, worker_user)
        assert record.status == "cancelled"
        assert record.is_terminal

    def test_responder_cannot_withdraw(self, application, client_user):
        with pytest.raises(errors.Forbidden):
            store.cancel_record(application.pk, client_user)

    def test_contracted_record_cannot_be_withdrawn(self, contract, worker_user):
        with pytest.raises(errors.InvalidTransition):
            store.cancel_record(contract.negotiation.pk, worker_user)


class TestExpireInvitations:
    def test_only_overdue_pending_invitations_expire(self, invitation, job, client_user, other_worker):
        fresh = store.create_record("client", client_user, job.pk, MESSAGE, RATE, worker_id=other_worker.worker.pk)
        NegotiationRecord.objects.filter(pk=invitation.pk).update(expires_at=timezone.now() - timedelta(hours=1))

        assert store.expire_invitations() == 1

        invitation.refresh_from_db()
        fresh.refresh_from_db()
        assert invitation.status == "cancelled"
        assert fresh.status == "pending"

    def test_nothing_to_expire(self, invitation):
        assert store.expire_invitations() == 0

    def test_management_command(self, invitation):
        from io import StringIO

        from django.core.management import call_command

        NegotiationRecord.objects.filter(pk=invitation.pk).update(expires_at=timezone.now() - timedelta(days=1))
        out = StringIO()
        call_command("expire_invitations", stdout=out)
        assert "Expired 1 invitation(s)" in out.getvalue()


class TestRecordsForUser:
    def test_lists_both_sides(self, application, client_user, worker_user, outsider):
        assert list(store.records_for_user(client_user)) == [application]
        assert list(store.records_for_user(worker_user)) == [application]
        assert list(store.records_for_user(outsider)) == []
