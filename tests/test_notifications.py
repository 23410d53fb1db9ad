"""Tests for email/SMS notifications sent after commit."""

from unittest.mock import patch

import pytest
import requests

from apps.contracts.models import Contract
from apps.negotiations.agreement import set_agreement
from core import notifications


@pytest.fixture
def twilio_settings(settings):
    settings.TWILIO_ACCOUNT_SID = "AC0123456789"
    settings.TWILIO_AUTH_TOKEN = "secret"
    settings.TWILIO_PHONE_NUMBER = "+15005550006"
    return settings


@pytest.fixture
def client_with_phone(client_user):
    client_user.phone_number = "+251911223344"
    client_user.save(update_fields=["phone_number"])
    return client_user


@pytest.mark.django_db
class TestSendNotification:
    def test_sms_transport_failure_is_logged(self, twilio_settings, client_with_phone, mailoutbox):
        with patch.object(notifications, "TwilioClient", side_effect=requests.ConnectionError("sms gateway down")), \
                patch.object(notifications, "logger") as logger:
            notifications.send_notification(client_with_phone, "Subject", "Body", "Short body")

        assert [message.to for message in mailoutbox] == [["alice@example.com"]]
        logger.exception.assert_called_once_with(f"Failed to send SMS to user {client_with_phone.id}")

    def test_sms_sent_through_twilio(self, twilio_settings, client_with_phone):
        with patch.object(notifications, "TwilioClient") as twilio:
            notifications.send_notification(client_with_phone, "Subject", "Body", "Short body")

        twilio.return_value.messages.create.assert_called_once_with(
            body="Short body", from_="+15005550006", to="+251911223344"
        )

    def test_invalid_phone_skips_sms(self, twilio_settings, client_user):
        client_user.phone_number = "0911223344"
        with patch.object(notifications, "TwilioClient") as twilio:
            notifications.send_notification(client_user, "Subject", "Body", "Short body")
        twilio.assert_not_called()

    def test_commit_hook_is_robust(self, client_user):
        with patch.object(notifications.transaction, "on_commit") as on_commit:
            notifications.notify_on_commit([client_user], "Subject", "Body", "Short body")
        assert on_commit.call_args.kwargs == {"robust": True}


@pytest.mark.django_db(transaction=True)
class TestAfterCommit:
    def test_sms_outage_keeps_contract_and_events(
        self, twilio_settings, discussion, client_with_phone, worker_user
    ):
        set_agreement(discussion.pk, worker_user, True)

        with patch.object(notifications, "TwilioClient", side_effect=requests.ConnectionError("sms gateway down")), \
                patch("apps.realtime.bus.publish") as publish:
            result = set_agreement(discussion.pk, client_with_phone, True)

        assert result.contract_created
        assert Contract.objects.count() == 1
        published = {call.args[1] for call in publish.call_args_list}
        assert published == {"negotiation:agreement", "contract:created"}
