"""
Per-user fan-out of state-change events over the channel layer.

Every event goes to the group of each affected user, never as a broadcast.
Payloads are full snapshots, so duplicate or reordered delivery is harmless
and a missed event is healed by the reconciliation poller.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

logger = logging.getLogger(__name__)

EVENT_MESSAGE_TYPE = 'realtime.event'


def user_group(user_id):
    return f"user.{user_id}"


def publish(user_ids, event, payload):
    """
    Send ``event`` with ``payload`` to every user in ``user_ids``.

    Fire and forget: delivery failures are logged, never raised.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning(f"No channel layer configured, dropping {event}")
        return
    for user_id in dict.fromkeys(user_ids):
        try:
            async_to_sync(channel_layer.group_send)(
                user_group(user_id),
                {'type': EVENT_MESSAGE_TYPE, 'event': event, 'data': payload},
            )
        except Exception:
            logger.exception(f"Failed to publish {event} to user {user_id}")


def publish_on_commit(user_ids, event, build_payload):
    """
    Publish after the surrounding transaction commits.

    ``build_payload`` is called at commit time so the snapshot reflects the
    committed row. Nothing is sent if the transaction rolls back.
    """
    user_ids = list(user_ids)

    def _send():
        try:
            payload = build_payload()
        except Exception:
            logger.exception(f"Failed to build {event} snapshot")
            return
        publish(user_ids, event, payload)

    transaction.on_commit(_send, robust=True)
