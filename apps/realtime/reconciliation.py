"""
Reconciliation poller.

Realtime events are best effort. A session waiting for the other party to
agree re-reads the authoritative agreement status at a fixed interval until
a contract appears or the negotiation ends, then stops.
"""
import logging
import time

import requests
from django.conf import settings

from core.constants import AGREEMENT_OPEN_STATUSES

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 40


class ReconciliationPoller:

    def __init__(self, base_url, token, record_id, interval=None, max_attempts=DEFAULT_MAX_ATTEMPTS,
                 session=None, timeout=10, sleep=time.sleep):
        self.base_url = base_url.rstrip('/')
        self.record_id = record_id
        self.interval = settings.RECONCILIATION_INTERVAL_SECONDS if interval is None else interval
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.sleep = sleep
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f'Token {token}',
            'Accept': 'application/json',
        })

    @property
    def url(self):
        return f"{self.base_url}/negotiations/{self.record_id}/agreement-status/"

    @staticmethod
    def should_poll(snapshot):
        """True while the negotiation is being agreed and no contract is known."""
        return snapshot.get('status') in AGREEMENT_OPEN_STATUSES and not snapshot.get('contract')

    @staticmethod
    def is_settled(snapshot):
        return bool(snapshot.get('contract')) or bool(snapshot.get('is_terminal'))

    def fetch(self):
        """One authoritative read of the agreement status."""
        response = self.session.get(self.url, timeout=self.timeout)
        response.raise_for_status()
        return response.json()['data']

    def run(self, on_update=None):
        """
        Poll until settled, out of agreement, or ``max_attempts`` reads were made.

        ``on_update`` receives every snapshot read. Returns the last
        snapshot, or None if no read succeeded. Client errors other than
        rate limiting are raised; network and server errors are retried on
        the next tick.
        """
        last = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                snapshot = self.fetch()
            except requests.HTTPError as e:
                status_code = e.response.status_code if e.response is not None else None
                if status_code is not None and 400 <= status_code < 500 and status_code != 429:
                    raise
                logger.warning(f"Agreement status read {attempt} for negotiation {self.record_id} failed: {str(e)}")
            except requests.RequestException as e:
                logger.warning(f"Agreement status read {attempt} for negotiation {self.record_id} failed: {str(e)}")
            else:
                last = snapshot
                if on_update is not None:
                    on_update(snapshot)
                if self.is_settled(snapshot) or not self.should_poll(snapshot):
                    logger.info(
                        f"Stopped polling negotiation {self.record_id} at {snapshot.get('status')} after {attempt} read(s)"
                    )
                    return snapshot
            if attempt < self.max_attempts:
                self.sleep(self.interval)

        logger.info(f"Stopped polling negotiation {self.record_id} after {self.max_attempts} reads")
        return last
