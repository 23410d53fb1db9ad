"""
Pytest fixtures for the marketplace tests.

Users come in three flavours: a client who owns the job, a worker who
negotiates on it, and an outsider who is party to nothing.
"""

from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from apps.contracts import lifecycle
from apps.jobs.models import Job
from apps.negotiations import store
from apps.negotiations.agreement import set_agreement
from apps.users.models import Client, User, Worker

MESSAGE = "I have five years of experience fixing exactly this kind of problem."
RATE = Decimal("500")


@pytest.fixture(autouse=True)
def clear_throttle_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    def _make(username, role=None, **extra):
        user = User.objects.create_user(
            username=username,
            email=f"{username}@example.com",
            password="s3cret-pass",
            **extra,
        )
        if role == "client":
            Client.objects.create(user=user)
        elif role == "worker":
            Worker.objects.create(user=user)
        return user

    return _make


@pytest.fixture
def client_user(make_user):
    return make_user("alice", "client")


@pytest.fixture
def worker_user(make_user):
    return make_user("bob", "worker")


@pytest.fixture
def other_worker(make_user):
    return make_user("carol", "worker")


@pytest.fixture
def outsider(make_user):
    return make_user("mallory", "worker")


@pytest.fixture
def job(client_user):
    return Job.objects.create(
        client=client_user,
        title="Fix the kitchen sink",
        description="The pipe under the sink leaks when the tap is open.",
    )


@pytest.fixture
def application(job, worker_user):
    return store.create_record("worker", worker_user, job.pk, MESSAGE, RATE)


@pytest.fixture
def invitation(job, client_user, worker_user):
    return store.create_record("client", client_user, job.pk, MESSAGE, RATE, worker_id=worker_user.worker.pk)


@pytest.fixture
def discussion(application, worker_user):
    return store.start_discussion(application.pk, worker_user)


@pytest.fixture
def contract(discussion, client_user, worker_user):
    set_agreement(discussion.pk, worker_user, True)
    return set_agreement(discussion.pk, client_user, True).contract


@pytest.fixture
def completed_contract(contract, client_user, worker_user):
    lifecycle.start_work(contract.pk, worker_user)
    lifecycle.complete_work(contract.pk, worker_user)
    return lifecycle.confirm_completion(contract.pk, client_user)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def api_as():
    """APIClient authenticated as the given user."""
    def _api_as(user):
        api = APIClient()
        api.force_authenticate(user=user)
        return api

    return _api_as
