from django.db import models
from django.db.models import Q
from django.conf import settings
from django.utils import timezone
from core.constants import (
    CONTRACT_TYPE_CHOICES, CONTRACT_STATUS_CHOICES, ROLE_CHOICES, RATING_CHOICES,
)
from apps.users.models import Worker
from apps.jobs.models import Job


class ContractManager(models.Manager):

    def build_from_negotiation(self, record):
        """Unsaved Contract carrying the negotiated terms of ``record``."""
        return self.model(
            job=record.job,
            client_id=record.client_id,
            worker=record.worker,
            contract_type='job_application' if record.kind == 'application' else 'direct_invitation',
            agreed_rate=record.proposed_rate,
            description=record.message,
            contract_status='active',
        )

    def for_user(self, user):
        return self.filter(Q(client=user) | Q(worker__user=user))


class Contract(models.Model):
    job = models.ForeignKey(Job, on_delete=models.PROTECT, related_name='contracts')
    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='client_contracts')
    worker = models.ForeignKey(Worker, on_delete=models.PROTECT, related_name='contracts')
    contract_type = models.CharField(max_length=20, choices=CONTRACT_TYPE_CHOICES)
    agreed_rate = models.DecimalField(max_digits=10, decimal_places=2)
    description = models.TextField()
    contract_status = models.CharField(max_length=30, choices=CONTRACT_STATUS_CHOICES, default='active')

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)
    start_date = models.DateTimeField(null=True, blank=True)
    worker_completed_at = models.DateTimeField(null=True, blank=True)
    client_confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.CharField(max_length=10, choices=ROLE_CHOICES, blank=True, null=True)
    cancellation_reason = models.CharField(max_length=500, blank=True, null=True)

    # Rating and comment left by the client about the worker
    client_rating = models.PositiveSmallIntegerField(choices=RATING_CHOICES, null=True, blank=True)
    client_feedback = models.TextField(blank=True, null=True)
    client_feedback_at = models.DateTimeField(null=True, blank=True)
    # Rating and comment left by the worker about the client
    worker_rating = models.PositiveSmallIntegerField(choices=RATING_CHOICES, null=True, blank=True)
    worker_feedback = models.TextField(blank=True, null=True)
    worker_feedback_at = models.DateTimeField(null=True, blank=True)
    feedback_completed_at = models.DateTimeField(null=True, blank=True)

    objects = ContractManager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['client', 'contract_status'], name='contract_client_status_idx'),
            models.Index(fields=['worker', 'contract_status'], name='contract_worker_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(client_rating__isnull=True) | Q(client_rating__gte=1, client_rating__lte=5),
                name='contract_client_rating_range',
            ),
            models.CheckConstraint(
                condition=Q(worker_rating__isnull=True) | Q(worker_rating__gte=1, worker_rating__lte=5),
                name='contract_worker_rating_range',
            ),
        ]

    def __str__(self):
        return f"Contract #{self.pk} for {self.job.title} ({self.contract_status})"

    @property
    def is_active(self):
        return self.contract_status in ('active', 'in_progress')

    @property
    def can_be_rated(self):
        return self.contract_status == 'completed'

    @property
    def duration_days(self):
        if self.start_date and self.completed_at:
            return (self.completed_at - self.start_date).days
        return None

    def has_feedback_from(self, role):
        return getattr(self, f'{role}_rating') is not None
