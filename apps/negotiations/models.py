from django.db import models
from django.db.models import Q
from django.conf import settings
from core.constants import (
    NEGOTIATION_KIND_CHOICES, NEGOTIATION_STATUS_CHOICES, NEGOTIATION_OPEN_STATUSES,
    NEGOTIATION_TERMINAL_STATUSES, ROLE_CLIENT, ROLE_WORKER,
)
from apps.users.models import Worker
from apps.jobs.models import Job


def agreement_status(client_agreed, worker_agreed):
    """Status implied by the two agreement flags while a record is negotiable."""
    if client_agreed and worker_agreed:
        return 'both_agreed'
    if client_agreed:
        return 'client_agreed'
    if worker_agreed:
        return 'worker_agreed'
    return 'in_discussion'


class NegotiationRecord(models.Model):
    """
    An application (worker initiated) or an invitation (client initiated).

    Both kinds share one state machine. ``contract`` is the unique claim:
    it is written exactly once, by a conditional update on
    ``contract IS NULL``, in the same transaction that creates the Contract.
    """
    kind = models.CharField(max_length=20, choices=NEGOTIATION_KIND_CHOICES)
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name='negotiations')
    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='client_negotiations')
    worker = models.ForeignKey(Worker, on_delete=models.CASCADE, related_name='negotiations')
    message = models.TextField()
    proposed_rate = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=NEGOTIATION_STATUS_CHOICES, default='pending')
    client_agreed = models.BooleanField(default=False)
    worker_agreed = models.BooleanField(default=False)
    contract = models.OneToOneField(
        'contracts.Contract', on_delete=models.PROTECT, null=True, blank=True, related_name='negotiation'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    discussion_started_at = models.DateTimeField(null=True, blank=True)
    agreement_completed_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['client', 'status'], name='negotiation_client_status_idx'),
            models.Index(fields=['worker', 'status'], name='negotiation_worker_status_idx'),
            models.Index(fields=['job', 'status'], name='negotiation_job_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(status='both_agreed') | Q(
                    client_agreed=True, worker_agreed=True, contract__isnull=False
                ),
                name='negotiation_both_agreed_has_contract',
            ),
            models.CheckConstraint(
                condition=Q(proposed_rate__gt=0),
                name='negotiation_rate_positive',
            ),
        ]

    def __str__(self):
        return f"{self.get_kind_display()} #{self.pk} for {self.job.title} ({self.status})"

    @property
    def initiator_role(self):
        return ROLE_WORKER if self.kind == 'application' else ROLE_CLIENT

    @property
    def responder_role(self):
        return ROLE_CLIENT if self.kind == 'application' else ROLE_WORKER

    @property
    def is_open(self):
        return self.contract_id is None and self.status in NEGOTIATION_OPEN_STATUSES

    @property
    def is_terminal(self):
        return self.contract_id is not None or self.status in NEGOTIATION_TERMINAL_STATUSES

    def agreed_flag_field(self, role):
        return 'client_agreed' if role == ROLE_CLIENT else 'worker_agreed'

    def has_agreed(self, role):
        return getattr(self, self.agreed_flag_field(role))
