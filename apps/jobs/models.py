from django.db import models
from django.conf import settings
from core.constants import JOB_STATUS_CHOICES
from apps.users.models import Worker


class Category(models.Model):
    name = models.CharField(max_length=100, unique=True)

    def __str__(self):
        return self.name


class Job(models.Model):
    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='jobs')
    title = models.CharField(max_length=200)
    location = models.CharField(max_length=200, blank=True)
    description = models.TextField()
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True)
    status = models.CharField(max_length=20, choices=JOB_STATUS_CHOICES, default='open')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    assigned_worker = models.ForeignKey(
        Worker, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_jobs'
    )

    def __str__(self):
        return f"{self.title} - {self.client.username}"

    @property
    def is_open(self):
        return self.status == 'open'

    def assign(self, worker):
        """Mark the job as taken by ``worker`` once a contract exists."""
        Job.objects.filter(pk=self.pk).update(status='in_progress', assigned_worker=worker)

    def reopen(self):
        """Put the job back on the market after its contract was cancelled."""
        Job.objects.filter(pk=self.pk).update(status='open', assigned_worker=None)

    def mark_completed(self):
        Job.objects.filter(pk=self.pk).update(status='completed')

    def mark_closed(self):
        Job.objects.filter(pk=self.pk, status='completed').update(status='closed')
