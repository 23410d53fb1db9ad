from django.db import models
from django.contrib.auth.models import AbstractUser
from django.apps import apps


class User(AbstractUser):
    email = models.EmailField(blank=True, null=True, unique=True)
    phone_number = models.CharField(max_length=15, blank=True, null=True, unique=True)
    is_verified = models.BooleanField(default=False)

    @property
    def is_client(self):
        return hasattr(self, 'client')

    @property
    def is_worker(self):
        return hasattr(self, 'worker')

    def get_rating_stats(self):
        """Get rating statistics for both workers and clients"""
        stats = {
            'average_rating': 0.0,
            'total_ratings': 0,
            'rating_breakdown': {
                '5_star': 0,
                '4_star': 0,
                '3_star': 0,
                '2_star': 0,
                '1_star': 0
            }
        }

        Contract = apps.get_model('contracts', 'Contract')
        if self.is_worker:
            # Workers are rated by their clients
            all_ratings = list(
                Contract.objects.filter(worker=self.worker, client_rating__isnull=False)
                .values_list('client_rating', flat=True)
            )
        elif self.is_client:
            # Clients are rated by their workers
            all_ratings = list(
                Contract.objects.filter(client=self, worker_rating__isnull=False)
                .values_list('worker_rating', flat=True)
            )
        else:
            all_ratings = []

        if all_ratings:
            stats['total_ratings'] = len(all_ratings)
            stats['average_rating'] = round(sum(all_ratings) / len(all_ratings), 1)

            # Calculate rating breakdown
            for rating in all_ratings:
                stats['rating_breakdown'][f'{rating}_star'] += 1

            # Convert to percentages
            for key in stats['rating_breakdown']:
                stats['rating_breakdown'][key] = round(
                    (stats['rating_breakdown'][key] / stats['total_ratings']) * 100, 1
                )

        return stats


class Client(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='client')
    location = models.CharField(max_length=100, blank=True, null=True)
    average_rating = models.FloatField(default=0.0)
    total_contracts_completed = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"Client: {self.user.username}"


class Worker(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='worker')
    location = models.CharField(max_length=100, blank=True, null=True)
    average_rating = models.FloatField(default=0.0)
    total_jobs_completed = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"Worker: {self.user.username}"
