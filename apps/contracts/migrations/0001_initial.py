import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('jobs', '0001_initial'),
        ('users', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Contract',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('contract_type', models.CharField(choices=[('job_application', 'Job Application'), ('direct_invitation', 'Direct Invitation')], max_length=20)),
                ('agreed_rate', models.DecimalField(decimal_places=2, max_digits=10)),
                ('description', models.TextField()),
                ('contract_status', models.CharField(choices=[('active', 'Active'), ('in_progress', 'In Progress'), ('awaiting_client_confirmation', 'Awaiting Client Confirmation'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='active', max_length=30)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('start_date', models.DateTimeField(blank=True, null=True)),
                ('worker_completed_at', models.DateTimeField(blank=True, null=True)),
                ('client_confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_by', models.CharField(blank=True, choices=[('client', 'Client'), ('worker', 'Worker')], max_length=10, null=True)),
                ('cancellation_reason', models.CharField(blank=True, max_length=500, null=True)),
                ('client_rating', models.PositiveSmallIntegerField(blank=True, choices=[(1, 1), (2, 2), (3, 3), (4, 4), (5, 5)], null=True)),
                ('client_feedback', models.TextField(blank=True, null=True)),
                ('client_feedback_at', models.DateTimeField(blank=True, null=True)),
                ('worker_rating', models.PositiveSmallIntegerField(blank=True, choices=[(1, 1), (2, 2), (3, 3), (4, 4), (5, 5)], null=True)),
                ('worker_feedback', models.TextField(blank=True, null=True)),
                ('worker_feedback_at', models.DateTimeField(blank=True, null=True)),
                ('feedback_completed_at', models.DateTimeField(blank=True, null=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='client_contracts', to=settings.AUTH_USER_MODEL)),
                ('job', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='contracts', to='jobs.job')),
                ('worker', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='contracts', to='users.worker')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['client', 'contract_status'], name='contract_client_status_idx'),
                    models.Index(fields=['worker', 'contract_status'], name='contract_worker_status_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('client_rating__isnull', True), models.Q(('client_rating__gte', 1), ('client_rating__lte', 5)), _connector='OR'), name='contract_client_rating_range'),
                    models.CheckConstraint(condition=models.Q(('worker_rating__isnull', True), models.Q(('worker_rating__gte', 1), ('worker_rating__lte', 5)), _connector='OR'), name='contract_worker_rating_range'),
                ],
            },
        ),
    ]
