import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('contracts', '0001_initial'),
        ('jobs', '0001_initial'),
        ('users', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='NegotiationRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('application', 'Application'), ('invitation', 'Invitation')], max_length=20)),
                ('message', models.TextField()),
                ('proposed_rate', models.DecimalField(decimal_places=2, max_digits=10)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('rejected', 'Rejected'), ('in_discussion', 'In Discussion'), ('client_agreed', 'Client Agreed'), ('worker_agreed', 'Worker Agreed'), ('both_agreed', 'Both Agreed'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('client_agreed', models.BooleanField(default=False)),
                ('worker_agreed', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('discussion_started_at', models.DateTimeField(blank=True, null=True)),
                ('agreement_completed_at', models.DateTimeField(blank=True, null=True)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='client_negotiations', to=settings.AUTH_USER_MODEL)),
                ('contract', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='negotiation', to='contracts.contract')),
                ('job', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='negotiations', to='jobs.job')),
                ('worker', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='negotiations', to='users.worker')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['client', 'status'], name='negotiation_client_status_idx'),
                    models.Index(fields=['worker', 'status'], name='negotiation_worker_status_idx'),
                    models.Index(fields=['job', 'status'], name='negotiation_job_status_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(models.Q(('status', 'both_agreed'), _negated=True), models.Q(('client_agreed', True), ('worker_agreed', True), ('contract__isnull', False)), _connector='OR'), name='negotiation_both_agreed_has_contract'),
                    models.CheckConstraint(condition=models.Q(('proposed_rate__gt', 0)), name='negotiation_rate_positive'),
                ],
            },
        ),
    ]
