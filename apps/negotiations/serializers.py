from rest_framework import serializers
from .models import NegotiationRecord


class NegotiationRecordSerializer(serializers.ModelSerializer):
    job_title = serializers.CharField(source='job.title', read_only=True)
    worker_user = serializers.IntegerField(source='worker.user_id', read_only=True)
    initiator_role = serializers.CharField(read_only=True)
    is_terminal = serializers.BooleanField(read_only=True)

    class Meta:
        model = NegotiationRecord
        fields = [
            'id', 'kind', 'job', 'job_title', 'client', 'worker', 'worker_user',
            'initiator_role', 'message', 'proposed_rate', 'status',
            'client_agreed', 'worker_agreed', 'contract', 'is_terminal',
            'created_at', 'updated_at', 'responded_at', 'discussion_started_at',
            'agreement_completed_at', 'expires_at',
        ]
        read_only_fields = fields


class AgreementStatusSerializer(serializers.ModelSerializer):
    """Lightweight authoritative read polled by clients until a contract appears."""
    is_terminal = serializers.BooleanField(read_only=True)

    class Meta:
        model = NegotiationRecord
        fields = ['id', 'status', 'client_agreed', 'worker_agreed', 'contract', 'is_terminal', 'updated_at']
        read_only_fields = fields


class ApplicationCreateSerializer(serializers.Serializer):
    job_id = serializers.IntegerField()
    message = serializers.CharField(trim_whitespace=True, allow_blank=True)
    proposed_rate = serializers.DecimalField(max_digits=10, decimal_places=2)


class InvitationCreateSerializer(ApplicationCreateSerializer):
    worker_id = serializers.IntegerField()


class RespondSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['accept', 'reject'])


class AgreementSerializer(serializers.Serializer):
    agreed = serializers.BooleanField()


class NegotiationQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[choice for choice, _ in NegotiationRecord._meta.get_field('status').choices],
        required=False,
    )
    kind = serializers.ChoiceField(choices=['application', 'invitation'], required=False)
    job = serializers.IntegerField(required=False)
    ordering = serializers.ChoiceField(
        choices=['created_at', '-created_at', 'proposed_rate', '-proposed_rate'],
        required=False,
        default='-created_at',
    )
