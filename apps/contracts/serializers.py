from rest_framework import serializers
from core.constants import CONTRACT_STATUS_CHOICES, CONTRACT_TYPE_CHOICES
from .models import Contract


class ContractSerializer(serializers.ModelSerializer):
    job_title = serializers.CharField(source='job.title', read_only=True)
    worker_user = serializers.IntegerField(source='worker.user_id', read_only=True)
    negotiation = serializers.IntegerField(source='negotiation.id', read_only=True, default=None)
    can_be_rated = serializers.BooleanField(read_only=True)
    duration_days = serializers.IntegerField(read_only=True)

    class Meta:
        model = Contract
        fields = [
            'id', 'job', 'job_title', 'client', 'worker', 'worker_user', 'negotiation',
            'contract_type', 'agreed_rate', 'description', 'contract_status',
            'created_at', 'updated_at', 'start_date', 'worker_completed_at',
            'client_confirmed_at', 'completed_at', 'cancelled_at', 'cancelled_by',
            'cancellation_reason', 'client_rating', 'client_feedback', 'client_feedback_at',
            'worker_rating', 'worker_feedback', 'worker_feedback_at', 'feedback_completed_at',
            'can_be_rated', 'duration_days',
        ]
        read_only_fields = fields


class CancelContractSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


class FeedbackSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(trim_whitespace=True, allow_blank=True)


class ContractQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in CONTRACT_STATUS_CHOICES], required=False)
    contract_type = serializers.ChoiceField(choices=[c for c, _ in CONTRACT_TYPE_CHOICES], required=False)
    ordering = serializers.ChoiceField(
        choices=['created_at', '-created_at', 'agreed_rate', '-agreed_rate'],
        required=False,
        default='-created_at',
    )
