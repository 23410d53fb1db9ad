from django.db.models import Avg, Count, Q
from rest_framework.views import APIView
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.throttling import ScopedRateThrottle
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from core.pagination import StandardPagination
from core.utils import success_response
from . import lifecycle
from .feedback import submit_feedback
from .models import Contract
from .serializers import (
    ContractSerializer, CancelContractSerializer, FeedbackSerializer, ContractQuerySerializer,
)

contract_response = openapi.Response(
    description='Contract envelope',
    schema=openapi.Schema(
        type=openapi.TYPE_OBJECT,
        properties={
            'success': openapi.Schema(type=openapi.TYPE_BOOLEAN),
            'message': openapi.Schema(type=openapi.TYPE_STRING),
            'code': openapi.Schema(type=openapi.TYPE_STRING),
            'data': openapi.Schema(type=openapi.TYPE_OBJECT),
        }
    )
)


def contract_statistics(user):
    """Counts over every contract of ``user`` plus the average rating they received."""
    contracts = Contract.objects.for_user(user)
    counts = contracts.aggregate(
        total=Count('id'),
        active=Count('id', filter=Q(contract_status__in=['active', 'in_progress'])),
        awaiting_confirmation=Count('id', filter=Q(contract_status='awaiting_client_confirmation')),
        completed=Count('id', filter=Q(contract_status='completed')),
        cancelled=Count('id', filter=Q(contract_status='cancelled')),
    )
    # Workers are rated by clients and clients by workers.
    as_worker = contracts.filter(worker__user=user).aggregate(avg=Avg('client_rating'))['avg']
    as_client = contracts.filter(client=user).aggregate(avg=Avg('worker_rating'))['avg']
    ratings = [value for value in (as_worker, as_client) if value is not None]
    counts['average_rating'] = round(sum(ratings) / len(ratings), 2) if ratings else 0.0
    return counts


class ContractListView(APIView):
    permission_classes = [IsAuthenticated]
    pagination_class = StandardPagination

    @swagger_auto_schema(
        operation_description="List the contracts of the authenticated user, as client or worker.",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('contract_type', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('ordering', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
        ],
        responses={200: ContractSerializer(many=True), 400: 'Bad Request', 401: 'Unauthorized'}
    )
    def get(self, request):
        query = ContractQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        filters = query.validated_data

        contracts = Contract.objects.for_user(request.user).select_related('job', 'worker')
        if filters.get('status'):
            contracts = contracts.filter(contract_status=filters['status'])
        if filters.get('contract_type'):
            contracts = contracts.filter(contract_type=filters['contract_type'])
        contracts = contracts.order_by(filters['ordering'], '-id')

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(contracts, request, view=self)
        serializer = ContractSerializer(page, many=True)
        return paginator.get_paginated_response(
            serializer.data, message='Contracts retrieved successfully', code='CONTRACTS_RETRIEVED',
            extra={'statistics': contract_statistics(request.user)},
        )


class ContractDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Fetch a single contract. Only its client and worker can read it.",
        responses={200: contract_response, 403: 'Forbidden', 404: 'Not Found'}
    )
    def get(self, request, pk):
        contract = lifecycle.get_contract_for(pk, request.user)
        return success_response(
            'Contract retrieved successfully', 'CONTRACT_RETRIEVED', ContractSerializer(contract).data
        )


class ContractStartView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'contracts'

    @swagger_auto_schema(
        operation_description="Worker starts the work on an active contract.",
        request_body=openapi.Schema(type=openapi.TYPE_OBJECT, properties={}),
        responses={200: contract_response, 403: 'Forbidden', 404: 'Not Found', 409: 'Invalid transition'}
    )
    def post(self, request, pk):
        contract = lifecycle.start_work(pk, request.user)
        return success_response('Work started successfully', 'WORK_STARTED', ContractSerializer(contract).data)


class ContractCompleteView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'contracts'

    @swagger_auto_schema(
        operation_description="Worker marks the work as completed; the client must confirm it.",
        request_body=openapi.Schema(type=openapi.TYPE_OBJECT, properties={}),
        responses={200: contract_response, 403: 'Forbidden', 404: 'Not Found', 409: 'Invalid transition'}
    )
    def post(self, request, pk):
        contract = lifecycle.complete_work(pk, request.user)
        return success_response(
            'Work marked as completed, awaiting client confirmation', 'WORK_COMPLETED',
            ContractSerializer(contract).data,
        )


class ContractConfirmView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'contracts'

    @swagger_auto_schema(
        operation_description="Client confirms the completed work. Feedback opens for both parties.",
        request_body=openapi.Schema(type=openapi.TYPE_OBJECT, properties={}),
        responses={200: contract_response, 403: 'Forbidden', 404: 'Not Found', 409: 'Invalid transition'}
    )
    def post(self, request, pk):
        contract = lifecycle.confirm_completion(pk, request.user)
        return success_response(
            'Contract completion confirmed', 'CONTRACT_COMPLETED', ContractSerializer(contract).data
        )


class ContractCancelView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'contracts'

    @swagger_auto_schema(
        operation_description="Either party cancels an active or in-progress contract.",
        request_body=CancelContractSerializer,
        responses={200: contract_response, 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found', 409: 'Invalid transition'}
    )
    def post(self, request, pk):
        serializer = CancelContractSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        contract = lifecycle.cancel_contract(pk, request.user, reason=serializer.validated_data.get('reason'))
        return success_response('Contract cancelled successfully', 'CONTRACT_CANCELLED', ContractSerializer(contract).data)


class ContractFeedbackView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'feedback'

    @swagger_auto_schema(
        operation_description=(
            "Submit a rating (1-5) and comment for a completed contract. "
            "Clients rate the worker and workers rate the client, once each."
        ),
        request_body=FeedbackSerializer,
        responses={
            201: contract_response,
            400: 'Bad Request',
            403: 'Forbidden',
            404: 'Not Found',
            409: 'Not completed or already submitted'
        }
    )
    def post(self, request, pk):
        serializer = FeedbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        contract = submit_feedback(
            pk, request.user, serializer.validated_data['rating'], serializer.validated_data['comment']
        )
        return success_response(
            'Feedback submitted successfully', 'FEEDBACK_SUBMITTED',
            ContractSerializer(contract).data, status_code=status.HTTP_201_CREATED,
        )
