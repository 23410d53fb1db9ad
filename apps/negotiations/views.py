from rest_framework.views import APIView
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.throttling import ScopedRateThrottle
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from core.constants import ROLE_CLIENT, ROLE_WORKER
from core.pagination import StandardPagination
from core.utils import IsClient, IsWorker, success_response
from apps.contracts.serializers import ContractSerializer
from . import store
from .agreement import set_agreement, respond
from .serializers import (
    NegotiationRecordSerializer, AgreementStatusSerializer, ApplicationCreateSerializer,
    InvitationCreateSerializer, RespondSerializer, AgreementSerializer, NegotiationQuerySerializer,
)

envelope_response = openapi.Response(
    description='Negotiation envelope',
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


def agreement_payload(result):
    return {
        'negotiation': NegotiationRecordSerializer(result.record).data,
        'contract': ContractSerializer(result.contract).data if result.contract is not None else None,
        'contract_created': result.contract_created,
    }


class ApplicationCreateView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'negotiations'

    @swagger_auto_schema(
        operation_description="Worker applies to an open job with a message (20+ characters) and a proposed rate.",
        request_body=ApplicationCreateSerializer,
        responses={201: envelope_response, 400: 'Bad Request', 403: 'Forbidden', 404: 'Job not found'}
    )
    def post(self, request):
        serializer = ApplicationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        record = store.create_record(
            ROLE_WORKER, request.user, data['job_id'], data['message'], data['proposed_rate'],
        )
        return success_response(
            'Application submitted successfully', 'APPLICATION_CREATED',
            NegotiationRecordSerializer(record).data, status_code=status.HTTP_201_CREATED,
        )


class InvitationCreateView(APIView):
    permission_classes = [IsAuthenticated, IsClient]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'negotiations'

    @swagger_auto_schema(
        operation_description="Client invites a worker to one of their open jobs.",
        request_body=InvitationCreateSerializer,
        responses={201: envelope_response, 400: 'Bad Request', 403: 'Forbidden', 404: 'Job or worker not found'}
    )
    def post(self, request):
        serializer = InvitationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        record = store.create_record(
            ROLE_CLIENT, request.user, data['job_id'], data['message'], data['proposed_rate'],
            worker_id=data['worker_id'],
        )
        return success_response(
            'Invitation sent successfully', 'INVITATION_CREATED',
            NegotiationRecordSerializer(record).data, status_code=status.HTTP_201_CREATED,
        )


class NegotiationListView(APIView):
    permission_classes = [IsAuthenticated]
    pagination_class = StandardPagination

    @swagger_auto_schema(
        operation_description="List applications and invitations the authenticated user is a party to.",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('kind', openapi.IN_QUERY, type=openapi.TYPE_STRING, enum=['application', 'invitation']),
            openapi.Parameter('job', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('ordering', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
        ],
        responses={200: NegotiationRecordSerializer(many=True), 400: 'Bad Request', 401: 'Unauthorized'}
    )
    def get(self, request):
        query = NegotiationQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        filters = query.validated_data

        records = store.records_for_user(request.user)
        if filters.get('status'):
            records = records.filter(status=filters['status'])
        if filters.get('kind'):
            records = records.filter(kind=filters['kind'])
        if filters.get('job'):
            records = records.filter(job_id=filters['job'])
        records = records.order_by(filters['ordering'], '-id')

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(records, request, view=self)
        serializer = NegotiationRecordSerializer(page, many=True)
        return paginator.get_paginated_response(
            serializer.data, message='Negotiations retrieved successfully', code='NEGOTIATIONS_RETRIEVED'
        )


class NegotiationDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Fetch a single application or invitation.",
        responses={200: envelope_response, 403: 'Forbidden', 404: 'Not Found'}
    )
    def get(self, request, pk):
        record = store.get_record_for(pk, request.user)
        return success_response(
            'Negotiation retrieved successfully', 'NEGOTIATION_RETRIEVED', NegotiationRecordSerializer(record).data
        )


class AgreementStatusView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description=(
            "Authoritative agreement state of a negotiation: status, both flags, the contract id "
            "once it exists and whether the record is terminal. Safe to poll."
        ),
        responses={200: AgreementStatusSerializer, 403: 'Forbidden', 404: 'Not Found'}
    )
    def get(self, request, pk):
        record = store.get_record_for(pk, request.user)
        return success_response(
            'Agreement status retrieved successfully', 'AGREEMENT_STATUS_RETRIEVED',
            AgreementStatusSerializer(record).data,
        )


class RespondView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'agreements'

    @swagger_auto_schema(
        operation_description=(
            "The receiving party accepts or rejects a pending application or invitation. "
            "Accepting creates the contract."
        ),
        request_body=RespondSerializer,
        responses={200: envelope_response, 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found', 409: 'Invalid transition'}
    )
    def post(self, request, pk):
        serializer = RespondSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        action = serializer.validated_data['action']
        result = respond(pk, request.user, action)
        if action == 'accept':
            message, code = 'Accepted, contract created', 'NEGOTIATION_ACCEPTED'
        else:
            message, code = 'Rejected successfully', 'NEGOTIATION_REJECTED'
        return success_response(message, code, agreement_payload(result))


class StartDiscussionView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'agreements'

    @swagger_auto_schema(
        operation_description="Move a pending negotiation into discussion. Repeating the call is harmless.",
        request_body=openapi.Schema(type=openapi.TYPE_OBJECT, properties={}),
        responses={200: envelope_response, 403: 'Forbidden', 404: 'Not Found', 409: 'Invalid transition'}
    )
    def post(self, request, pk):
        record = store.start_discussion(pk, request.user)
        return success_response(
            'Discussion started', 'DISCUSSION_STARTED', NegotiationRecordSerializer(record).data
        )


class AgreementView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'agreements'

    @swagger_auto_schema(
        operation_description=(
            "Set or clear your agreement to the negotiated terms. When both parties have agreed "
            "the contract is created; every caller receives the same contract."
        ),
        request_body=AgreementSerializer,
        responses={200: envelope_response, 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found', 409: 'Invalid transition'}
    )
    def post(self, request, pk):
        serializer = AgreementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = set_agreement(pk, request.user, serializer.validated_data['agreed'])
        if result.contract_created:
            message, code = 'Both parties agreed, contract created', 'CONTRACT_CREATED'
        elif result.contract is not None:
            message, code = 'Both parties agreed, contract already exists', 'CONTRACT_EXISTS'
        else:
            message, code = 'Agreement updated', 'AGREEMENT_UPDATED'
        return success_response(message, code, agreement_payload(result))


class CancelNegotiationView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'agreements'

    @swagger_auto_schema(
        operation_description="The party who opened the negotiation withdraws it before a contract exists.",
        request_body=openapi.Schema(type=openapi.TYPE_OBJECT, properties={}),
        responses={200: envelope_response, 403: 'Forbidden', 404: 'Not Found', 409: 'Invalid transition'}
    )
    def post(self, request, pk):
        record = store.cancel_record(pk, request.user)
        return success_response(
            'Negotiation withdrawn', 'NEGOTIATION_CANCELLED', NegotiationRecordSerializer(record).data
        )
