from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status, permissions
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from django.contrib.auth import get_user_model
from core.exceptions import NotFound

User = get_user_model()


class UserNotFound(NotFound):
    code = 'USER_NOT_FOUND'
    default_message = 'User not found'


class UserRatingStatsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Get rating statistics for a user (worker or client).",
        responses={
            200: openapi.Response(
                description='Rating statistics',
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'average_rating': openapi.Schema(type=openapi.TYPE_NUMBER),
                        'total_ratings': openapi.Schema(type=openapi.TYPE_INTEGER),
                        'rating_breakdown': openapi.Schema(
                            type=openapi.TYPE_OBJECT,
                            properties={
                                '5_star': openapi.Schema(type=openapi.TYPE_NUMBER),
                                '4_star': openapi.Schema(type=openapi.TYPE_NUMBER),
                                '3_star': openapi.Schema(type=openapi.TYPE_NUMBER),
                                '2_star': openapi.Schema(type=openapi.TYPE_NUMBER),
                                '1_star': openapi.Schema(type=openapi.TYPE_NUMBER),
                            }
                        )
                    }
                )
            ),
            401: 'Unauthorized',
            404: 'Not Found'
        }
    )
    def get(self, request, user_id=None):
        # If no user_id provided, return stats for the authenticated user
        if user_id is None:
            user = request.user
        else:
            try:
                user = User.objects.get(id=user_id)
            except User.DoesNotExist:
                raise UserNotFound()

        return Response({
            'success': True,
            'message': 'Rating statistics retrieved successfully',
            'code': 'RATING_STATS_RETRIEVED',
            'data': user.get_rating_stats(),
        }, status=status.HTTP_200_OK)
