from django.urls import path
from .views import UserRatingStatsView

urlpatterns = [
    # Rating Statistics
    path('ratings/', UserRatingStatsView.as_view(), name='user_ratings'),
    path('<int:user_id>/ratings/', UserRatingStatsView.as_view(), name='user_ratings_by_id'),
]
