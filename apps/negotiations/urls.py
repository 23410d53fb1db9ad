from django.urls import path
from .views import (
    ApplicationCreateView, InvitationCreateView, NegotiationListView, NegotiationDetailView,
    AgreementStatusView, RespondView, StartDiscussionView, AgreementView, CancelNegotiationView,
)

urlpatterns = [
    path('', NegotiationListView.as_view(), name='negotiation_list'),
    path('applications/', ApplicationCreateView.as_view(), name='application_create'),
    path('invitations/', InvitationCreateView.as_view(), name='invitation_create'),
    path('<int:pk>/', NegotiationDetailView.as_view(), name='negotiation_detail'),
    path('<int:pk>/agreement-status/', AgreementStatusView.as_view(), name='negotiation_agreement_status'),
    path('<int:pk>/respond/', RespondView.as_view(), name='negotiation_respond'),
    path('<int:pk>/start-discussion/', StartDiscussionView.as_view(), name='negotiation_start_discussion'),
    path('<int:pk>/agreement/', AgreementView.as_view(), name='negotiation_agreement'),
    path('<int:pk>/cancel/', CancelNegotiationView.as_view(), name='negotiation_cancel'),
]
