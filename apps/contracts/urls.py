from django.urls import path
from .views import (
    ContractListView, ContractDetailView, ContractStartView, ContractCompleteView,
    ContractConfirmView, ContractCancelView, ContractFeedbackView,
)

urlpatterns = [
    path('', ContractListView.as_view(), name='contract_list'),
    path('<int:pk>/', ContractDetailView.as_view(), name='contract_detail'),
    path('<int:pk>/start/', ContractStartView.as_view(), name='contract_start'),
    path('<int:pk>/complete/', ContractCompleteView.as_view(), name='contract_complete'),
    path('<int:pk>/confirm-completion/', ContractConfirmView.as_view(), name='contract_confirm'),
    path('<int:pk>/cancel/', ContractCancelView.as_view(), name='contract_cancel'),
    path('<int:pk>/feedback/', ContractFeedbackView.as_view(), name='contract_feedback'),
]
