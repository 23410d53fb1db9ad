from django.contrib import admin
from .models import Contract

@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = ('id', 'job', 'client', 'worker', 'contract_type', 'agreed_rate', 'contract_status', 'created_at')
    list_filter = ('contract_status', 'contract_type')
    search_fields = ('job__title', 'client__username', 'worker__user__username')
    readonly_fields = ('created_at', 'updated_at', 'client_rating', 'worker_rating', 'feedback_completed_at')
