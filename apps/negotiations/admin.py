from django.contrib import admin
from .models import NegotiationRecord

@admin.register(NegotiationRecord)
class NegotiationRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'kind', 'job', 'client', 'worker', 'proposed_rate', 'status', 'client_agreed', 'worker_agreed', 'contract')
    list_filter = ('kind', 'status')
    search_fields = ('job__title', 'client__username', 'worker__user__username')
    readonly_fields = ('contract', 'client_agreed', 'worker_agreed', 'created_at', 'updated_at', 'agreement_completed_at')
