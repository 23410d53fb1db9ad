from django.contrib import admin
from .models import Category, Job

@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name',)
    search_fields = ('name',)

@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ('title', 'client', 'status', 'assigned_worker', 'created_at')
    list_filter = ('status',)
    search_fields = ('title', 'client__username')
