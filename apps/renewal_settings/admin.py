from django.contrib import admin
from .models import RenewalConfig


@admin.register(RenewalConfig)
class RenewalConfigAdmin(admin.ModelAdmin):
    list_display = [
        'service_type',
        'service_name',
        'reminder_times',
        'reminder_days',
        'cadence_days',
        'is_active',
        'updated_at',
    ]
    list_filter = ['is_active']
    search_fields = ['service_type', 'service_name']

    fieldsets = (
        ('Service', {
            'fields': ('service_type', 'service_name', 'is_active')
        }),
        ('Cadence', {
            'fields': ('reminder_times', 'reminder_days', 'cadence_days'),
            'description': 'Leave cadence days empty to split the window into equal buckets.'
        }),
    )
