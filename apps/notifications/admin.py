from django.contrib import admin
from .models import ReminderLog


@admin.register(ReminderLog)
class ReminderLogAdmin(admin.ModelAdmin):
    list_display = ('id', 'policy_type', 'policy_id', 'reminder_number', 'status',
                    'days_until_expiry', 'client_email', 'sent_at')
    list_filter = ('policy_type', 'status', 'channel', 'sent_on')
    search_fields = ('client_name', 'client_email', 'email_subject')
    date_hierarchy = 'sent_at'

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in ReminderLog._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
