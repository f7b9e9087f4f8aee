from django.contrib import admin

from .registry import POLICY_KINDS


class PolicyAdmin(admin.ModelAdmin):
    list_display = ('policy_number', 'proposer_name', 'customer_type', 'business_type',
                    'policy_end_date', 'gross_premium', 'status')
    list_filter = ('status', 'business_type', 'customer_type')
    search_fields = ('policy_number', 'proposer_name', 'email', 'mobile_number')
    date_hierarchy = 'policy_end_date'
    raw_id_fields = ('company', 'consumer', 'previous_policy')


class ArchivedPolicyAdmin(admin.ModelAdmin):
    list_display = ('policy_number', 'original_policy_id', 'previous_policy_id',
                    'policy_end_date', 'renewed_at', 'status')
    search_fields = ('policy_number',)
    date_hierarchy = 'renewed_at'

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


for kind in POLICY_KINDS.values():
    admin.site.register(kind.model, PolicyAdmin)
    admin.site.register(kind.archive_model, ArchivedPolicyAdmin)
