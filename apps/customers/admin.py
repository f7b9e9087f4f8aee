from django.contrib import admin
from .models import Company, Consumer


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ('id', 'company_name', 'company_email', 'contact_number', 'gst_number')
    search_fields = ('company_name', 'company_email', 'gst_number', 'pan_number')


@admin.register(Consumer)
class ConsumerAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'email', 'phone_number')
    search_fields = ('name', 'email', 'phone_number')
