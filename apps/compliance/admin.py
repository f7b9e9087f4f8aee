from django.contrib import admin
from .models import DigitalSignatureCertificate, LabourLicense


@admin.register(DigitalSignatureCertificate)
class DigitalSignatureCertificateAdmin(admin.ModelAdmin):
    list_display = ('id', 'certification_name', 'company', 'consumer', 'expiry_date', 'status')
    search_fields = ('certification_name', 'company__company_name', 'consumer__name')
    list_filter = ('status',)


@admin.register(LabourLicense)
class LabourLicenseAdmin(admin.ModelAdmin):
    list_display = ('id', 'license_number', 'company', 'license_type', 'expiry_date', 'status')
    search_fields = ('license_number', 'company__company_name')
    list_filter = ('license_type', 'status')
