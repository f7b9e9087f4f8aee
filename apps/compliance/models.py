from django.db import models
from django.utils import timezone

from apps.core.models import TimestampedModel
from apps.customers.models import Company, Consumer


class DigitalSignatureCertificate(TimestampedModel):
    """DSC token held on behalf of a client; tracked for expiry reminders only"""

    CUSTODY_CHOICES = [
        ('in', 'In office'),
        ('out', 'With client'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, null=True, blank=True, related_name='certificates')
    consumer = models.ForeignKey(Consumer, on_delete=models.CASCADE, null=True, blank=True, related_name='certificates')
    certification_name = models.CharField(max_length=255)
    expiry_date = models.DateField(db_index=True)
    status = models.CharField(max_length=5, choices=CUSTODY_CHOICES, default='in')
    remarks = models.TextField(blank=True)

    class Meta:
        db_table = 'digital_signature_certificates'
        ordering = ['expiry_date']

    def __str__(self):
        return f"{self.certification_name} (expires {self.expiry_date})"

    @property
    def holder(self):
        return self.company or self.consumer


class LabourLicense(TimestampedModel):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('expired', 'Expired'),
        ('suspended', 'Suspended'),
        ('renewed', 'Renewed'),
    ]

    LICENSE_TYPE_CHOICES = [
        ('Central', 'Central'),
        ('State', 'State'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='labour_licenses')
    license_number = models.CharField(max_length=100, unique=True)
    license_type = models.CharField(max_length=10, choices=LICENSE_TYPE_CHOICES, default='State')
    expiry_date = models.DateField(db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_index=True)

    class Meta:
        db_table = 'labour_licenses'
        ordering = ['expiry_date']

    def __str__(self):
        return f"{self.license_number} ({self.license_type})"

    @property
    def holder(self):
        return self.company

    def save(self, *args, **kwargs):
        # Keep status in step with the expiry date
        if self.expiry_date:
            today = timezone.localdate()
            if self.expiry_date < today:
                self.status = 'expired'
            elif self.status == 'expired' and self.expiry_date > today:
                self.status = 'active'
        super().save(*args, **kwargs)
