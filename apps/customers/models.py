from django.db import models
from django.core.validators import RegexValidator

from apps.core.models import TimestampedModel

phone_validator = RegexValidator(
    regex=r'^\+?[\d\s\-]{7,20}$',
    message="Phone number must contain 7 to 20 digits, spaces or dashes",
)


class Company(TimestampedModel):
    """Organisation policy holder"""

    company_name = models.CharField(max_length=255, db_index=True)
    company_email = models.EmailField(blank=True)
    contact_number = models.CharField(max_length=20, blank=True, validators=[phone_validator])
    owner_name = models.CharField(max_length=255, blank=True)
    gst_number = models.CharField(max_length=20, blank=True)
    pan_number = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)

    class Meta:
        db_table = 'companies'
        ordering = ['company_name']
        verbose_name_plural = 'companies'

    def __str__(self):
        return self.company_name

    @property
    def contact_name(self):
        return self.company_name

    @property
    def contact_email(self):
        return self.company_email

    @property
    def contact_phone(self):
        return self.contact_number


class Consumer(TimestampedModel):
    """Individual policy holder"""

    name = models.CharField(max_length=255, db_index=True)
    email = models.EmailField(blank=True)
    phone_number = models.CharField(max_length=20, blank=True, validators=[phone_validator])
    contact_address = models.TextField(blank=True)
    date_of_birth = models.DateField(null=True, blank=True)

    class Meta:
        db_table = 'consumers'
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def contact_name(self):
        return self.name

    @property
    def contact_email(self):
        return self.email

    @property
    def contact_phone(self):
        return self.phone_number
