from decimal import Decimal

from django.db import models
from django.core.validators import MinValueValidator

from apps.core.models import AppendOnlyModel
from apps.customers.models import Company, Consumer
from apps.renewals.expiry import derive_end_date

BUSINESS_TYPE_FRESH = 'Fresh/New'
BUSINESS_TYPE_RENEWAL = 'Renewal/Rollover'
BUSINESS_TYPE_ENDORSEMENT = 'Endorsement'

BUSINESS_TYPE_CHOICES = [
    (BUSINESS_TYPE_FRESH, 'Fresh/New'),
    (BUSINESS_TYPE_RENEWAL, 'Renewal/Rollover'),
    (BUSINESS_TYPE_ENDORSEMENT, 'Endorsement'),
]

CUSTOMER_TYPE_ORGANISATION = 'Organisation'
CUSTOMER_TYPE_INDIVIDUAL = 'Individual'

CUSTOMER_TYPE_CHOICES = [
    (CUSTOMER_TYPE_ORGANISATION, 'Organisation'),
    (CUSTOMER_TYPE_INDIVIDUAL, 'Individual'),
]

STATUS_ACTIVE = 'active'
STATUS_EXPIRED = 'expired'
STATUS_CANCELLED = 'cancelled'

POLICY_STATUS_CHOICES = [
    (STATUS_ACTIVE, 'Active'),
    (STATUS_EXPIRED, 'Expired'),
    (STATUS_CANCELLED, 'Cancelled'),
]

money = dict(max_digits=14, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])


class PolicyRecord(models.Model):
    """Fields shared by live policies and their archived snapshots"""

    business_type = models.CharField(max_length=20, choices=BUSINESS_TYPE_CHOICES, default=BUSINESS_TYPE_FRESH)
    customer_type = models.CharField(max_length=20, choices=CUSTOMER_TYPE_CHOICES)
    company = models.ForeignKey(
        Company, on_delete=models.PROTECT, null=True, blank=True,
        related_name='%(class)s_set',
    )
    consumer = models.ForeignKey(
        Consumer, on_delete=models.PROTECT, null=True, blank=True,
        related_name='%(class)s_set',
    )
    insurer_name = models.CharField(max_length=255, blank=True)
    proposer_name = models.CharField(max_length=255, blank=True)
    policy_number = models.CharField(max_length=100, db_index=True)
    email = models.EmailField(blank=True)
    mobile_number = models.CharField(max_length=20, blank=True)
    policy_start_date = models.DateField()
    policy_end_date = models.DateField(db_index=True)
    net_premium = models.DecimalField(**money)
    gst = models.DecimalField(**money)
    gross_premium = models.DecimalField(**money)
    policy_document_path = models.CharField(max_length=500, blank=True)
    remarks = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=POLICY_STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def __str__(self):
        return f"{self.policy_number} ({self.get_status_display()})"

    @property
    def holder(self):
        return self.company or self.consumer

    @property
    def is_active(self):
        return self.status == STATUS_ACTIVE


class InsurancePolicy(PolicyRecord):
    policy_number = models.CharField(max_length=100, unique=True)

    class Meta:
        abstract = True
        ordering = ['policy_end_date', 'id']


class ArchivedPolicy(AppendOnlyModel, PolicyRecord):
    """
    Frozen copy of a policy as it stood when it was renewed.

    `previous_policy_id` carries the snapshot's own predecessor so a chain of
    renewals can be walked back without touching the live table.
    """

    original_policy_id = models.BigIntegerField(db_index=True)
    previous_policy_id = models.BigIntegerField(null=True, blank=True)
    renewed_at = models.DateTimeField()

    class Meta:
        abstract = True
        ordering = ['-renewed_at', '-id']


# Line-of-business fields


class FireFields(models.Model):
    total_sum_insured = models.DecimalField(max_digits=16, decimal_places=2, null=True, blank=True)
    gst_number = models.CharField(max_length=20, blank=True)
    pan_number = models.CharField(max_length=20, blank=True)

    class Meta:
        abstract = True


class HealthFields(models.Model):
    plan_name = models.CharField(max_length=255, blank=True)
    medical_cover = models.DecimalField(max_digits=16, decimal_places=2, null=True, blank=True)

    class Meta:
        abstract = True


class LifeFields(models.Model):
    plan_name = models.CharField(max_length=255, blank=True)
    sub_product = models.CharField(max_length=100, blank=True)
    sum_assured = models.DecimalField(max_digits=16, decimal_places=2, null=True, blank=True)
    term_years = models.PositiveIntegerField(null=True, blank=True, help_text="Premium paying term (ppt) in years")
    date_of_birth = models.DateField(null=True, blank=True)

    class Meta:
        abstract = True


class VehicleFields(models.Model):
    vehicle_number = models.CharField(max_length=20, db_index=True)
    sub_product = models.CharField(max_length=100, blank=True)
    manufacturing_company = models.CharField(max_length=100, blank=True)
    model = models.CharField(max_length=100, blank=True)
    manufacturing_year = models.PositiveIntegerField(null=True, blank=True)
    idv = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    class Meta:
        abstract = True


class EmployeeCompensationFields(models.Model):
    medical_cover = models.DecimalField(max_digits=16, decimal_places=2, null=True, blank=True)
    number_of_employees = models.PositiveIntegerField(null=True, blank=True)
    gst_number = models.CharField(max_length=20, blank=True)
    pan_number = models.CharField(max_length=20, blank=True)

    class Meta:
        abstract = True


# Archives


class PreviousFirePolicy(ArchivedPolicy, FireFields):
    class Meta(ArchivedPolicy.Meta):
        db_table = 'previous_fire_policies'


class PreviousHealthPolicy(ArchivedPolicy, HealthFields):
    class Meta(ArchivedPolicy.Meta):
        db_table = 'previous_health_policies'


class PreviousLifePolicy(ArchivedPolicy, LifeFields):
    class Meta(ArchivedPolicy.Meta):
        db_table = 'previous_life_policies'


class PreviousVehiclePolicy(ArchivedPolicy, VehicleFields):
    class Meta(ArchivedPolicy.Meta):
        db_table = 'previous_vehicle_policies'


class PreviousEmployeeCompensationPolicy(ArchivedPolicy, EmployeeCompensationFields):
    class Meta(ArchivedPolicy.Meta):
        db_table = 'previous_employee_compensation_policies'


# Live policies


class FirePolicy(InsurancePolicy, FireFields):
    previous_policy = models.ForeignKey(
        PreviousFirePolicy, on_delete=models.PROTECT, null=True, blank=True,
        related_name='renewals',
    )

    class Meta(InsurancePolicy.Meta):
        db_table = 'fire_policies'


class HealthPolicy(InsurancePolicy, HealthFields):
    previous_policy = models.ForeignKey(
        PreviousHealthPolicy, on_delete=models.PROTECT, null=True, blank=True,
        related_name='renewals',
    )

    class Meta(InsurancePolicy.Meta):
        db_table = 'health_policies'


class LifePolicy(InsurancePolicy, LifeFields):
    previous_policy = models.ForeignKey(
        PreviousLifePolicy, on_delete=models.PROTECT, null=True, blank=True,
        related_name='renewals',
    )

    class Meta(InsurancePolicy.Meta):
        db_table = 'life_policies'

    def save(self, *args, **kwargs):
        if not self.policy_end_date and self.policy_start_date and self.term_years:
            self.policy_end_date = derive_end_date(self.policy_start_date, self.term_years)
        super().save(*args, **kwargs)


class VehiclePolicy(InsurancePolicy, VehicleFields):
    previous_policy = models.ForeignKey(
        PreviousVehiclePolicy, on_delete=models.PROTECT, null=True, blank=True,
        related_name='renewals',
    )

    class Meta(InsurancePolicy.Meta):
        db_table = 'vehicle_policies'


class EmployeeCompensationPolicy(InsurancePolicy, EmployeeCompensationFields):
    previous_policy = models.ForeignKey(
        PreviousEmployeeCompensationPolicy, on_delete=models.PROTECT, null=True, blank=True,
        related_name='renewals',
    )

    class Meta(InsurancePolicy.Meta):
        db_table = 'employee_compensation_policies'
