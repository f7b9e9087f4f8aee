from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from rest_framework import serializers

from apps.customers.models import Company, Consumer
from apps.policies.models import (
    CUSTOMER_TYPE_CHOICES, CUSTOMER_TYPE_ORGANISATION, CUSTOMER_TYPE_INDIVIDUAL,
)
from .expiry import derive_end_date

PREMIUM_TOLERANCE = Decimal('0.01')


@dataclass(frozen=True)
class OrganisationHolder:
    company_id: int

    customer_type = CUSTOMER_TYPE_ORGANISATION

    def as_fields(self):
        return {'company_id': self.company_id, 'consumer_id': None}


@dataclass(frozen=True)
class IndividualHolder:
    consumer_id: int

    customer_type = CUSTOMER_TYPE_INDIVIDUAL

    def as_fields(self):
        return {'company_id': None, 'consumer_id': self.consumer_id}


def money_field(**kwargs):
    return serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0'), **kwargs)


class RenewalInputSerializer(serializers.Serializer):
    """
    Validates the new term supplied for a renewal. Nothing is written until
    this passes; `validated_data['holder']` carries the resolved holder.
    """

    customer_type = serializers.ChoiceField(choices=CUSTOMER_TYPE_CHOICES)
    company_id = serializers.IntegerField(required=False, allow_null=True)
    consumer_id = serializers.IntegerField(required=False, allow_null=True)
    insurer_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    proposer_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    policy_number = serializers.CharField(max_length=100)
    email = serializers.EmailField(required=False, allow_blank=True, default='')
    mobile_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    policy_start_date = serializers.DateField()
    policy_end_date = serializers.DateField()
    net_premium = money_field()
    gst = money_field()
    gross_premium = money_field()
    remarks = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_policy_number(self, value):
        # The renewed row may keep its own number; any other live row may not
        model = self.context.get('model')
        if model is not None:
            taken = model.objects.filter(policy_number=value).exclude(pk=self.context.get('policy_id'))
            if taken.exists():
                raise serializers.ValidationError(f'Policy number {value} is already used by another live policy')
        return value

    def to_internal_value(self, data):
        # Form posts send blank strings and "undefined" for unselected holders
        if not isinstance(data, Mapping):
            return super().to_internal_value(data)
        data = data.dict() if hasattr(data, 'dict') else dict(data)
        for key in ('company_id', 'consumer_id'):
            if data.get(key) in ('', 'undefined', 'null'):
                data[key] = None
        return super().to_internal_value(data)

    def validate(self, attrs):
        attrs['holder'] = self.validate_holder(attrs)
        attrs.pop('company_id', None)
        attrs.pop('consumer_id', None)
        self.validate_term(attrs)
        self.validate_premiums(attrs)
        return attrs

    def validate_holder(self, attrs):
        customer_type = attrs['customer_type']
        company_id = attrs.get('company_id')
        consumer_id = attrs.get('consumer_id')

        if company_id is None and consumer_id is None:
            raise serializers.ValidationError(
                {'holder': 'Company or Consumer selection is required for policy renewal'}
            )
        if company_id is not None and consumer_id is not None:
            raise serializers.ValidationError(
                {'holder': 'Provide either company_id or consumer_id, not both'}
            )

        if customer_type == CUSTOMER_TYPE_ORGANISATION:
            if company_id is None:
                raise serializers.ValidationError({'company_id': 'Organisation renewals need a company'})
            if not Company.objects.filter(pk=company_id).exists():
                raise serializers.ValidationError({'company_id': f'Company {company_id} does not exist'})
            return OrganisationHolder(company_id=company_id)

        if consumer_id is None:
            raise serializers.ValidationError({'consumer_id': 'Individual renewals need a consumer'})
        if not Consumer.objects.filter(pk=consumer_id).exists():
            raise serializers.ValidationError({'consumer_id': f'Consumer {consumer_id} does not exist'})
        return IndividualHolder(consumer_id=consumer_id)

    def validate_term(self, attrs):
        if attrs['policy_end_date'] <= attrs['policy_start_date']:
            raise serializers.ValidationError({'policy_end_date': 'End date must be after the start date'})

    def validate_premiums(self, attrs):
        expected = attrs['net_premium'] + attrs['gst']
        if abs(attrs['gross_premium'] - expected) > PREMIUM_TOLERANCE:
            raise serializers.ValidationError({
                'gross_premium': f'Gross premium must equal net premium plus GST ({expected})'
            })


class FireRenewalSerializer(RenewalInputSerializer):
    total_sum_insured = serializers.DecimalField(max_digits=16, decimal_places=2, required=False, allow_null=True)
    gst_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    pan_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')


class HealthRenewalSerializer(RenewalInputSerializer):
    plan_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    medical_cover = serializers.DecimalField(max_digits=16, decimal_places=2, required=False, allow_null=True)


class LifeRenewalSerializer(RenewalInputSerializer):
    policy_end_date = serializers.DateField(required=False, allow_null=True)
    plan_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    sub_product = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    sum_assured = serializers.DecimalField(max_digits=16, decimal_places=2, required=False, allow_null=True)
    term_years = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    date_of_birth = serializers.DateField(required=False, allow_null=True)

    def validate_term(self, attrs):
        if not attrs.get('policy_end_date'):
            if not attrs.get('term_years'):
                raise serializers.ValidationError(
                    {'policy_end_date': 'Provide an end date or the premium paying term (term_years)'}
                )
            attrs['policy_end_date'] = derive_end_date(attrs['policy_start_date'], attrs['term_years'])
        super().validate_term(attrs)


class VehicleRenewalSerializer(RenewalInputSerializer):
    vehicle_number = serializers.CharField(max_length=20)
    sub_product = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    manufacturing_company = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    model = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    manufacturing_year = serializers.IntegerField(min_value=1900, required=False, allow_null=True)
    idv = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)


class EmployeeCompensationRenewalSerializer(RenewalInputSerializer):
    medical_cover = serializers.DecimalField(max_digits=16, decimal_places=2, required=False, allow_null=True)
    number_of_employees = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    gst_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    pan_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')


RENEWAL_SERIALIZERS = {
    'fire': FireRenewalSerializer,
    'health': HealthRenewalSerializer,
    'life': LifeRenewalSerializer,
    'vehicle': VehicleRenewalSerializer,
    'ecp': EmployeeCompensationRenewalSerializer,
}


class CancelPolicySerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ReminderRunSerializer(serializers.Serializer):
    service_types = serializers.ListField(child=serializers.CharField(), required=False, allow_empty=True)
    dry_run = serializers.BooleanField(required=False, default=False)
