from rest_framework import serializers

from apps.renewals.expiry import days_until_expiry


class PolicyRecordSerializer(serializers.ModelSerializer):
    """Read representation shared by every live and archived policy table"""

    holder_name = serializers.SerializerMethodField()
    days_until_expiry = serializers.SerializerMethodField()

    class Meta:
        fields = '__all__'

    def get_holder_name(self, obj):
        holder = obj.holder
        return str(holder) if holder is not None else obj.proposer_name

    def get_days_until_expiry(self, obj):
        return days_until_expiry(obj.policy_end_date)


_serializer_cache = {}


def serializer_for(model):
    """Return (and cache) a read serializer class for a policy or archive model."""
    if model not in _serializer_cache:
        meta = type('Meta', (PolicyRecordSerializer.Meta,), {'model': model})
        _serializer_cache[model] = type(
            f'{model.__name__}Serializer', (PolicyRecordSerializer,), {'Meta': meta}
        )
    return _serializer_cache[model]
