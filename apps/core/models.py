from django.db import models


class TimestampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        abstract = True


class AppendOnlyModel(models.Model):
    """
    Rows are written once and never changed or removed through the ORM.
    Used for history tables: policy archives, reminder logs and the audit trail.
    """

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise TypeError(f"{type(self).__name__} rows are immutable once created")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise TypeError(f"{type(self).__name__} rows cannot be deleted")


class AuditLog(AppendOnlyModel):
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('renew', 'Renew'),
        ('cancel', 'Cancel'),
        ('send', 'Send'),
    ]

    action = models.CharField(max_length=20, choices=ACTION_CHOICES, db_index=True)
    model_name = models.CharField(max_length=100, db_index=True)
    object_id = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    object_repr = models.TextField(null=True, blank=True)
    actor = models.CharField(max_length=150, blank=True, help_text="Username or job that performed the action")
    changes = models.JSONField(default=dict, blank=True)
    additional_data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['model_name', 'object_id']),
            models.Index(fields=['action', 'created_at']),
        ]

    def __str__(self):
        return f"{self.actor or 'system'} {self.action} {self.model_name}#{self.object_id} at {self.created_at}"
