from django.apps import AppConfig


class RenewalSettingsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.renewal_settings'
    verbose_name = 'Renewal Reminder Settings'
