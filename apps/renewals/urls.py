from django.urls import path
from .views import (
    RenewPolicyView,
    CancelPolicyView,
    PolicyLineageView,
    SendReminderView,
    RenewalPeriodListView,
    EligiblePoliciesView,
    RenewalCountsView,
    RunRemindersView,
    ReminderLogListView,
)

urlpatterns = [
    # Dashboard
    path('counts/', RenewalCountsView.as_view(), name='renewal-counts'),

    # Reminder job
    path('reminders/run/', RunRemindersView.as_view(), name='renewal-reminders-run'),
    path('reminders/logs/', ReminderLogListView.as_view(), name='renewal-reminder-logs'),

    # Per policy type
    path('<str:policy_type>/eligible/', EligiblePoliciesView.as_view(), name='renewal-eligible'),
    path('<str:policy_type>/period/<str:period>/', RenewalPeriodListView.as_view(), name='renewal-period-list'),
    path('<str:policy_type>/<int:policy_id>/renew/', RenewPolicyView.as_view(), name='policy-renew'),
    path('<str:policy_type>/<int:policy_id>/cancel/', CancelPolicyView.as_view(), name='policy-cancel'),
    path('<str:policy_type>/<int:policy_id>/lineage/', PolicyLineageView.as_view(), name='policy-lineage'),
    path('<str:policy_type>/<int:policy_id>/remind/', SendReminderView.as_view(), name='policy-remind'),
]
