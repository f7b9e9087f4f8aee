from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import RenewalConfigViewSet

router = DefaultRouter()
router.register(r'configs', RenewalConfigViewSet, basename='renewalconfig')

urlpatterns = [
    path('', include(router.urls)),
]
