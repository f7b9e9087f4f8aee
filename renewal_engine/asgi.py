"""
ASGI config for the insurance renewal lifecycle engine.

It exposes the ASGI callable as a module-level variable named ``application``.
"""

import os
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'renewal_engine.settings.development')

application = get_asgi_application()
