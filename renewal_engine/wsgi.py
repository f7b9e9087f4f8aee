"""
WSGI config for the insurance renewal lifecycle engine.

It exposes the WSGI callable as a module-level variable named ``application``.
"""

import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'renewal_engine.settings.development')

application = get_wsgi_application()
