import time
import logging
import json
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = ['password', 'token', 'secret', 'key']


class RequestLoggingMiddleware(MiddlewareMixin):
    def process_request(self, request):
        request.start_time = time.time()
        return None

    def process_response(self, request, response):
        """Log API request details"""
        if not request.path.startswith('/api/'):
            return response

        duration = time.time() - getattr(request, 'start_time', time.time())
        user = getattr(request, 'user', None)

        log_data = {
            'method': request.method,
            'path': request.path,
            'status_code': response.status_code,
            'duration': round(duration, 3),
            'user': user.get_username() if user is not None and user.is_authenticated else None,
            'ip_address': self.get_client_ip(request),
        }

        if request.method in ['POST', 'PUT', 'PATCH'] and 'multipart/form-data' not in (request.content_type or ''):
            body = self.get_request_body(request)
            if body is not None:
                log_data['request_body'] = body

        if response.status_code >= 500:
            logger.error(f"API Request: {json.dumps(log_data, default=str)}")
        else:
            logger.info(f"API Request: {json.dumps(log_data, default=str)}")
        return response

    def get_request_body(self, request):
        raw = getattr(request, '_body', None)
        if not raw:
            return None
        try:
            body = json.loads(raw.decode('utf-8'))
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        if isinstance(body, dict):
            for field in SENSITIVE_FIELDS:
                if field in body:
                    body[field] = '***REDACTED***'
        return body

    def get_client_ip(self, request):
        """Get the client's IP address"""
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0]
        return request.META.get('REMOTE_ADDR')
