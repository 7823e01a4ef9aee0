"""
WSGI middleware letting HTML forms issue PATCH/PUT/DELETE.

A POST is re-dispatched as the method named by the '_method' query
parameter or the X-HTTP-Method-Override header.
"""
from urllib.parse import parse_qs

ALLOWED_METHODS = frozenset(['PATCH', 'PUT', 'DELETE'])


class MethodOverrideMiddleware:
    """Rewrite REQUEST_METHOD for overridden POST requests."""

    def __init__(self, app, param_name: str = '_method'):
        self.app = app
        self.param_name = param_name

    def __call__(self, environ, start_response):
        if environ.get('REQUEST_METHOD', '').upper() == 'POST':
            method = environ.get('HTTP_X_HTTP_METHOD_OVERRIDE', '')
            if not method:
                query = parse_qs(environ.get('QUERY_STRING', ''))
                method = (query.get(self.param_name) or [''])[0]
            method = method.upper()
            if method in ALLOWED_METHODS:
                environ['REQUEST_METHOD'] = method
        return self.app(environ, start_response)
