from .context import get_app_context


class AppContextMiddleware:
    """Attaches the process-wide AppContext to every request as `request.app_context`."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.app_context = get_app_context()
        return self.get_response(request)
