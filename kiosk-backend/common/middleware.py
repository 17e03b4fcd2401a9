# common/middleware.py
from django.conf import settings
from django.http import HttpResponse


ALLOWED_METHODS = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization"


def _allowed_origin(request):
    configured = getattr(settings, "CORS_ALLOWED_ORIGIN", "*") or "*"
    origin = request.headers.get("Origin")
    if configured == "*":
        return origin or "*"
    if origin and origin == configured:
        return origin
    return None


class CorsMiddleware:
    """
    Answers CORS preflight requests and stamps CORS headers on every response
    so the single-page frontend can talk to the API from another origin.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        origin = _allowed_origin(request)

        if request.method == "OPTIONS" and request.headers.get("Access-Control-Request-Method"):
            response = HttpResponse()
            if origin:
                response["Access-Control-Allow-Origin"] = origin
                response["Access-Control-Allow-Credentials"] = "true"
            response["Access-Control-Allow-Methods"] = ALLOWED_METHODS
            response["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
            response["Access-Control-Max-Age"] = "86400"
            return response

        response = self.get_response(request)

        if origin:
            response["Access-Control-Allow-Origin"] = origin
            response["Access-Control-Allow-Credentials"] = "true"
            response["Access-Control-Expose-Headers"] = "Content-Disposition"
        return response
