"""Error body helpers shared by API views."""

from rest_framework.response import Response


def error_response(exc) -> Response:
    """Render a domain error as ``{"detail": ...}`` using its ``status_code``."""

    return Response({"detail": str(exc)}, status=getattr(exc, "status_code", 400))


def not_found(detail: str = "Not found.") -> Response:
    return Response({"detail": detail}, status=404)
