from django.db import connection
from drf_spectacular.utils import OpenApiExample, extend_schema
from rest_framework.decorators import api_view, throttle_classes
from rest_framework.response import Response


@extend_schema(
    tags=["Health Endpoint"],
    summary="Health check",
    description="Reports process liveness and database reachability.",
    examples=[OpenApiExample("Healthy", value={"status": "ok", "database": "ok"})],
)
@api_view(["GET"])
@throttle_classes([])
def health(request):
    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()
    return Response({"status": "ok", "database": "ok"})
