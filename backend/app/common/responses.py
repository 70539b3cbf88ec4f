# app/common/responses.py
from rest_framework.response import Response


def ok(data=None, **extra):
    body = {"success": True, "data": data, "error": None}
    body.update(extra)
    return Response(body)


def fail(code: str, message: str, http_status: int = 400):
    return Response(
        {"success": False, "data": None, "error": {"code": code, "message": message}},
        status=http_status,
    )
