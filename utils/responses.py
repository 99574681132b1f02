from rest_framework import status
from rest_framework.response import Response


def success_response(data=None, message=None, meta=None, status_code=status.HTTP_200_OK):
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if meta:
        body["meta"] = meta
    return Response(body, status=status_code)
