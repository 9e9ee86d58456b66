# backend/tasks/exceptions.py
import logging

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class TaskError(Exception):
    """Base error for task operations, carries the HTTP status it maps to."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Task operation failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"success": False, "message": self.message}


class ValidationError(TaskError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid task data"


class NotFoundError(TaskError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Task not found"

    def __init__(self, task_id=None, message=None):
        self.task_id = task_id
        super().__init__(message)


class StorageError(TaskError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Task storage is unavailable"


def _flatten_detail(detail):
    # DRF error details are str / list / dict of those
    if isinstance(detail, dict):
        for field, value in detail.items():
            msg = _flatten_detail(value)
            if field == "non_field_errors":
                return msg
            return f"{field}: {msg}"
        return ""
    if isinstance(detail, list):
        return _flatten_detail(detail[0]) if detail else ""
    return str(detail)


def task_exception_handler(exc, context):
    """
    DRF EXCEPTION_HANDLER: every failure leaves the API as
    {"success": false, "message": ...} with the matching status code.
    """
    view = context.get("view") if context else None
    view_name = view.__class__.__name__ if view is not None else "-"

    if isinstance(exc, StorageError):
        logger.error("Storage error in %s: %s", view_name, exc.message)
        return Response(exc.to_dict(), status=exc.status_code)

    if isinstance(exc, TaskError):
        logger.warning("%s in %s: %s", exc.__class__.__name__, view_name, exc.message)
        return Response(exc.to_dict(), status=exc.status_code)

    if isinstance(exc, Http404):
        exc = NotFound()

    if isinstance(exc, APIException):
        body = {"success": False, "message": _flatten_detail(exc.detail)}
        if isinstance(exc.detail, dict):
            body["errors"] = exc.detail
        return Response(body, status=exc.status_code)

    # anything else would otherwise escape as an HTML 500 page
    logger.exception("Unhandled exception in %s", view_name)
    return Response(
        {"success": False, "message": "An unexpected error occurred"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
