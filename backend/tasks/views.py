# backend/tasks/views.py
from pathlib import Path

from django.conf import settings
from django.http import FileResponse, Http404, JsonResponse
from django.views.decorators.http import require_safe
from django.views.static import serve
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from .serializers import TaskCreateSerializer, TaskUpdateSerializer, TaskFilterSerializer
from .services import get_task_service


class TaskListView(APIView):
    def get(self, request):
        # ?status=all|active|completed&search=text, both optional
        params = TaskFilterSerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        service = get_task_service()
        status_filter = params.validated_data["status"]
        search = params.validated_data["search"]
        if status_filter == "all" and not search:
            tasks = service.list_tasks()
        else:
            tasks = service.filter_tasks(status=status_filter, search=search)
        return Response({"success": True, "tasks": [t.to_dict() for t in tasks]}, status=status.HTTP_200_OK)

    def post(self, request):
        ser = TaskCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        task = get_task_service().add_task(
            data.get("title"),
            priority=data.get("priority"),
            due_date=data.get("dueDate"),
        )
        return Response({"success": True, "task": task.to_dict()}, status=status.HTTP_201_CREATED)


class TaskStatsView(APIView):
    def get(self, request):
        return Response({"success": True, "stats": get_task_service().stats()}, status=status.HTTP_200_OK)


class TaskToggleView(APIView):
    def patch(self, request, task_id):
        task = get_task_service().toggle_task(task_id)
        return Response({"success": True, "task": task.to_dict()}, status=status.HTTP_200_OK)


class TaskDetailView(APIView):
    def put(self, request, task_id):
        ser = TaskUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        changes = {"title": data.get("title"), "priority": data.get("priority")}
        # a dueDate key that is present (even null) overwrites the stored value
        if "dueDate" in data:
            changes["due_date"] = data["dueDate"]
        task = get_task_service().update_task(task_id, **changes)
        return Response({"success": True, "task": task.to_dict()}, status=status.HTTP_200_OK)

    def delete(self, request, task_id):
        get_task_service().delete_task(task_id)
        return Response({"success": True, "message": "Task deleted successfully"}, status=status.HTTP_200_OK)


class ClearCompletedView(APIView):
    def delete(self, request):
        count = get_task_service().clear_completed()
        return Response(
            {"success": True, "message": f"Cleared {count} completed tasks", "count": count},
            status=status.HTTP_200_OK,
        )


@require_safe
def client_entry(request, path=""):
    """
    Fallback for every path the API does not claim. A real file under the
    client directory (app.js, styles.css, ...) is served as-is; anything
    else gets index.html so client-side routes load the app.
    """
    index = Path(settings.CLIENT_INDEX_FILE)
    try:
        return serve(request, path, document_root=index.parent)
    except Http404:
        pass
    if not index.is_file():
        return JsonResponse({"success": False, "message": "Not found"}, status=status.HTTP_404_NOT_FOUND)
    return FileResponse(index.open("rb"), content_type="text/html; charset=utf-8")
