from django.urls import re_path
from .views import (
    ClearCompletedView,
    TaskDetailView,
    TaskListView,
    TaskStatsView,
    TaskToggleView,
)

# trailing slash optional on every route. stats sits before <task_id> and
# shadows a task id of "stats" for PUT/DELETE; uuid ids never collide with it
urlpatterns = [
    re_path(r"^/?$", TaskListView.as_view(), name="task-list"),
    re_path(r"^stats/?$", TaskStatsView.as_view(), name="task-stats"),
    re_path(r"^completed/clear/?$", ClearCompletedView.as_view(), name="task-clear-completed"),
    re_path(r"^(?P<task_id>[^/]+)/toggle/?$", TaskToggleView.as_view(), name="task-toggle"),
    re_path(r"^(?P<task_id>[^/]+)/?$", TaskDetailView.as_view(), name="task-detail"),
]
