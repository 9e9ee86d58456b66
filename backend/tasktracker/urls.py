from django.urls import include, re_path
from tasks.views import client_entry

urlpatterns = [
    re_path(r"^api/tasks(?:/|$)", include("tasks.urls")),
    # anything else is the browser client's business
    re_path(r"^(?P<path>.*)$", client_entry, name="client-entry"),
]
