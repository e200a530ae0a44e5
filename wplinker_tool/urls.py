"""URL configuration for wplinker_tool.

The admin is mounted under ``/admin/`` and the wplinker API at the root.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('wplinker.urls')),
]
