"""URL configuration for the wplinker app.

This module defines the URL patterns for the app's JSON endpoints. It also
specifies the ``app_name`` to allow namespacing from the project URL
configuration.
"""

from django.urls import path

from . import views

app_name = 'wplinker'

urlpatterns = [
    path('api/internal-links/', views.internal_links, name='internal_links'),
    path('api/sitemap/crawl/', views.crawl_sitemap, name='crawl_sitemap'),
]
