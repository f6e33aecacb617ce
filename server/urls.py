"""
Main URL mapping configuration file.

Include other URLConfs from external apps using method `include()`.

The drive app owns the site root: its JSON API, downloads,
uploads and the health check.
"""

from django.contrib import admin
from django.contrib.admindocs import urls as admindocs_urls
from django.urls import include, path

from server.apps.drive import urls as drive_urls

admin.autodiscover()

urlpatterns = [
    # Apps:
    path('', include(drive_urls, namespace='drive')),

    # django-admin:
    path('admin/doc/', include(admindocs_urls)),
    path('admin/', admin.site.urls),
]
