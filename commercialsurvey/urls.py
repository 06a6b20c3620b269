"""Root URL configuration.

All user facing routes live in :mod:`survey.urls`; the Django admin is kept
for staff maintenance of the survey structure.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('survey.urls')),
]
