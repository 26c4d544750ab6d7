from django.contrib import admin
from django.urls import path

urlpatterns = [
    # Read-only inspection of ledger tables
    path("admin/", admin.site.urls),
]
