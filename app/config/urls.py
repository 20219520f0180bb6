"""
URL configuration for the Django application.

URL Structure:
    /admin/                        - Django admin interface (operator surface
                                     for buildings, apartments, expenses,
                                     payments and the read-only ledger)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import path

urlpatterns = [
    path("admin/", admin.site.urls),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Building Ledger Admin"
admin.site.site_title = "Building Ledger"
admin.site.index_title = "Apartments, expenses and balances"
