from django.urls import path

from . import api_views

urlpatterns = [
    path("access/scan", api_views.scan_api, name="api_access_scan"),
    path("access/meal", api_views.serve_meal_api, name="api_access_meal"),
    path("access/mesa/validate", api_views.validate_mesa_api, name="api_access_mesa_validate"),
    path("access/people/<str:identification>", api_views.person_detail_api, name="api_access_person_detail"),
]
