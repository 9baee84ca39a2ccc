from django.urls import path

from . import api_views

urlpatterns = [
    path("inventory/state", api_views.inventory_state_api, name="api_inventory_state"),
    path("inventory/global/reset", api_views.reset_global_inventory_api, name="api_inventory_global_reset"),
    path("inventory/global/total", api_views.set_global_total_api, name="api_inventory_global_total"),
    path("inventory/stations", api_views.save_station_api, name="api_inventory_station_save"),
    path("inventory/stations/active", api_views.set_all_stations_active_api, name="api_inventory_stations_active"),
    path("inventory/stations/<int:number>", api_views.delete_station_api, name="api_inventory_station_delete"),
    path("inventory/stations/<int:number>/add", api_views.add_station_meals_api, name="api_inventory_station_add"),
    path(
        "inventory/stations/<int:number>/active",
        api_views.set_station_active_api,
        name="api_inventory_station_active",
    ),
    path("inventory/stations/<int:number>/reset", api_views.reset_station_api, name="api_inventory_station_reset"),
    path("operators/<int:user_id>/role", api_views.set_operator_role_api, name="api_operator_role"),
]
