from django.urls import path

from . import views

urlpatterns = [
    path('rrp/config/', views.rrp_config_view, name='rrp_config'),
    path('rrp/totals/', views.rrp_totals_view, name='rrp_totals'),
    path('rrp/export/', views.rrp_export_view, name='rrp_export'),
    path('equipment/suggestions/', views.equipment_suggestions_view, name='equipment_suggestions'),
]
