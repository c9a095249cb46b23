from django.contrib import admin
from .models import MechanicProfile


@admin.register(MechanicProfile)
class MechanicProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'vehicle_type', 'is_online', 'rating', 'base_price']
    list_filter = ['is_online', 'vehicle_type']
    search_fields = ['user__username', 'user__display_name']
