"""Tells what to show in the Django admin interface for the assistance app"""

from django.contrib import admin
from .models import ServiceRequest, Offer


class OfferInline(admin.TabularInline):
    model = Offer
    extra = 0
    readonly_fields = ['original_price', 'created_at', 'updated_at', 'responded_at']


@admin.register(ServiceRequest)
class ServiceRequestAdmin(admin.ModelAdmin):
    """Service Request admin"""
    list_display = ['id', 'driver', 'mechanic', 'status', 'created_at', 'accepted_at', 'completed_at']
    list_filter = ['status', 'created_at']
    search_fields = ['driver__username', 'mechanic__username', 'problem_description']
    readonly_fields = ['created_at', 'updated_at', 'accepted_at', 'completed_at', 'cancelled_at']
    date_hierarchy = 'created_at'
    inlines = [OfferInline]


@admin.register(Offer)
class OfferAdmin(admin.ModelAdmin):
    list_display = ("request", "mechanic", "price", "original_price", "is_counter_offer", "status", "created_at")
    list_filter = ("status", "is_counter_offer")
    search_fields = ("request__id", "mechanic__username", "mechanic_name")
    readonly_fields = ("original_price",)
