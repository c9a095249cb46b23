from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from accounts.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin panel for marketplace participants"""

    list_display = [
        "username",
        "display_name",
        "role",
        "phone_number",
        "completed_jobs",
        "is_active",
    ]

    list_filter = [
        "role",
        "is_active",
        "date_joined",
    ]

    search_fields = [
        "username",
        "display_name",
        "email",
        "phone_number",
    ]

    ordering = ("username",)

    fieldsets = BaseUserAdmin.fieldsets + (
        (
            "Participant",
            {
                "fields": (
                    "role",
                    "display_name",
                    "phone_number",
                    "vehicle_model",
                    "completed_jobs",
                    "current_latitude",
                    "current_longitude",
                    "last_location_update",
                )
            },
        ),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        (
            "Participant",
            {
                "fields": (
                    "role",
                    "display_name",
                    "phone_number",
                )
            },
        ),
    )
