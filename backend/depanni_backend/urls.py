from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Authentication endpoints (at /api/auth/)
    path('api/auth/', include('accounts.urls')),  # register, login, refresh, me, location

    # Driver APIs (requests, negotiation, nearby mechanics, history)
    path('api/driver/', include('drivers.urls')),

    # Mechanic APIs (profile, status, open queue, offers, current job, history)
    path('api/mechanic/', include('mechanics.urls')),
]
