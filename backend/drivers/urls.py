# drivers/urls.py

from django.urls import path

from .views.info import (
    DriverNearbyMechanicsView,
    DriverRequestHistoryView,
)

from .views.requests import (
    DriverCreateRequestView,
    DriverCurrentRequestView,
    DriverCancelRequestView,
    DriverAcceptOfferView,
)

from .views.offers import (
    DriverCounterOfferView,
    DriverCancelCounterView,
    DriverDeclineOfferView,
)

app_name = "drivers"

urlpatterns = [
    # INFO
    path("nearby-mechanics/", DriverNearbyMechanicsView.as_view(), name="nearby-mechanics"),
    path("history/", DriverRequestHistoryView.as_view(), name="request-history"),

    # REQUEST
    path("requests/", DriverCreateRequestView.as_view(), name="create-request"),
    path("requests/current/", DriverCurrentRequestView.as_view(), name="current-request"),
    path("requests/<int:request_id>/cancel/", DriverCancelRequestView.as_view(), name="cancel-request"),
    path(
        "requests/<int:request_id>/offers/<int:offer_id>/accept/",
        DriverAcceptOfferView.as_view(),
        name="accept-offer",
    ),

    # NEGOTIATION
    path("offers/<int:offer_id>/counter/", DriverCounterOfferView.as_view(), name="counter-offer"),
    path("offers/<int:offer_id>/cancel-counter/", DriverCancelCounterView.as_view(), name="cancel-counter"),
    path("offers/<int:offer_id>/decline/", DriverDeclineOfferView.as_view(), name="decline-offer"),
]
