from django.urls import path
from mechanics.views import (
    MechanicProfileView,
    MechanicStatusView,
    MechanicOpenRequestsView,
    MechanicSubmitOfferView,
    MechanicAcceptCounterView,
    MechanicRejectCounterView,
    MechanicCurrentJobView,
    MechanicJobStatusView,
    MechanicJobHistoryView,
)

app_name = "mechanics"

urlpatterns = [
    path("profile/", MechanicProfileView.as_view(), name="mechanic-profile"),
    path("status/", MechanicStatusView.as_view(), name="mechanic-status"),

    # Open queue and bidding
    path("requests/open/", MechanicOpenRequestsView.as_view(), name="open-requests"),
    path("requests/<int:request_id>/offers/", MechanicSubmitOfferView.as_view(), name="submit-offer"),
    path(
        "requests/<int:request_id>/offers/<int:offer_id>/accept-counter/",
        MechanicAcceptCounterView.as_view(),
        name="accept-counter",
    ),
    path("offers/<int:offer_id>/reject-counter/", MechanicRejectCounterView.as_view(), name="reject-counter"),

    # Assigned job
    path("jobs/current/", MechanicCurrentJobView.as_view(), name="current-job"),
    path("jobs/<int:request_id>/status/", MechanicJobStatusView.as_view(), name="job-status"),
    path("history/", MechanicJobHistoryView.as_view(), name="job-history"),
]
