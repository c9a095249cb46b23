from django.db import models
from django.conf import settings


class RequestStatus(models.TextChoices):
    PENDING = 'PENDING', 'Waiting for offers'
    OFFERING = 'OFFERING', 'Receiving offers'
    ACCEPTED = 'ACCEPTED', 'Offer accepted'
    EN_ROUTE = 'EN_ROUTE', 'Mechanic en route'
    ARRIVED = 'ARRIVED', 'Mechanic on site'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


class OfferStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    NEGOTIATING = 'NEGOTIATING', 'Negotiating'
    ACCEPTED = 'ACCEPTED', 'Accepted'
    REJECTED = 'REJECTED', 'Rejected'


# Mechanics can still bid on these
OPEN_STATUSES = (RequestStatus.PENDING, RequestStatus.OFFERING)
TERMINAL_STATUSES = (RequestStatus.COMPLETED, RequestStatus.CANCELLED)
# A mechanic is assigned in these
ASSIGNED_STATUSES = (
    RequestStatus.ACCEPTED,
    RequestStatus.EN_ROUTE,
    RequestStatus.ARRIVED,
    RequestStatus.COMPLETED,
)
# Offers that can still be negotiated or accepted
LIVE_OFFER_STATUSES = (OfferStatus.PENDING, OfferStatus.NEGOTIATING)


class ServiceRequestQuerySet(models.QuerySet):
    def active(self):
        return self.exclude(status__in=TERMINAL_STATUSES)

    def open(self):
        return self.filter(status__in=OPEN_STATUSES)


class ServiceRequest(models.Model):
    """One roadside-assistance episode, from breakdown report to completion."""

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='service_requests'
    )

    mechanic = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_jobs'
    )

    status = models.CharField(max_length=20, choices=RequestStatus.choices, default=RequestStatus.PENDING)
    problem_description = models.TextField()

    # Breakdown site, fixed at creation (not the driver's live position)
    latitude = models.DecimalField(max_digits=9, decimal_places=6)
    longitude = models.DecimalField(max_digits=9, decimal_places=6)

    accepted_offer = models.ForeignKey(
        'Offer',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    cancellation_reason = models.TextField(blank=True)

    objects = ServiceRequestQuerySet.as_manager()

    class Meta:
        db_table = 'service_requests'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['driver'],
                condition=~models.Q(status__in=['COMPLETED', 'CANCELLED']),
                name='one_active_request_per_driver'
            )
        ]

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    @property
    def is_open(self):
        return self.status in OPEN_STATUSES

    def __str__(self):
        return f"Request #{self.id} - {self.driver} - {self.status}"


class Offer(models.Model):
    """A mechanic's priced, negotiable bid against a service request."""

    request = models.ForeignKey(
        ServiceRequest,
        on_delete=models.CASCADE,
        related_name='offers'
    )

    mechanic = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='offers'
    )

    # Display snapshot taken when the offer is made
    mechanic_name = models.CharField(max_length=150)
    mechanic_rating = models.FloatField(default=5.0)

    price = models.DecimalField(max_digits=10, decimal_places=2)
    original_price = models.DecimalField(max_digits=10, decimal_places=2)  # first bid, never changes
    is_counter_offer = models.BooleanField(default=False)
    eta = models.PositiveIntegerField(default=15)  # minutes, advisory

    status = models.CharField(max_length=20, choices=OfferStatus.choices, default=OfferStatus.PENDING)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'offers'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['request', 'mechanic'],
                name='unique_request_mechanic'
            ),
            models.UniqueConstraint(
                fields=['request'],
                condition=models.Q(status='ACCEPTED'),
                name='one_accepted_offer_per_request'
            ),
        ]

    @property
    def is_live(self):
        return self.status in LIVE_OFFER_STATUSES

    def __str__(self):
        return f"Offer #{self.id} - Request {self.request_id} -> {self.mechanic_name} ({self.price})"
