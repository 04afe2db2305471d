import uuid
from decimal import Decimal

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone


class Quote(models.Model):
    STATUS_DRAFT = 'draft'
    STATUS_SENT = 'sent'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CONVERTED = 'converted'
    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_SENT, 'Sent'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_CONVERTED, 'Converted'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    quote_number = models.CharField(max_length=32, unique=True, null=True, blank=True)

    customer_name = models.CharField(max_length=255)
    customer_email = models.CharField(max_length=254, blank=True, null=True)
    customer_phone = models.CharField(max_length=50, blank=True, null=True)
    customer_company = models.CharField(max_length=255, blank=True, null=True)
    customer_cpf = models.CharField(max_length=20, blank=True, null=True)
    customer_cnpj = models.CharField(max_length=20, blank=True, null=True)
    customer_postal_code = models.CharField(max_length=20, blank=True, null=True)
    customer_address = models.CharField(max_length=255, blank=True, null=True)
    customer_address_number = models.CharField(max_length=20, blank=True, null=True)
    customer_complement = models.CharField(max_length=255, blank=True, null=True)
    customer_neighborhood = models.CharField(max_length=255, blank=True, null=True)
    customer_city = models.CharField(max_length=255, blank=True, null=True)
    customer_state = models.CharField(max_length=50, blank=True, null=True)

    products = models.JSONField(default=list, encoder=DjangoJSONEncoder)
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)

    created_by_id = models.CharField(max_length=64, blank=True, null=True, db_index=True)
    created_by_name = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    signature_token = models.UUIDField(unique=True, null=True, blank=True)
    signature_link_created_at = models.DateTimeField(null=True, blank=True)
    signature_link_version = models.PositiveIntegerField(default=0)

    signed_at = models.DateTimeField(null=True, blank=True)
    signature_data = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, null=True)

    converted_to_order_id = models.CharField(max_length=64, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    payment_method = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.quote_number or self.pk} ({self.status})"

    def link_expired(self, now=None):
        return self.expires_at is not None and self.expires_at < (now or timezone.now())


class QuoteView(models.Model):
    """Append-only record of a customer opening the signature page."""

    quote = models.ForeignKey(Quote, on_delete=models.CASCADE, related_name='views')
    viewed_at = models.DateTimeField(default=timezone.now, db_index=True)
    ip_address = models.CharField(max_length=45, blank=True, null=True)
    user_agent = models.TextField(blank=True, null=True)
    geolocation = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ['-viewed_at', '-id']

    def __str__(self):
        return f"view of {self.quote_id} at {self.viewed_at}"
