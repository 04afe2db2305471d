from django.contrib.postgres.search import SearchVectorField
from django.db import models
from django.utils import timezone


class CachedProduct(models.Model):
    """Local mirror of one WooCommerce product, keyed by its external id."""

    SEARCH_FIELDS = ('name', 'sku', 'short_description', 'description')

    id = models.BigIntegerField(primary_key=True)
    name = models.CharField(max_length=255)
    product_type = models.CharField(max_length=20, default='simple')
    sku = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    regular_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    description = models.TextField(blank=True, default='')
    short_description = models.TextField(blank=True, default='')
    stock_status = models.CharField(max_length=20, blank=True, null=True)
    stock_quantity = models.IntegerField(null=True, blank=True)
    manage_stock = models.BooleanField(default=False)
    images = models.JSONField(default=list, blank=True)
    categories = models.JSONField(default=list, blank=True)
    attributes = models.JSONField(default=list, blank=True)
    variations = models.JSONField(default=list, blank=True)
    meta_data = models.JSONField(default=list, blank=True)
    tier_pricing = models.JSONField(null=True, blank=True)
    source_modified_at = models.DateTimeField(db_index=True)
    synced_at = models.DateTimeField(default=timezone.now, db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)
    # Only maintained on postgres; GIN-indexed by migration 0002.
    search_vector = SearchVectorField(null=True, editable=False)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} (#{self.id})"


class CachedCustomer(models.Model):
    """Local mirror of one WooCommerce customer, keyed by its external id."""

    SEARCH_FIELDS = ('email', 'first_name', 'last_name', 'username')

    id = models.BigIntegerField(primary_key=True)
    email = models.CharField(max_length=254, db_index=True)
    first_name = models.CharField(max_length=150, blank=True, null=True)
    last_name = models.CharField(max_length=150, blank=True, null=True)
    username = models.CharField(max_length=150, blank=True, null=True)
    role = models.CharField(max_length=50, blank=True, null=True)
    billing = models.JSONField(default=dict, blank=True)
    shipping = models.JSONField(default=dict, blank=True)
    source_modified_at = models.DateTimeField(db_index=True)
    synced_at = models.DateTimeField(default=timezone.now, db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)
    # Only maintained on postgres; GIN-indexed by migration 0002.
    search_vector = SearchVectorField(null=True, editable=False)

    class Meta:
        ordering = ['email']

    def __str__(self):
        return f"{self.email} (#{self.id})"


class SyncRun(models.Model):
    KIND_PRODUCTS = 'products'
    KIND_CUSTOMERS = 'customers'
    KIND_FULL = 'full'
    KIND_INCREMENTAL = 'incremental'
    KIND_CHOICES = [
        (KIND_PRODUCTS, 'Products'),
        (KIND_CUSTOMERS, 'Customers'),
        (KIND_FULL, 'Full'),
        (KIND_INCREMENTAL, 'Incremental'),
    ]

    STATUS_RUNNING = 'running'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = [
        (STATUS_RUNNING, 'Running'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
    ]

    TRIGGER_CHOICES = [
        ('login', 'Login'),
        ('manual', 'Manual'),
        ('webhook', 'Webhook'),
        ('scheduled', 'Scheduled'),
    ]

    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_RUNNING)
    started_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)
    items_processed = models.PositiveIntegerField(default=0)
    items_created = models.PositiveIntegerField(default=0)
    items_updated = models.PositiveIntegerField(default=0)
    items_failed = models.PositiveIntegerField(default=0)
    error_message = models.TextField(blank=True, null=True)
    last_synced_at = models.DateTimeField(null=True, blank=True)
    triggered_by = models.CharField(max_length=20, choices=TRIGGER_CHOICES)
    user_id = models.CharField(max_length=64, blank=True, null=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['-started_at', '-id']
        indexes = [models.Index(fields=['kind', 'status', '-started_at'], name='syncrun_kind_status_idx')]

    def __str__(self):
        return f"{self.kind} sync #{self.pk} ({self.status})"

    def as_dict(self):
        return {
            'id': self.pk,
            'syncType': self.kind,
            'status': self.status,
            'startedAt': self.started_at,
            'completedAt': self.completed_at,
            'itemsProcessed': self.items_processed,
            'itemsCreated': self.items_created,
            'itemsUpdated': self.items_updated,
            'itemsFailed': self.items_failed,
            'errorMessage': self.error_message,
            'lastSyncedAt': self.last_synced_at,
            'triggeredBy': self.triggered_by,
            'userId': self.user_id,
            'metadata': self.metadata,
        }
