import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='CachedProduct',
            fields=[
                ('id', models.BigIntegerField(primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('product_type', models.CharField(default='simple', max_length=20)),
                ('sku', models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ('price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('regular_price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('description', models.TextField(blank=True, default='')),
                ('short_description', models.TextField(blank=True, default='')),
                ('stock_status', models.CharField(blank=True, max_length=20, null=True)),
                ('stock_quantity', models.IntegerField(blank=True, null=True)),
                ('manage_stock', models.BooleanField(default=False)),
                ('images', models.JSONField(blank=True, default=list)),
                ('categories', models.JSONField(blank=True, default=list)),
                ('attributes', models.JSONField(blank=True, default=list)),
                ('variations', models.JSONField(blank=True, default=list)),
                ('meta_data', models.JSONField(blank=True, default=list)),
                ('tier_pricing', models.JSONField(blank=True, null=True)),
                ('source_modified_at', models.DateTimeField(db_index=True)),
                ('synced_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='CachedCustomer',
            fields=[
                ('id', models.BigIntegerField(primary_key=True, serialize=False)),
                ('email', models.CharField(db_index=True, max_length=254)),
                ('first_name', models.CharField(blank=True, max_length=150, null=True)),
                ('last_name', models.CharField(blank=True, max_length=150, null=True)),
                ('username', models.CharField(blank=True, max_length=150, null=True)),
                ('role', models.CharField(blank=True, max_length=50, null=True)),
                ('billing', models.JSONField(blank=True, default=dict)),
                ('shipping', models.JSONField(blank=True, default=dict)),
                ('source_modified_at', models.DateTimeField(db_index=True)),
                ('synced_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
            ],
            options={
                'ordering': ['email'],
            },
        ),
        migrations.CreateModel(
            name='SyncRun',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('products', 'Products'), ('customers', 'Customers'), ('full', 'Full'), ('incremental', 'Incremental')], max_length=20)),
                ('status', models.CharField(choices=[('running', 'Running'), ('completed', 'Completed'), ('failed', 'Failed')], default='running', max_length=20)),
                ('started_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('items_processed', models.PositiveIntegerField(default=0)),
                ('items_created', models.PositiveIntegerField(default=0)),
                ('items_updated', models.PositiveIntegerField(default=0)),
                ('items_failed', models.PositiveIntegerField(default=0)),
                ('error_message', models.TextField(blank=True, null=True)),
                ('last_synced_at', models.DateTimeField(blank=True, null=True)),
                ('triggered_by', models.CharField(choices=[('login', 'Login'), ('manual', 'Manual'), ('webhook', 'Webhook'), ('scheduled', 'Scheduled')], max_length=20)),
                ('user_id', models.CharField(blank=True, max_length=64, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
            ],
            options={
                'ordering': ['-started_at', '-id'],
                'indexes': [models.Index(fields=['kind', 'status', '-started_at'], name='syncrun_kind_status_idx')],
            },
        ),
    ]
