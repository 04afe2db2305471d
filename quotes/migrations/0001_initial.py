import uuid
from decimal import Decimal

import django.core.serializers.json
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Quote',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('quote_number', models.CharField(blank=True, max_length=32, null=True, unique=True)),
                ('customer_name', models.CharField(max_length=255)),
                ('customer_email', models.CharField(blank=True, max_length=254, null=True)),
                ('customer_phone', models.CharField(blank=True, max_length=50, null=True)),
                ('customer_company', models.CharField(blank=True, max_length=255, null=True)),
                ('customer_cpf', models.CharField(blank=True, max_length=20, null=True)),
                ('customer_cnpj', models.CharField(blank=True, max_length=20, null=True)),
                ('customer_postal_code', models.CharField(blank=True, max_length=20, null=True)),
                ('customer_address', models.CharField(blank=True, max_length=255, null=True)),
                ('customer_address_number', models.CharField(blank=True, max_length=20, null=True)),
                ('customer_complement', models.CharField(blank=True, max_length=255, null=True)),
                ('customer_neighborhood', models.CharField(blank=True, max_length=255, null=True)),
                ('customer_city', models.CharField(blank=True, max_length=255, null=True)),
                ('customer_state', models.CharField(blank=True, max_length=50, null=True)),
                ('products', models.JSONField(default=list, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('total_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('sent', 'Sent'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('converted', 'Converted')], db_index=True, default='draft', max_length=20)),
                ('created_by_id', models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ('created_by_name', models.CharField(blank=True, max_length=255, null=True)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('signature_token', models.UUIDField(blank=True, null=True, unique=True)),
                ('signature_link_created_at', models.DateTimeField(blank=True, null=True)),
                ('signature_link_version', models.PositiveIntegerField(default=0)),
                ('signed_at', models.DateTimeField(blank=True, null=True)),
                ('signature_data', models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True, null=True)),
                ('converted_to_order_id', models.CharField(blank=True, max_length=64, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('payment_method', models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='QuoteView',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('viewed_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('ip_address', models.CharField(blank=True, max_length=45, null=True)),
                ('user_agent', models.TextField(blank=True, null=True)),
                ('geolocation', models.JSONField(blank=True, null=True)),
                ('quote', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='views', to='quotes.quote')),
            ],
            options={
                'ordering': ['-viewed_at', '-id'],
            },
        ),
    ]
