import django.contrib.postgres.search
from django.db import migrations

SEARCH_FIELDS = {
    'CachedProduct': ('name', 'sku', 'short_description', 'description'),
    'CachedCustomer': ('email', 'first_name', 'last_name', 'username'),
}
INDEXES = (
    ('catalog_cachedproduct', 'cachedproduct_search_idx'),
    ('catalog_cachedcustomer', 'cachedcustomer_search_idx'),
)


def create_search_indexes(apps, schema_editor):
    if schema_editor.connection.vendor != 'postgresql':
        return
    for table, index in INDEXES:
        schema_editor.execute(f'CREATE INDEX {index} ON {table} USING gin (search_vector)')
    for name, fields in SEARCH_FIELDS.items():
        model = apps.get_model('catalog', name)
        model.objects.update(search_vector=django.contrib.postgres.search.SearchVector(*fields, config='portuguese'))


def drop_search_indexes(apps, schema_editor):
    if schema_editor.connection.vendor != 'postgresql':
        return
    for _, index in INDEXES:
        schema_editor.execute(f'DROP INDEX IF EXISTS {index}')


class Migration(migrations.Migration):
    dependencies = [
        ('catalog', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='cachedproduct',
            name='search_vector',
            field=django.contrib.postgres.search.SearchVectorField(editable=False, null=True),
        ),
        migrations.AddField(
            model_name='cachedcustomer',
            name='search_vector',
            field=django.contrib.postgres.search.SearchVectorField(editable=False, null=True),
        ),
        migrations.RunPython(create_search_indexes, drop_search_indexes),
    ]
