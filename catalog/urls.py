from django.urls import path

from catalog import views

urlpatterns = [
    path('sync', views.SyncTriggerView.as_view(), name='sync-trigger'),
    path('sync/status', views.SyncStatusView.as_view(), name='sync-status'),
    path('sync/stats', views.CacheStatsView.as_view(), name='sync-stats'),
    path('sync/cleanup', views.CacheCleanupView.as_view(), name='sync-cleanup'),
    path('catalog/products', views.ProductListView.as_view(), name='catalog-products'),
    path('catalog/products/<int:product_id>', views.ProductDetailView.as_view(), name='catalog-product'),
    path('catalog/customers', views.CustomerListView.as_view(), name='catalog-customers'),
]
