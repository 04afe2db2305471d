from django.urls import path

from quotes import views

urlpatterns = [
    path('quotes', views.QuoteListView.as_view(), name='quote-list'),
    path('quotes/<uuid:quote_id>', views.QuoteDetailView.as_view(), name='quote-detail'),
    path('quotes/<uuid:quote_id>/signature-link', views.SignatureLinkView.as_view(), name='quote-signature-link'),
    path('quotes/<uuid:quote_id>/regenerate-link', views.RegenerateLinkView.as_view(), name='quote-regenerate-link'),
    path('quotes/<uuid:quote_id>/views', views.QuoteViewsView.as_view(), name='quote-views'),
    path('quotes/<uuid:quote_id>/convert', views.ConvertQuoteView.as_view(), name='quote-convert'),
    path('signature/<str:token>', views.SignatureView.as_view(), name='signature'),
    path('signature/<str:token>/view', views.SignatureRecordView.as_view(), name='signature-view'),
    path('signature/<str:token>/confirm', views.SignatureConfirmView.as_view(), name='signature-confirm'),
    path('signature/<str:token>/reject', views.SignatureRejectView.as_view(), name='signature-reject'),
]
