import uuid
from datetime import timedelta
from unittest.mock import MagicMock, patch

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from catalog.cache import CatalogCache
from catalog.models import CachedProduct
from core.exceptions import ConflictError, ExpiredError, NotFoundError, ValidationError
from quotes.models import Quote, QuoteView
from quotes.services import QuoteService
from quotes.signature import SignatureService

from .test_services import quote_payload


class SignatureTestCase(TestCase):
    def setUp(self):
        self.quotes = QuoteService()
        quote = self.quotes.create(quote_payload())
        self.quote = self.quotes.generate_signature_link(quote.pk)
        self.token = str(self.quote.signature_token)
        self.notifier = MagicMock()
        self.service = SignatureService(cache=CatalogCache(), notifier=self.notifier)

    def expire(self):
        Quote.objects.filter(pk=self.quote.pk).update(expires_at=timezone.now() - timedelta(seconds=1))


class TestGetByToken(SignatureTestCase):
    def test_live_payload_is_customer_safe(self):
        payload = self.service.get_by_token(self.token)

        self.assertEqual(payload['status'], Quote.STATUS_SENT)
        self.assertEqual(payload['customerName'], 'Acme')
        self.assertEqual(payload['quoteNumber'], self.quote.quote_number)
        self.assertNotIn('id', payload)
        self.assertNotIn('createdById', payload)
        self.assertNotIn('createdByName', payload)

    def test_unknown_and_malformed_tokens(self):
        for token in (str(uuid.uuid4()), 'not-a-token'):
            with self.subTest(token=token):
                with self.assertRaises(NotFoundError):
                    self.service.get_by_token(token)

    def test_expired(self):
        self.expire()
        with self.assertRaises(ExpiredError):
            self.service.get_by_token(self.token)

    def test_already_signed_wins_over_expiry(self):
        self.service.confirm(self.token)
        self.expire()

        result = self.service.get_by_token(self.token)

        self.assertEqual(result['code'], 'ALREADY_SIGNED')
        self.assertIsNotNone(result['signedAt'])

    def test_rejected(self):
        self.service.reject(self.token, reason='Preço alto')
        self.assertEqual(self.service.get_by_token(self.token)['code'], 'REJECTED')


class TestRecordView(SignatureTestCase):
    def test_records_view(self):
        self.assertTrue(self.service.record_view(self.token, '10.0.0.1', 'Mozilla/5.0', {'lat': -25.4}))

        view = QuoteView.objects.get()
        self.assertEqual(view.quote_id, self.quote.pk)
        self.assertEqual(view.ip_address, '10.0.0.1')
        self.assertEqual(view.geolocation, {'lat': -25.4})

    def test_logging_failure_is_tolerated(self):
        with patch('quotes.signature.QuoteView.objects.create', side_effect=DatabaseError("disk full")):
            self.assertFalse(self.service.record_view(self.token, '10.0.0.1', 'Mozilla/5.0'))

    def test_unknown_token(self):
        with self.assertRaises(NotFoundError):
            self.service.record_view(str(uuid.uuid4()))


class TestConfirm(SignatureTestCase):
    def test_confirm_approves_and_stores_evidence(self):
        CachedProduct.objects.create(id=101, name='Cartão de visita', source_modified_at=timezone.now())

        with self.captureOnCommitCallbacks(execute=True):
            quote = self.service.confirm(self.token, '10.0.0.1', 'Mozilla/5.0', {'lat': -25.4})

        quote.refresh_from_db()
        self.assertEqual(quote.status, Quote.STATUS_APPROVED)
        self.assertIsNotNone(quote.signed_at)
        self.assertEqual(quote.signature_data['ip'], '10.0.0.1')
        self.assertEqual(quote.signature_data['userAgent'], 'Mozilla/5.0')
        self.assertEqual(quote.signature_data['geolocation'], {'lat': -25.4})
        self.assertEqual(
            quote.signature_data['productValidation'],
            {'valid': [101], 'invalid': [], 'missing': []},
        )
        self.notifier.quote_approved.assert_called_once()

    def test_confirm_twice_is_invalid_status(self):
        self.service.confirm(self.token)

        with self.assertRaises(ConflictError) as ctx:
            self.service.confirm(self.token)

        self.assertEqual(ctx.exception.code, 'INVALID_STATUS')
        self.assertEqual(self.notifier.quote_approved.call_count, 1)

    def test_confirm_after_reject_is_invalid_status(self):
        self.service.reject(self.token)
        with self.assertRaises(ConflictError):
            self.service.confirm(self.token)
        self.assertEqual(Quote.objects.get(pk=self.quote.pk).status, Quote.STATUS_REJECTED)

    def test_confirm_expired(self):
        self.expire()
        with self.assertRaises(ExpiredError):
            self.service.confirm(self.token)
        self.assertEqual(Quote.objects.get(pk=self.quote.pk).status, Quote.STATUS_SENT)
        self.notifier.quote_approved.assert_not_called()

    def test_expiry_checked_before_status(self):
        self.service.confirm(self.token)
        self.expire()
        with self.assertRaises(ExpiredError):
            self.service.confirm(self.token)

    def test_catalog_failure_does_not_block_confirmation(self):
        cache = MagicMock()
        cache.validate_products.side_effect = DatabaseError("cache offline")
        service = SignatureService(cache=cache, notifier=self.notifier)

        quote = service.confirm(self.token)

        self.assertEqual(quote.status, Quote.STATUS_APPROVED)
        validation = quote.signature_data['productValidation']
        self.assertEqual(validation['missing'], [101])
        self.assertIn('cache offline', validation['error'])

    def test_stale_token_after_edit(self):
        self.quotes.update(self.quote.pk, {'notes': 'revisado'})
        with self.assertRaises(NotFoundError):
            self.service.confirm(self.token)

    def test_concurrent_confirmation_loses(self):
        # Another request approved the quote between the read and the write.
        original = SignatureService._check_actionable

        def approve_elsewhere(service, quote, now):
            original(service, quote, now)
            Quote.objects.filter(pk=quote.pk).update(status=Quote.STATUS_APPROVED, signed_at=now)

        with patch.object(SignatureService, '_check_actionable', approve_elsewhere):
            with self.assertRaises(ConflictError):
                self.service.confirm(self.token)
        self.notifier.quote_approved.assert_not_called()


class TestReject(SignatureTestCase):
    def test_reject_with_reason(self):
        with self.captureOnCommitCallbacks(execute=True):
            quote = self.service.reject(self.token, reason='  Prazo longo ', ip_address='10.0.0.2')

        self.assertEqual(quote.status, Quote.STATUS_REJECTED)
        self.assertIsNotNone(quote.rejected_at)
        self.assertEqual(quote.rejection_reason, 'Prazo longo')
        self.notifier.quote_rejected.assert_called_once()

    def test_reject_without_reason(self):
        quote = self.service.reject(self.token)
        self.assertIsNone(quote.rejection_reason)

    def test_reason_validation(self):
        with self.assertRaises(ValidationError):
            self.service.reject(self.token, reason=42)
        with self.assertRaises(ValidationError):
            self.service.reject(self.token, reason='x' * 2001)
        self.assertEqual(Quote.objects.get(pk=self.quote.pk).status, Quote.STATUS_SENT)

    def test_reject_expired(self):
        self.expire()
        with self.assertRaises(ExpiredError):
            self.service.reject(self.token)

    def test_reject_after_confirm(self):
        self.service.confirm(self.token)
        with self.assertRaises(ConflictError):
            self.service.reject(self.token)
