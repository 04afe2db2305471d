import uuid
from datetime import timedelta
from unittest.mock import MagicMock

from django.contrib.auth import get_user_model
from django.test import RequestFactory, TestCase
from django.utils import timezone

from quotes import views
from quotes.models import Quote, QuoteView
from quotes.services import QuoteService

from .test_services import quote_payload


class TestQuoteEndpoints(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username='vendas', first_name='Maria', last_name='Silva', password='x',
        )
        self.client.force_login(self.user)

    def _create(self, **overrides):
        return self.client.post('/api/quotes', data=quote_payload(**overrides), content_type='application/json')

    def test_create(self):
        response = self._create()

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body['totalPrice'], '300.00')
        self.assertEqual(body['status'], 'draft')
        self.assertEqual(body['customerName'], 'Acme')
        self.assertEqual(body['createdById'], str(self.user.pk))
        self.assertEqual(body['createdByName'], 'Maria Silva')
        self.assertIsNone(body['signatureLink'])

    def test_create_missing_fields(self):
        response = self._create(products=[])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'VALIDATION_FAILED')

    def test_create_rejects_oversized_amount(self):
        response = self._create(products=[{'name': 'Banner', 'quantity': 1, 'subtotal': 10 ** 13}])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'VALIDATION_FAILED')
        self.assertFalse(Quote.objects.exists())

    def test_line_item_amounts_serialize_alike(self):
        quote_id = self._create(products=[
            {'name': 'Cartão', 'quantity': 3, 'price': 100},
            {'name': 'Banner', 'quantity': 1, 'subtotal': 50},
        ]).json()['id']

        products = self.client.get(f'/api/quotes/{quote_id}').json()['products']

        self.assertEqual([item['subtotal'] for item in products], ['300.00', '50.00'])
        self.assertEqual(products[0]['price'], '100.00')

    def test_create_malformed_json(self):
        response = self.client.post('/api/quotes', data='{oops', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_list_and_detail(self):
        quote_id = self._create().json()['id']

        listing = self.client.get('/api/quotes', {'status': 'draft'})
        self.assertEqual(listing.status_code, 200)
        self.assertEqual([q['id'] for q in listing.json()], [quote_id])
        self.assertEqual(listing.json()[0]['viewCount'], 0)

        detail = self.client.get(f'/api/quotes/{quote_id}')
        self.assertEqual(detail.json()['quoteNumber'], listing.json()[0]['quoteNumber'])

        self.assertEqual(self.client.get(f'/api/quotes/{uuid.uuid4()}').status_code, 404)

    def test_update(self):
        quote_id = self._create().json()['id']
        response = self.client.put(
            f'/api/quotes/{quote_id}',
            data={'products': [{'name': 'Banner', 'quantity': 1, 'subtotal': 80}]},
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['totalPrice'], '80.00')

    def test_signature_link_flow(self):
        quote_id = self._create().json()['id']

        response = self.client.post(f'/api/quotes/{quote_id}/signature-link')

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['signatureLink'], f"https://app.example.com/sign/{body['token']}")
        self.assertEqual(body['version'], 1)
        self.assertIsNotNone(body['expiresAt'])

        regenerate = self.client.post(f'/api/quotes/{quote_id}/regenerate-link')
        self.assertEqual(regenerate.status_code, 400)
        self.assertEqual(regenerate.json()['code'], 'LINK_STILL_VALID')

        Quote.objects.filter(pk=quote_id).update(expires_at=timezone.now() - timedelta(days=1))
        regenerate = self.client.post(f'/api/quotes/{quote_id}/regenerate-link')
        self.assertEqual(regenerate.status_code, 200)
        self.assertEqual(regenerate.json()['version'], 2)

    def test_signature_link_missing_quote(self):
        self.assertEqual(self.client.post(f'/api/quotes/{uuid.uuid4()}/signature-link').status_code, 404)

    def test_views_listing(self):
        quote_id = self._create().json()['id']
        QuoteView.objects.create(quote_id=quote_id, ip_address='10.0.0.1', user_agent='Mozilla/5.0')

        response = self.client.get(f'/api/quotes/{quote_id}/views')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()[0]['ipAddress'], '10.0.0.1')

    def test_delete_and_convert(self):
        quote_id = self._create().json()['id']

        convert = self.client.post(
            f'/api/quotes/{quote_id}/convert', data={'orderId': 'PED-9'}, content_type='application/json',
        )
        self.assertEqual(convert.status_code, 200)
        self.assertEqual(convert.json()['status'], 'converted')

        delete = self.client.delete(f'/api/quotes/{quote_id}')
        self.assertEqual(delete.status_code, 400)
        self.assertEqual(delete.json()['code'], 'QUOTE_CONVERTED')

        other_id = self._create().json()['id']
        self.assertEqual(self.client.delete(f'/api/quotes/{other_id}').status_code, 200)
        self.assertFalse(Quote.objects.filter(pk=other_id).exists())

    def test_unexpected_error_includes_detail(self):
        service = MagicMock()
        service.get.side_effect = RuntimeError("db exploded")
        view = views.QuoteDetailView.as_view(service_class=lambda: service)

        response = view(RequestFactory().get('/api/quotes/x'), quote_id=uuid.uuid4())

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['error'], 'db exploded')


class TestSignatureEndpoints(TestCase):
    def setUp(self):
        service = QuoteService()
        quote = service.create(quote_payload())
        self.quote = service.generate_signature_link(quote.pk)
        self.base = f'/api/signature/{self.quote.signature_token}'

    def test_get(self):
        response = self.client.get(self.base)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['totalPrice'], '300.00')
        self.assertNotIn('createdById', response.json())

    def test_get_unknown(self):
        response = self.client.get(f'/api/signature/{uuid.uuid4()}')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['code'], 'NOT_FOUND')

    def test_get_expired(self):
        Quote.objects.filter(pk=self.quote.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
        response = self.client.get(self.base)
        self.assertEqual(response.status_code, 410)
        self.assertEqual(response.json()['code'], 'EXPIRED')

    def test_record_view_uses_forwarded_ip(self):
        response = self.client.post(
            f'{self.base}/view',
            data={'geolocation': {'lat': -25.4, 'lng': -49.3}},
            content_type='application/json',
            HTTP_X_FORWARDED_FOR='200.1.2.3, 10.0.0.1',
            HTTP_USER_AGENT='Mozilla/5.0',
        )
        self.assertEqual(response.json(), {'success': True})
        view = QuoteView.objects.get()
        self.assertEqual(view.ip_address, '200.1.2.3')
        self.assertEqual(view.user_agent, 'Mozilla/5.0')

    def test_record_view_unknown_token(self):
        response = self.client.post(f'/api/signature/{uuid.uuid4()}/view', content_type='application/json')
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()['success'])

    def test_confirm_then_confirm_again(self):
        with self.captureOnCommitCallbacks(execute=False):
            response = self.client.post(f'{self.base}/confirm', data={}, content_type='application/json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            'success': True,
            'message': 'Quote approved',
            'quoteNumber': self.quote.quote_number,
        })

        again = self.client.post(f'{self.base}/confirm', content_type='application/json')
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.json()['code'], 'INVALID_STATUS')

        status = self.client.get(self.base)
        self.assertEqual(status.status_code, 200)
        self.assertEqual(status.json()['code'], 'ALREADY_SIGNED')

    def test_confirm_expired(self):
        Quote.objects.filter(pk=self.quote.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
        response = self.client.post(f'{self.base}/confirm', content_type='application/json')
        self.assertEqual(response.status_code, 410)

    def test_reject(self):
        with self.captureOnCommitCallbacks(execute=False):
            response = self.client.post(
                f'{self.base}/reject', data={'reason': 'Prazo'}, content_type='application/json',
            )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Quote rejected')
        self.assertEqual(Quote.objects.get(pk=self.quote.pk).rejection_reason, 'Prazo')

    def test_reject_bad_reason(self):
        response = self.client.post(f'{self.base}/reject', data={'reason': 5}, content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_public_errors_hide_detail(self):
        service = MagicMock()
        service.get_by_token.side_effect = RuntimeError("secret internals")
        view = views.SignatureView.as_view(service_class=lambda: service)

        response = view(RequestFactory().get('/api/signature/x'), token='x')

        self.assertEqual(response.status_code, 500)
        self.assertNotIn('error', response.json())
