import json
from unittest.mock import MagicMock, patch

import requests
import responses
from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase, override_settings
from django.utils import timezone

from quotes import notifications
from quotes.dispatch import QuoteNotifier
from quotes.models import Quote
from quotes.services import QuoteService
from quotes.signature import SignatureService
from quotes.tasks import post_quote_webhook, send_quote_approved_email, send_quote_rejected_email

from .test_services import quote_payload

SIGNED_HOOK = 'https://hooks.example.com/quotes/signed'
REJECTED_HOOK = 'https://hooks.example.com/quotes/rejected'


class NotificationTestCase(TestCase):
    def setUp(self):
        self.creator = get_user_model().objects.create_user(
            username='vendas', email='vendas@grafica.example', password='x',
        )
        service = QuoteService()
        quote = service.create(
            quote_payload(), created_by_id=str(self.creator.pk), created_by_name='Vendas',
        )
        self.quote = service.generate_signature_link(quote.pk)


class TestDelivery(NotificationTestCase):
    def test_approved_email_goes_to_production(self):
        self.quote.signed_at = timezone.now()

        self.assertTrue(notifications.send_approved_email(self.quote))

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ['producao@example.com'])
        self.assertIn(self.quote.quote_number, message.subject)
        self.assertIn('R$ 300,00', message.body)
        self.assertIn('Cartão de visita', message.body)

    def test_rejected_email_goes_to_creator(self):
        self.quote.rejection_reason = 'Prazo'
        self.assertTrue(notifications.send_rejected_email(self.quote))
        self.assertEqual(mail.outbox[0].to, ['vendas@grafica.example'])
        self.assertIn('Prazo', mail.outbox[0].body)

    def test_creator_username_used_when_it_is_an_address(self):
        user = get_user_model().objects.create_user(username='ana@grafica.example', password='x')
        self.quote.created_by_id = str(user.pk)
        self.assertEqual(notifications.creator_email(self.quote), 'ana@grafica.example')

    def test_unknown_creator(self):
        self.quote.created_by_id = None
        self.assertFalse(notifications.send_rejected_email(self.quote))
        self.quote.created_by_id = 'not-a-number'
        self.assertIsNone(notifications.creator_email(self.quote))
        self.assertEqual(mail.outbox, [])

    @override_settings(EMAIL_ENABLED=False)
    def test_email_disabled(self):
        self.assertFalse(notifications.send_approved_email(self.quote))
        self.assertEqual(mail.outbox, [])

    def test_smtp_failure_is_swallowed(self):
        with patch('quotes.notifications.send_mail', side_effect=OSError("connection refused")):
            self.assertFalse(notifications.send_approved_email(self.quote))

    @responses.activate
    def test_webhook_payload(self):
        responses.add(responses.POST, SIGNED_HOOK, json={'ok': True}, status=200)

        self.assertTrue(notifications.post_webhook(self.quote, notifications.EVENT_SIGNED))

        request = responses.calls[0].request
        body = json.loads(request.body)
        self.assertEqual(body['event'], 'quote.signed')
        self.assertEqual(body['data']['quoteNumber'], self.quote.quote_number)
        self.assertEqual(body['data']['totalPrice'], '300.00')
        self.assertEqual(request.headers['X-Quote-Event'], 'quote.signed')

    @responses.activate
    def test_rejected_webhook_url(self):
        responses.add(responses.POST, REJECTED_HOOK, status=204)
        self.assertTrue(notifications.post_webhook(self.quote, notifications.EVENT_REJECTED))

    @responses.activate
    def test_webhook_failures_are_swallowed(self):
        responses.add(responses.POST, SIGNED_HOOK, status=500)
        self.assertFalse(notifications.post_webhook(self.quote, notifications.EVENT_SIGNED))

        responses.replace(responses.POST, SIGNED_HOOK, body=requests.Timeout("slow"))
        self.assertFalse(notifications.post_webhook(self.quote, notifications.EVENT_SIGNED))

    @override_settings(WEBHOOK_QUOTE_SIGNED='')
    def test_webhook_not_configured(self):
        self.assertFalse(notifications.post_webhook(self.quote, notifications.EVENT_SIGNED))

    def test_format_currency(self):
        self.assertEqual(notifications.format_currency('1234567.5'), 'R$ 1.234.567,50')


class TestTasks(NotificationTestCase):
    def test_tasks_skip_missing_quote(self):
        missing = '00000000-0000-4000-8000-000000000000'
        self.assertFalse(send_quote_approved_email(missing))
        self.assertFalse(send_quote_rejected_email(missing))
        self.assertFalse(post_quote_webhook(missing, 'quote.signed'))

    def test_approved_email_task(self):
        self.assertTrue(send_quote_approved_email(str(self.quote.pk)))
        self.assertEqual(len(mail.outbox), 1)


class TestNotifier(NotificationTestCase):
    def test_tasks_queued_on_commit(self):
        notifier = QuoteNotifier()
        with patch('quotes.dispatch.tasks') as tasks:
            with self.captureOnCommitCallbacks() as callbacks:
                notifier.quote_approved(self.quote)
            tasks.send_quote_approved_email.delay.assert_not_called()

            for callback in callbacks:
                callback()

        tasks.send_quote_approved_email.delay.assert_called_once_with(str(self.quote.pk))
        tasks.post_quote_webhook.delay.assert_called_once_with(str(self.quote.pk), 'quote.signed')

    def test_broker_failure_is_swallowed(self):
        task = MagicMock()
        task.delay.side_effect = ConnectionError("broker down")
        QuoteNotifier()._enqueue(task, ('quote-id',))
        task.delay.assert_called_once_with('quote-id')

    @responses.activate
    def test_confirm_end_to_end(self):
        responses.add(responses.POST, SIGNED_HOOK, status=200)

        with self.captureOnCommitCallbacks(execute=True):
            SignatureService().confirm(str(self.quote.signature_token), '10.0.0.1', 'Mozilla/5.0')

        self.assertEqual(Quote.objects.get(pk=self.quote.pk).status, Quote.STATUS_APPROVED)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['producao@example.com'])
        self.assertEqual(len(responses.calls), 1)
        self.assertEqual(json.loads(responses.calls[0].request.body)['data']['status'], 'approved')

    @responses.activate
    def test_webhook_outage_does_not_affect_rejection(self):
        responses.add(responses.POST, REJECTED_HOOK, body=requests.ConnectionError("down"))

        with self.captureOnCommitCallbacks(execute=True):
            quote = SignatureService().reject(str(self.quote.signature_token), reason='Caro')

        self.assertEqual(quote.status, Quote.STATUS_REJECTED)
        self.assertEqual(mail.outbox[0].to, ['vendas@grafica.example'])
