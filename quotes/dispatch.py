import logging
from functools import partial

from django.db import transaction

from quotes import tasks
from quotes.notifications import EVENT_REJECTED, EVENT_SIGNED

logger = logging.getLogger(__name__)


class QuoteNotifier:
    """Queues the notifications for a signature outcome.

    Tasks are only enqueued once the surrounding transaction commits, and a
    broker failure is logged without affecting the caller.
    """

    def quote_approved(self, quote):
        self._dispatch(tasks.send_quote_approved_email, str(quote.pk))
        self._dispatch(tasks.post_quote_webhook, str(quote.pk), EVENT_SIGNED)

    def quote_rejected(self, quote):
        self._dispatch(tasks.send_quote_rejected_email, str(quote.pk))
        self._dispatch(tasks.post_quote_webhook, str(quote.pk), EVENT_REJECTED)

    def _dispatch(self, task, *args):
        transaction.on_commit(partial(self._enqueue, task, args))

    def _enqueue(self, task, args):
        try:
            task.delay(*args)
        except Exception:
            logger.exception("Could not queue %s for %s", task.name, args[0])
