from core.exceptions import ValidationError
from core.http import ApiView, client_ip, json_response, user_agent
from quotes.serializers import link_to_dict, quote_to_dict, view_to_dict
from quotes.services import QuoteService
from quotes.signature import SignatureService


def _creator(request):
    user = request.user
    if not user.is_authenticated:
        return None, None
    return str(user.pk), user.get_full_name() or user.get_username()


class QuoteApiView(ApiView):
    service_class = QuoteService

    @property
    def service(self):
        return self.service_class()


class QuoteListView(QuoteApiView):
    error_message = 'Failed to fetch quotes'

    def get(self, request):
        quotes = self.service.list(
            status=request.GET.get('status') or None,
            search=request.GET.get('search') or None,
            start_date=request.GET.get('startDate') or None,
            end_date=request.GET.get('endDate') or None,
            created_by_id=request.GET.get('createdBy') or None,
        )
        return json_response([quote_to_dict(q) for q in quotes])

    def post(self, request):
        created_by_id, created_by_name = _creator(request)
        quote = self.service.create(
            self.json_body(request),
            created_by_id=created_by_id,
            created_by_name=created_by_name,
        )
        return json_response(quote_to_dict(quote), status=201)


class QuoteDetailView(QuoteApiView):
    def get(self, request, quote_id):
        return json_response(quote_to_dict(self.service.get(quote_id)))

    def put(self, request, quote_id):
        quote = self.service.update(quote_id, self.json_body(request))
        return json_response(quote_to_dict(quote))

    def delete(self, request, quote_id):
        self.service.delete(quote_id)
        return json_response({'message': 'Quote deleted'})


class SignatureLinkView(QuoteApiView):
    error_message = 'Failed to generate signature link'

    def post(self, request, quote_id):
        return json_response(link_to_dict(self.service.generate_signature_link(quote_id)))


class RegenerateLinkView(QuoteApiView):
    error_message = 'Failed to regenerate signature link'

    def post(self, request, quote_id):
        return json_response(link_to_dict(self.service.regenerate_link(quote_id)))


class QuoteViewsView(QuoteApiView):
    error_message = 'Failed to fetch quote views'

    def get(self, request, quote_id):
        return json_response([view_to_dict(v) for v in self.service.list_views(quote_id)])


class ConvertQuoteView(QuoteApiView):
    def post(self, request, quote_id):
        quote = self.service.mark_converted(quote_id, self.json_body(request).get('orderId'))
        return json_response(quote_to_dict(quote))


class SignatureApiView(ApiView):
    """Customer-facing endpoints, reachable with nothing but the link token."""

    public = True
    service_class = SignatureService

    @property
    def service(self):
        return self.service_class()


def _geolocation(body):
    geolocation = body.get('geolocation')
    if geolocation is not None and not isinstance(geolocation, dict):
        raise ValidationError("geolocation must be an object")
    return geolocation


class SignatureView(SignatureApiView):
    error_message = 'Failed to load quote'

    def get(self, request, token):
        return json_response(self.service.get_by_token(token))


class SignatureRecordView(SignatureApiView):
    error_message = 'Failed to record view'

    def post(self, request, token):
        body = self.json_body(request)
        self.service.record_view(
            token,
            ip_address=client_ip(request),
            user_agent=user_agent(request),
            geolocation=_geolocation(body),
        )
        return json_response({'success': True})


class SignatureConfirmView(SignatureApiView):
    error_message = 'Failed to confirm signature'

    def post(self, request, token):
        body = self.json_body(request)
        quote = self.service.confirm(
            token,
            ip_address=client_ip(request),
            user_agent=user_agent(request),
            geolocation=_geolocation(body),
        )
        return json_response({
            'success': True,
            'message': 'Quote approved',
            'quoteNumber': quote.quote_number,
        })


class SignatureRejectView(SignatureApiView):
    error_message = 'Failed to reject quote'

    def post(self, request, token):
        body = self.json_body(request)
        quote = self.service.reject(
            token,
            reason=body.get('reason'),
            ip_address=client_ip(request),
            user_agent=user_agent(request),
        )
        return json_response({
            'success': True,
            'message': 'Quote rejected',
            'quoteNumber': quote.quote_number,
        })
