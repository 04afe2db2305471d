import json
import logging

from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from core.exceptions import DomainError, ValidationError

logger = logging.getLogger(__name__)


def json_response(data, status=200):
    return JsonResponse(data, status=status, encoder=DjangoJSONEncoder, safe=False)


def client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR') or 'unknown'


def user_agent(request):
    return request.META.get('HTTP_USER_AGENT') or 'unknown'


@method_decorator(csrf_exempt, name='dispatch')
class ApiView(View):
    """JSON API view that maps domain errors onto HTTP responses.

    Subclasses set ``public = True`` when the endpoint is reachable without
    authentication; unexpected errors on those never leak internal detail.
    """

    public = False
    error_message = 'Internal server error'

    def dispatch(self, request, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except DomainError as exc:
            return json_response(exc.as_dict(), status=exc.status)
        except Exception as exc:
            logger.exception("Unhandled error in %s %s", request.method, request.path)
            body = {'message': self.error_message}
            if not self.public:
                body['error'] = str(exc)
            return json_response(body, status=500)

    def json_body(self, request):
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except (ValueError, UnicodeDecodeError):
            raise ValidationError("Request body is not valid JSON")
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data


def query_int(request, name, default, minimum=0, maximum=None):
    raw = request.GET.get(name)
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"'{name}' must be an integer")
    if value < minimum or (maximum is not None and value > maximum):
        raise ValidationError(f"'{name}' is out of range")
    return value


def query_bool(request, name, default=False):
    raw = request.GET.get(name)
    if raw in (None, ''):
        return default
    return raw.lower() in ('1', 'true', 'yes', 'on')
