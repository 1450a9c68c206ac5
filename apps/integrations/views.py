"""Integration views - signed inbound webhooks."""
import hashlib
import hmac
import time

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from apps.core.exceptions import PipelineError, unexpected_error_response
from apps.core.observability import get_sanitized_logger, metrics
from apps.episodes.services import convert_intake_to_episode

logger = get_sanitized_logger(__name__)

SIGNATURE_HEADER = 'Intake-Webhook-Signature'
SIGNATURE_MAX_AGE_SECONDS = 300
SIGNATURE_MAX_SKEW_SECONDS = 60

INTAKE_COMPLETED = 'intake.completed'


def verify_webhook_signature(request) -> tuple[bool, str]:
    """
    Verify the intake webhook signature.

    - Header: Intake-Webhook-Signature
    - Format: t=<timestamp>,v1=<signature>
    - Signed payload: <timestamp>.<raw_body>
    - Algorithm: HMAC-SHA256

    Returns:
        (is_valid: bool, error_message: str)
    """
    signature_header = request.headers.get(SIGNATURE_HEADER, '')
    if not signature_header:
        return False, f'Missing {SIGNATURE_HEADER} header'

    secret = settings.INTAKE_WEBHOOK_SECRET
    if not secret:
        return False, 'Webhook secret not configured'

    try:
        parts = {}
        for part in signature_header.split(','):
            key, value = part.split('=', 1)
            parts[key.strip()] = value.strip()
    except ValueError:
        return False, 'Invalid signature format'

    timestamp = parts.get('t')
    signature = parts.get('v1')
    if not timestamp or not signature:
        return False, 'Invalid signature format (missing t= or v1=)'

    try:
        age_seconds = int(time.time()) - int(timestamp)
    except ValueError:
        return False, 'Invalid timestamp format'
    if age_seconds > SIGNATURE_MAX_AGE_SECONDS:
        return False, 'Signature timestamp expired'
    if age_seconds < -SIGNATURE_MAX_SKEW_SECONDS:
        return False, 'Signature timestamp is in the future'

    signed_payload = f'{timestamp}.'.encode() + request.body
    expected = hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()

    if not hmac.compare_digest(signature, expected):
        return False, 'Invalid signature'
    return True, ''


def _received(result, **data):
    metrics.webhook_requests_total.labels(source='intake', result=result).inc()
    return Response({'status': 'received', **data}, status=status.HTTP_200_OK)


def _malformed(part):
    logger.warning('Webhook body malformed', extra={'event': 'webhook.invalid', 'part': part})
    return _received('invalid', code='VALIDATION_ERROR', error=f'Event {part} must be a JSON object')


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def intake_webhook(request):
    """
    Intake form provider webhook.

    Events:
    - intake.completed: converts the submitted intake form into an episode
      (idempotent; redeliveries answer with the existing episode)

    Returns:
    - 401: missing or invalid signature
    - 200: event received; conversion precondition failures are reported
      in the body with their code so the provider does not retry
    - 500: unexpected processing error (provider retries)
    """
    is_valid, error_message = verify_webhook_signature(request)
    if not is_valid:
        metrics.webhook_requests_total.labels(source='intake', result='unauthorized').inc()
        logger.warning(
            'Webhook signature rejected',
            extra={'event': 'webhook.unauthorized', 'reason': error_message}
        )
        return Response({'error': error_message}, status=status.HTTP_401_UNAUTHORIZED)

    if not isinstance(request.data, dict):
        return _malformed('body')
    event_type = request.data.get('event')
    payload = request.data.get('payload') or {}

    if event_type != INTAKE_COMPLETED:
        logger.info('Webhook event ignored', extra={'event': 'webhook.ignored', 'event_type': event_type})
        return _received('ignored', info=f'Event type {event_type} not processed')

    if not isinstance(payload, dict):
        return _malformed('payload')

    intake_form_id = payload.get('intake_form_id')
    if not intake_form_id:
        return _received('invalid', code='VALIDATION_ERROR', error='Missing intake_form_id')

    try:
        result = convert_intake_to_episode(intake_form_id)
    except PipelineError as exc:
        logger.warning(
            'Webhook conversion rejected',
            extra={'event': 'webhook.rejected', 'code': exc.code, 'intake_form_id': str(intake_form_id)}
        )
        return _received('rejected', code=exc.code, error=exc.message)
    except Exception as exc:
        metrics.webhook_requests_total.labels(source='intake', result='failure').inc()
        return unexpected_error_response(exc, 'intake_webhook', intake_form_id=str(intake_form_id))

    return _received('success' if result.created else 'duplicate', **result.as_response_data())
