"""
Tests for the signed intake webhook.

Signature format:
- Header: Intake-Webhook-Signature
- Format: t=<timestamp>,v1=<signature>
- Signed payload: <timestamp>.<raw_body>
- Algorithm: HMAC-SHA256
"""
import hashlib
import hmac
import json
import time

import pytest
from django.test import override_settings
from rest_framework import status

from apps.episodes.models import Episode

WEBHOOK_URL = '/api/integrations/intake/webhook/'
SECRET = 'test-webhook-secret'


def sign(body, secret=SECRET, timestamp=None):
    timestamp = str(timestamp if timestamp is not None else int(time.time()))
    signature = hmac.new(secret.encode(), f'{timestamp}.'.encode() + body, hashlib.sha256).hexdigest()
    return f't={timestamp},v1={signature}'


def event_body(intake_form_id, event='intake.completed'):
    return json.dumps({'event': event, 'payload': {'intake_form_id': str(intake_form_id)}}).encode()


def post_signed(client, body, header=None):
    return client.post(
        WEBHOOK_URL,
        data=body,
        content_type='application/json',
        HTTP_INTAKE_WEBHOOK_SIGNATURE=header if header is not None else sign(body),
    )


@pytest.mark.django_db
class TestWebhookSignature:

    def test_missing_signature_rejected(self, api_client, intake_form):
        response = api_client.post(WEBHOOK_URL, data=event_body(intake_form.id), content_type='application/json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert 'signature' in response.data['error'].lower()

    def test_wrong_secret_rejected(self, api_client, intake_form):
        body = event_body(intake_form.id)

        response = post_signed(api_client, body, sign(body, secret='other-secret'))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['error'] == 'Invalid signature'

    def test_tampered_body_rejected(self, api_client, intake_form):
        header = sign(event_body(intake_form.id))

        response = post_signed(api_client, event_body('00000000-0000-0000-0000-000000000000'), header)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_expired_timestamp_rejected(self, api_client, intake_form):
        body = event_body(intake_form.id)

        response = post_signed(api_client, body, sign(body, timestamp=int(time.time()) - 301))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['error'] == 'Signature timestamp expired'

    def test_malformed_header_rejected(self, api_client, intake_form):
        response = post_signed(api_client, event_body(intake_form.id), 'garbage')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @override_settings(INTAKE_WEBHOOK_SECRET='')
    def test_unconfigured_secret_rejected(self, api_client, intake_form):
        response = post_signed(api_client, event_body(intake_form.id))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert Episode.objects.count() == 0


@pytest.mark.django_db
class TestWebhookEvents:

    def test_intake_completed_converts(self, api_client, intake_form, admin_clinician, metric_value):
        before = metric_value('webhook_requests_total', source='intake', result='success')

        response = post_signed(api_client, event_body(intake_form.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'received'
        assert response.data['success'] is True
        episode = Episode.objects.get(pk=response.data['episodeId'])
        assert episode.source_intake_form_id == intake_form.id
        assert metric_value('webhook_requests_total', source='intake', result='success') == before + 1

    def test_redelivery_returns_same_episode(self, api_client, intake_form, admin_clinician):
        first = post_signed(api_client, event_body(intake_form.id))
        second = post_signed(api_client, event_body(intake_form.id))

        assert second.status_code == status.HTTP_200_OK
        assert second.data['episodeId'] == first.data['episodeId']
        assert second.data['message'] == 'Already converted'
        assert Episode.objects.count() == 1

    def test_precondition_failure_is_acknowledged(self, api_client, intake_form):
        response = post_signed(api_client, event_body(intake_form.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['code'] == 'MISSING_CLINICIAN'
        assert Episode.objects.count() == 0

    def test_unknown_event_ignored(self, api_client, intake_form):
        response = post_signed(api_client, event_body(intake_form.id, event='intake.started'))

        assert response.status_code == status.HTTP_200_OK
        assert 'not processed' in response.data['info']

    def test_missing_intake_form_id(self, api_client, db):
        body = json.dumps({'event': 'intake.completed', 'payload': {}}).encode()

        response = post_signed(api_client, body)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['code'] == 'VALIDATION_ERROR'

    def test_list_body_is_invalid(self, api_client, db, metric_value):
        before = metric_value('webhook_requests_total', source='intake', result='invalid')

        response = post_signed(api_client, b'[1, 2]')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['code'] == 'VALIDATION_ERROR'
        assert response.data['error'] == 'Event body must be a JSON object'
        assert metric_value('webhook_requests_total', source='intake', result='invalid') == before + 1

    def test_string_payload_is_invalid(self, api_client, db):
        body = json.dumps({'event': 'intake.completed', 'payload': 'abc'}).encode()

        response = post_signed(api_client, body)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['code'] == 'VALIDATION_ERROR'
        assert response.data['error'] == 'Event payload must be a JSON object'
        assert Episode.objects.count() == 0

    def test_system_actor_on_ledger(self, api_client, intake_form, admin_clinician):
        from apps.ledger.models import LifecycleEvent

        post_signed(api_client, event_body(intake_form.id))

        converted = LifecycleEvent.objects.get(event_type='INTAKE_FORM_CONVERTED')
        assert converted.actor_type == 'system'
