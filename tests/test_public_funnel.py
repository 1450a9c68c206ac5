"""
Tests for the public funnel endpoints (leads, care requests, intake forms).

Public endpoints:
- Require NO authentication
- Are throttled per IP
- Never echo submitted clinical data back
"""
from unittest import mock

import pytest
from rest_framework import status

from apps.intake.models import CareRequest, CareRequestStatusChoices, IntakeForm, Lead
from apps.intake.services import advance_lead_checkpoint
from apps.intake.views_public import IntakeSubmissionThrottle
from apps.ledger.models import LifecycleEvent

LEADS_URL = '/public/leads/'
CARE_REQUESTS_URL = '/public/care-requests/'
INTAKE_FORMS_URL = '/public/intake-forms/'


@pytest.mark.django_db
class TestLeadCapture:

    def test_create_lead(self, api_client):
        response = api_client.post(LEADS_URL, {
            'full_name': '  Jane Doe ',
            'email': 'Jane.Doe@Example.com',
            'primary_concern': 'Migraines',
            'utm_source': 'newsletter',
            'pillar_origin': 'neuro',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert set(response.data) == {'success', 'lead_id'}
        lead = Lead.objects.get(pk=response.data['lead_id'])
        assert lead.full_name == 'Jane Doe'
        assert lead.email == 'jane.doe@example.com'
        assert lead.system_category == 'Migraines'
        assert lead.checkpoint_status == 'started'

        event = LifecycleEvent.objects.get(event_type='LEAD_CREATED')
        assert event.actor_type == 'patient'
        assert event.metadata['utm_source'] == 'newsletter'

    def test_email_or_phone_required(self, api_client):
        response = api_client.post(LEADS_URL, {'full_name': 'Jane Doe'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'VALIDATION_ERROR'
        assert Lead.objects.count() == 0

    def test_phone_only_is_accepted(self, api_client):
        response = api_client.post(LEADS_URL, {'full_name': 'Jane Doe', 'phone': '555-0101'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED

    def test_burst_throttle(self, api_client):
        statuses = [
            api_client.post(LEADS_URL, {'full_name': 'Jane Doe', 'phone': '555-0101'}, format='json').status_code
            for _ in range(3)
        ]

        assert statuses == [201, 201, 429]


@pytest.mark.django_db
class TestLeadCheckpoints:

    def test_checkpoint_only_moves_forward(self, api_client, lead):
        url = f'{LEADS_URL}{lead.id}/checkpoint/'

        forward = api_client.post(url, {'checkpoint': 'intake_started'}, format='json')
        backward = api_client.post(url, {'checkpoint': 'severity_checked'}, format='json')
        repeat = api_client.post(url, {'checkpoint': 'intake_started'}, format='json')

        assert forward.data['advanced'] is True
        assert backward.data['advanced'] is False
        assert repeat.data['advanced'] is False
        lead.refresh_from_db()
        assert lead.checkpoint_status == 'intake_started'
        assert lead.intake_started_at is not None
        assert lead.severity_checked_at is None
        assert LifecycleEvent.objects.filter(event_type='LEAD_CHECKPOINT_INTAKE_STARTED').count() == 1

    def test_unknown_checkpoint(self, api_client, lead):
        response = api_client.post(f'{LEADS_URL}{lead.id}/checkpoint/', {'checkpoint': 'paid'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'VALIDATION_ERROR'

    def test_service_skips_checkpoints(self, lead):
        assert advance_lead_checkpoint(lead.id, 'episode_opened') is True
        assert advance_lead_checkpoint(lead.id, 'intake_completed') is False

        lead.refresh_from_db()
        assert lead.checkpoint_status == 'episode_opened'


@pytest.mark.django_db
class TestPublicSubmissions:

    def test_submit_care_request(self, api_client, lead, jane_doe_payload):
        response = api_client.post(
            CARE_REQUESTS_URL, {'payload': jane_doe_payload, 'lead_id': str(lead.id)}, format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert set(response.data) == {'success', 'care_request_id'}
        care_request = CareRequest.objects.get(pk=response.data['care_request_id'])
        assert care_request.status == CareRequestStatusChoices.SUBMITTED
        assert care_request.intake_payload == jane_doe_payload
        assert care_request.lead_id == lead.id

        event = LifecycleEvent.objects.get(event_type='CARE_REQUEST_SUBMITTED')
        assert event.metadata['complaint_count'] == 1
        assert 'Jane' not in str(event.metadata)

    def test_care_request_needs_patient_name(self, api_client):
        response = api_client.post(CARE_REQUESTS_URL, {'payload': {'email': 'a@b.test'}}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'payload' in response.data['details']

    def test_legal_name_is_accepted(self, api_client):
        response = api_client.post(CARE_REQUESTS_URL, {'payload': {'legalName': 'Jane Q. Doe'}}, format='json')

        assert response.status_code == status.HTTP_201_CREATED

    def test_submit_intake_form_advances_lead(self, api_client, lead):
        response = api_client.post(INTAKE_FORMS_URL, {
            'patient_name': 'Jane Doe',
            'email': 'JANE.DOE@example.com',
            'chief_complaint': 'Neck pain',
            'pain_level': 5,
            'complaints': [{'region': 'Neck'}],
            'lead_id': str(lead.id),
            'preferred_contact_time': 'mornings',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        intake_form = IntakeForm.objects.get(pk=response.data['intake_form_id'])
        assert intake_form.email == 'jane.doe@example.com'
        assert intake_form.payload['preferred_contact_time'] == 'mornings'

        lead.refresh_from_db()
        assert lead.checkpoint_status == 'intake_completed'

    def test_pain_level_out_of_range(self, api_client):
        response = api_client.post(INTAKE_FORMS_URL, {'patient_name': 'Jane Doe', 'pain_level': 11}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'pain_level' in response.data['details']

    def test_intake_submission_throttle(self, api_client):
        with mock.patch.object(IntakeSubmissionThrottle, 'rate', '1/hour', create=True):
            first = api_client.post(CARE_REQUESTS_URL, {'payload': {'patient_name': 'A'}}, format='json')
            second = api_client.post(CARE_REQUESTS_URL, {'payload': {'patient_name': 'B'}}, format='json')

        assert first.status_code == status.HTTP_201_CREATED
        assert second.status_code == status.HTTP_429_TOO_MANY_REQUESTS
