"""
Tests for the patient discharge letter workflow (draft -> confirm -> send).

Critical Behavior:
- Every action requires a CLOSED episode
- A letter is sent at most once, and only after clinician confirmation
- Blocked attempts are recorded in the lifecycle ledger
"""
from unittest import mock

import pytest
from rest_framework import status

from apps.discharge.models import DischargeLetterStatusChoices, DischargeLetterTask
from apps.discharge.services import DischargeLetterError, confirm_letter, generate_draft, send_letter
from apps.ledger.models import LifecycleEvent


def letter_url(episode_id):
    return f'/api/v1/episodes/{episode_id}/discharge-letter/'


@pytest.mark.django_db
class TestDischargeLetterEndpoint:

    def test_get_before_draft_returns_no_task(self, front_desk_client, closed_episode):
        response = front_desk_client.get(letter_url(closed_episode.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'success': True, 'task': None}

    def test_full_workflow(
        self, clinician_client, closed_episode, clinician_user, mailoutbox, django_capture_on_commit_callbacks
    ):
        url = letter_url(closed_episode.id)

        drafted = clinician_client.post(url, {'action': 'draft'}, format='json')
        assert drafted.status_code == status.HTTP_200_OK
        assert drafted.data['task']['status'] == DischargeLetterStatusChoices.DRAFT
        letter = drafted.data['task']['draft_letter']
        assert letter['episode_id'] == closed_episode.id
        assert letter['care_targets'][0]['name'] == 'Lower Back'
        assert letter['letter']['opening'].startswith('Dear Jane,')
        assert 'Phone: 555-0100' in letter['letter']['when_to_reach_out']

        confirmed = clinician_client.post(url, {'action': 'confirm'}, format='json')
        assert confirmed.status_code == status.HTTP_200_OK
        assert confirmed.data['task']['status'] == DischargeLetterStatusChoices.CONFIRMED
        assert confirmed.data['task']['confirmed_by'] == clinician_user.id

        with django_capture_on_commit_callbacks(execute=True):
            sent = clinician_client.post(url, {'action': 'send'}, format='json')
        assert sent.status_code == status.HTTP_200_OK
        assert sent.data['task']['status'] == DischargeLetterStatusChoices.SENT
        assert sent.data['task']['sent_to'] == 'jane.doe@example.com'

        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == ['jane.doe@example.com']
        assert mailoutbox[0].subject == 'Your discharge summary from Harbour Physio'
        assert 'Dear Jane,' in mailoutbox[0].body

        event_types = list(
            LifecycleEvent.objects.filter(entity_id=closed_episode.id).values_list('event_type', flat=True)
        )
        assert event_types == [
            'PATIENT_EPISODE_DISCHARGE_LETTER_DRAFTED',
            'PATIENT_EPISODE_DISCHARGE_LETTER_CONFIRMED',
            'PATIENT_EPISODE_DISCHARGE_LETTER_SENT',
        ]

    def test_default_action_is_draft(self, clinician_client, closed_episode):
        response = clinician_client.post(letter_url(closed_episode.id), {}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['task']['status'] == DischargeLetterStatusChoices.DRAFT

    def test_unknown_action(self, clinician_client, closed_episode):
        response = clinician_client.post(letter_url(closed_episode.id), {'action': 'publish'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'INVALID_ACTION'

    def test_open_episode_is_blocked(self, clinician_client, episode):
        response = clinician_client.post(letter_url(episode.id), {'action': 'draft'}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'EPISODE_NOT_CLOSED'
        assert DischargeLetterTask.objects.count() == 0
        blocked = LifecycleEvent.objects.get(event_type='PATIENT_EPISODE_DISCHARGE_LETTER_BLOCKED_NOT_CLOSED')
        assert blocked.metadata == {'attempted_action': 'draft', 'current_status': 'ACTIVE'}

    def test_unknown_episode(self, clinician_client, db):
        response = clinician_client.post(letter_url('EP-0-MISSING00'), {'action': 'draft'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'EPISODE_NOT_FOUND'

    def test_front_desk_cannot_send(self, front_desk_client, closed_episode):
        response = front_desk_client.post(letter_url(closed_episode.id), {'action': 'draft'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestDischargeLetterRules:

    def test_send_requires_confirmation(self, closed_episode):
        generate_draft(closed_episode.id)

        with pytest.raises(DischargeLetterError) as exc_info:
            send_letter(closed_episode.id)

        assert exc_info.value.code == 'CONFIRMATION_REQUIRED'
        assert DischargeLetterTask.objects.get().status == DischargeLetterStatusChoices.DRAFT

    def test_send_without_task_requires_confirmation(self, closed_episode):
        with pytest.raises(DischargeLetterError) as exc_info:
            send_letter(closed_episode.id)

        assert exc_info.value.code == 'CONFIRMATION_REQUIRED'

    def test_confirm_without_draft(self, closed_episode):
        with pytest.raises(DischargeLetterError) as exc_info:
            confirm_letter(closed_episode.id)

        assert exc_info.value.code == 'NO_DRAFT'

    def test_confirm_twice(self, closed_episode):
        generate_draft(closed_episode.id)
        confirm_letter(closed_episode.id)

        with pytest.raises(DischargeLetterError) as exc_info:
            confirm_letter(closed_episode.id)

        assert exc_info.value.code == 'ALREADY_CONFIRMED'

    def test_redraft_resets_confirmation(self, closed_episode, clinician_user):
        generate_draft(closed_episode.id)
        confirm_letter(closed_episode.id, actor_user=clinician_user)

        task = generate_draft(closed_episode.id)

        assert task.status == DischargeLetterStatusChoices.DRAFT
        assert task.confirmed_at is None
        assert task.confirmed_by is None
        assert DischargeLetterTask.objects.count() == 1

    def test_sent_letter_is_final(self, closed_episode, mailoutbox, django_capture_on_commit_callbacks):
        generate_draft(closed_episode.id)
        confirm_letter(closed_episode.id)
        with django_capture_on_commit_callbacks(execute=True):
            send_letter(closed_episode.id)

        for action in (send_letter, confirm_letter, generate_draft):
            with pytest.raises(DischargeLetterError) as exc_info:
                action(closed_episode.id)
            assert exc_info.value.code == 'ALREADY_SENT'

        assert len(mailoutbox) == 1
        assert LifecycleEvent.objects.filter(
            event_type='PATIENT_EPISODE_DISCHARGE_LETTER_BLOCKED_ALREADY_SENT'
        ).count() == 3

    def test_missing_patient_email_still_marks_sent(
        self, closed_episode, mailoutbox, metric_value, django_capture_on_commit_callbacks
    ):
        closed_episode.patient.email = None
        closed_episode.patient.save()
        before = metric_value(
            'notifications_total', channel='email', template='patient_discharge_letter', result='skipped'
        )

        generate_draft(closed_episode.id)
        confirm_letter(closed_episode.id)
        with django_capture_on_commit_callbacks(execute=True):
            task = send_letter(closed_episode.id)

        assert task.status == DischargeLetterStatusChoices.SENT
        assert task.sent_to == ''
        assert mailoutbox == []
        assert metric_value(
            'notifications_total', channel='email', template='patient_discharge_letter', result='skipped'
        ) == before + 1

    def test_notification_step_failure_still_marks_sent(
        self, closed_episode, mailoutbox, metric_value, django_capture_on_commit_callbacks
    ):
        before = metric_value('notification_step_failures_total', flow='discharge_letter')

        generate_draft(closed_episode.id)
        confirm_letter(closed_episode.id)
        with mock.patch('apps.discharge.services.notify', side_effect=RuntimeError('template cache down')):
            with django_capture_on_commit_callbacks(execute=True):
                task = send_letter(closed_episode.id)

        assert task.status == DischargeLetterStatusChoices.SENT
        assert mailoutbox == []
        assert metric_value('notification_step_failures_total', flow='discharge_letter') == before + 1
