"""
Tests for the notification gate and the in-app inbox.
"""
import datetime
from io import StringIO
from unittest import mock

import pytest
from django.core.management import call_command
from django.db import DatabaseError
from django.test import override_settings
from django.utils import timezone
from rest_framework import status

from apps.notifications.gate import UnknownChannelError, get_dispatcher, notify
from apps.notifications.models import Notification, NotificationFailure, NotificationFailureStatusChoices
from apps.notifications.retries import retry_failed_notifications, retry_failure
from apps.notifications.templates import UnknownTemplateError, render_notification


APPROVED_CONTEXT = {
    'care_request_id': 'cr-1',
    'episode_id': 'EP-1',
    'clinician_name': 'Dr. Sam Rivera',
}


@pytest.mark.django_db
class TestNotify:

    def test_email_delivered(self, mailoutbox, metric_value):
        before = metric_value('notifications_total', channel='email', template='care_request_approved', result='delivered')

        result = notify('email', 'care-team@clinic.test', 'care_request_approved', {
            'care_request_id': 'cr-1',
            'episode_id': 'EP-1',
            'clinician_name': 'Dr. Sam Rivera',
        })

        assert result.delivered is True
        assert result.error is None
        assert mailoutbox[0].subject == 'Care request approved: episode EP-1'
        assert 'Dr. Sam Rivera' in mailoutbox[0].body
        assert metric_value(
            'notifications_total', channel='email', template='care_request_approved', result='delivered'
        ) == before + 1

    def test_in_app_creates_row(self, clinician_user):
        result = notify('in_app', clinician_user, 'new_episode_assigned', {
            'episode_id': 'EP-1',
            'episode_type': 'Neurological',
            'body_region': 'Head',
        })

        assert result.delivered is True
        notification = Notification.objects.get(recipient=clinician_user)
        assert notification.notification_type == 'new_episode_assigned'
        assert notification.link == '/episodes/EP-1'
        assert '(Head)' in notification.message

    def test_missing_recipient_is_skipped(self, mailoutbox):
        result = notify('email', None, 'patient_welcome', {})

        assert result.skipped is True
        assert result.delivered is False
        assert result.error == 'no_recipient'
        assert mailoutbox == []

    @override_settings(NOTIFICATIONS_ENABLED=False)
    def test_disabled_notifications_are_skipped(self, mailoutbox):
        result = notify('email', 'jane.doe@example.com', 'patient_welcome', {})

        assert result.skipped is True
        assert result.error == 'disabled'
        assert mailoutbox == []

    def test_dispatcher_failure_never_raises(self, metric_value):
        before = metric_value('notifications_total', channel='email', template='patient_welcome', result='failed')

        with mock.patch('apps.notifications.dispatchers.send_mail', side_effect=ConnectionRefusedError):
            result = notify('email', 'jane.doe@example.com', 'patient_welcome', {}, entity_id='EP-1', step='welcome')

        assert result.delivered is False
        assert result.skipped is False
        assert result.error == 'ConnectionRefusedError'
        assert metric_value(
            'notifications_total', channel='email', template='patient_welcome', result='failed'
        ) == before + 1

    def test_failure_is_recorded_for_retry(self):
        with mock.patch('apps.notifications.dispatchers.send_mail', side_effect=ConnectionRefusedError('refused')):
            notify(
                'email', 'jane.doe@example.com', 'care_request_approved', APPROVED_CONTEXT,
                entity_type='Episode', entity_id='EP-1', step='care_team_notification',
            )

        failure = NotificationFailure.objects.get()
        assert failure.channel == 'email'
        assert failure.template == 'care_request_approved'
        assert failure.recipient_ref == 'jane.doe@example.com'
        assert failure.context == APPROVED_CONTEXT
        assert (failure.entity_type, failure.entity_id, failure.step) == ('Episode', 'EP-1', 'care_team_notification')
        assert failure.error_type == 'ConnectionRefusedError'
        assert failure.status == NotificationFailureStatusChoices.PENDING
        assert failure.max_retries == 3

    def test_in_app_failure_references_user_id(self, clinician_user):
        with mock.patch.object(Notification.objects, 'create', side_effect=DatabaseError('locked')):
            result = notify('in_app', clinician_user, 'new_episode_assigned', {'episode_id': 'EP-1'})

        assert result.error == 'DatabaseError'
        assert NotificationFailure.objects.get().recipient_ref == str(clinician_user.id)

    def test_failure_log_write_error_is_swallowed(self):
        with mock.patch('apps.notifications.dispatchers.send_mail', side_effect=ConnectionRefusedError):
            with mock.patch.object(NotificationFailure.objects, 'create', side_effect=DatabaseError('disk full')):
                result = notify('email', 'jane.doe@example.com', 'care_request_approved', APPROVED_CONTEXT)

        assert result.delivered is False
        assert result.error == 'ConnectionRefusedError'
        assert NotificationFailure.objects.count() == 0

    def test_failure_not_recorded_when_disabled_by_caller(self):
        with mock.patch('apps.notifications.dispatchers.send_mail', side_effect=ConnectionRefusedError):
            notify('email', 'jane.doe@example.com', 'care_request_approved', APPROVED_CONTEXT, record_failure=False)

        assert NotificationFailure.objects.count() == 0

    def test_unknown_channel_is_reported(self):
        result = notify('sms', '555-0101', 'patient_welcome', {})

        assert result.delivered is False
        assert result.error == 'UnknownChannelError'

    def test_unknown_template_is_reported(self, clinician_user):
        result = notify('in_app', clinician_user, 'does_not_exist', {})

        assert result.delivered is False
        assert result.error == 'UnknownTemplateError'
        assert Notification.objects.count() == 0

    def test_get_dispatcher_unknown_channel(self):
        with pytest.raises(UnknownChannelError):
            get_dispatcher('pager')


class TestTemplates:

    def test_context_override(self):
        rendered = render_notification('patient_welcome', {
            'subject_template': 'Hello from {{ clinic_name }}',
            'body_template': 'See you soon, {{ first_name }}.',
            'clinic_name': 'Harbour Physio',
            'first_name': 'Jane',
        })

        assert rendered.subject == 'Hello from Harbour Physio'
        assert rendered.body == 'See you soon, Jane.'

    def test_no_html_escaping(self):
        rendered = render_notification('new_episode_assigned', {
            'episode_id': 'EP-1',
            'episode_type': 'Neck & Shoulder',
            'body_region': 'Neck',
        })

        assert 'Neck & Shoulder' in rendered.body

    def test_unknown_template(self):
        with pytest.raises(UnknownTemplateError):
            render_notification('nope', {})


@pytest.mark.django_db
class TestNotificationInbox:

    def test_list_only_own_notifications(self, clinician_client, clinician_user, admin_user):
        Notification.objects.create(recipient=clinician_user, notification_type='t', title='Mine')
        Notification.objects.create(recipient=admin_user, notification_type='t', title='Not mine')

        response = clinician_client.get('/api/v1/notifications/')

        assert response.status_code == status.HTTP_200_OK
        assert [row['title'] for row in response.data['results']] == ['Mine']

    def test_mark_read(self, clinician_client, clinician_user):
        notification = Notification.objects.create(recipient=clinician_user, notification_type='t', title='Mine')

        response = clinician_client.post(f'/api/v1/notifications/{notification.id}/read/')
        unread = clinician_client.get('/api/v1/notifications/', {'unread': 'true'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_read'] is True
        assert unread.data['results'] == []

    def test_cannot_read_others(self, clinician_client, admin_user):
        notification = Notification.objects.create(recipient=admin_user, notification_type='t', title='Theirs')

        response = clinician_client.post(f'/api/v1/notifications/{notification.id}/read/')

        assert response.status_code == status.HTTP_404_NOT_FOUND


def record_failure(**overrides):
    fields = {
        'channel': 'email',
        'template': 'care_request_approved',
        'recipient_ref': 'care-team@clinic.test',
        'context': dict(APPROVED_CONTEXT),
        'entity_type': 'Episode',
        'entity_id': 'EP-1',
        'step': 'care_team_notification',
        'error_type': 'ConnectionRefusedError',
    }
    fields.update(overrides)
    return NotificationFailure.objects.create(**fields)


@pytest.mark.django_db
class TestRetryFailedNotifications:

    @pytest.fixture(autouse=True)
    def short_backoff(self, settings):
        settings.NOTIFICATION_RETRY_BACKOFF_SECONDS = 60

    def test_due_failure_is_delivered_and_resolved(self, mailoutbox, metric_value):
        failure = record_failure()
        before = metric_value('notification_retries_total', channel='email', result='delivered')

        summary = retry_failed_notifications()

        assert summary.attempted == 1
        assert summary.delivered == 1
        assert mailoutbox[0].to == ['care-team@clinic.test']
        assert mailoutbox[0].subject == 'Care request approved: episode EP-1'

        failure.refresh_from_db()
        assert failure.status == NotificationFailureStatusChoices.RESOLVED
        assert failure.retry_count == 1
        assert failure.resolved_at is not None
        assert metric_value('notification_retries_total', channel='email', result='delivered') == before + 1

    def test_failed_retry_backs_off(self):
        failure = record_failure(retry_count=1)
        now = timezone.now()

        with mock.patch('apps.notifications.dispatchers.send_mail', side_effect=ConnectionRefusedError):
            summary = retry_failed_notifications(now=now)

        assert summary.failed == 1
        failure.refresh_from_db()
        assert failure.status == NotificationFailureStatusChoices.PENDING
        assert failure.retry_count == 2
        assert failure.last_retry_at == now
        assert failure.next_retry_at == now + datetime.timedelta(seconds=240)
        # The retry updates its own row instead of logging a new failure
        assert NotificationFailure.objects.count() == 1

    def test_last_attempt_exhausts(self):
        failure = record_failure(retry_count=2, max_retries=3)

        with mock.patch('apps.notifications.dispatchers.send_mail', side_effect=ConnectionRefusedError):
            summary = retry_failed_notifications()

        assert summary.exhausted == 1
        failure.refresh_from_db()
        assert failure.status == NotificationFailureStatusChoices.EXHAUSTED
        assert failure.retry_count == 3
        assert retry_failed_notifications().attempted == 0

    def test_not_yet_due_is_left_alone(self, mailoutbox):
        record_failure(next_retry_at=timezone.now() + datetime.timedelta(minutes=5))

        assert retry_failed_notifications().attempted == 0
        assert mailoutbox == []

    def test_in_app_failure_is_retried_by_user_id(self, clinician_user):
        record_failure(
            channel='in_app',
            template='new_episode_assigned',
            recipient_ref=str(clinician_user.id),
            context={'episode_id': 'EP-1', 'episode_type': 'Neurological', 'body_region': 'Head'},
        )

        summary = retry_failed_notifications()

        assert summary.delivered == 1
        assert Notification.objects.get(recipient=clinician_user).link == '/episodes/EP-1'

    def test_stale_copy_is_not_sent_twice(self, mailoutbox):
        failure = record_failure()
        stale = NotificationFailure.objects.get(pk=failure.pk)

        retry_failure(failure)
        assert retry_failure(stale) is None
        assert len(mailoutbox) == 1

    @override_settings(NOTIFICATIONS_ENABLED=False)
    def test_nothing_retried_while_disabled(self):
        failure = record_failure()

        assert retry_failed_notifications().attempted == 0
        failure.refresh_from_db()
        assert failure.retry_count == 0

    def test_management_command(self, mailoutbox):
        record_failure()
        out = StringIO()

        call_command('retry_failed_notifications', stdout=out)
        call_command('retry_failed_notifications', stdout=out)

        output = out.getvalue()
        assert 'Retried 1: 1 delivered, 0 failed, 0 exhausted' in output
        assert 'No notifications due for retry' in output
        assert len(mailoutbox) == 1


@pytest.mark.django_db
class TestNotificationFailureAPI:

    def test_admin_lists_failures(self, admin_client):
        record_failure()
        record_failure(status=NotificationFailureStatusChoices.RESOLVED)

        response = admin_client.get('/api/v1/notifications/failures/', {'status': 'pending'})

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['results']) == 1
        assert response.data['results'][0]['step'] == 'care_team_notification'
        assert 'recipient_ref' not in response.data['results'][0]

    def test_admin_retries_one(self, admin_client, mailoutbox):
        failure = record_failure(next_retry_at=timezone.now() + datetime.timedelta(hours=1))

        response = admin_client.post(f'/api/v1/notifications/failures/{failure.id}/retry/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['delivered'] is True
        assert response.data['status'] == NotificationFailureStatusChoices.RESOLVED
        assert len(mailoutbox) == 1

    def test_resolved_failure_is_not_retried(self, admin_client, mailoutbox):
        failure = record_failure(status=NotificationFailureStatusChoices.RESOLVED)

        response = admin_client.post(f'/api/v1/notifications/failures/{failure.id}/retry/')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'NOT_RETRYABLE'
        assert mailoutbox == []

    def test_clinician_cannot_see_failures(self, clinician_client):
        response = clinician_client.get('/api/v1/notifications/failures/')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_inbox_routes_still_work(self, clinician_client, clinician_user):
        notification = Notification.objects.create(recipient=clinician_user, notification_type='t', title='Mine')

        response = clinician_client.get(f'/api/v1/notifications/{notification.id}/')

        assert response.status_code == status.HTTP_200_OK
