"""
Tests for write-once and append-only records.

Lifecycle events and intake snapshots are never updated or deleted, and an
episode's source back-reference never changes once set.
"""
import re
from unittest import mock

import pytest
from django.db import DatabaseError

from apps.core.immutability import ImmutableRecordError
from apps.episodes.identifiers import generate_episode_id
from apps.episodes.models import Episode, EpisodeIntakeSnapshot
from apps.episodes.services import approve_care_request
from apps.ledger.models import LifecycleEvent
from apps.ledger.services import SYSTEM_ACTOR, Actor, actor_for_user, record_lifecycle_event

EPISODE_ID_PATTERN = re.compile(r'^EP-\d{13}-[0-9A-Z]{9}$')


def test_episode_id_format():
    ids = {generate_episode_id() for _ in range(50)}

    assert len(ids) == 50
    assert all(EPISODE_ID_PATTERN.match(episode_id) for episode_id in ids)


@pytest.mark.django_db
class TestEpisodeBackReferences:

    def test_source_reference_cannot_be_changed(self, care_request, unassigned_care_request):
        result = approve_care_request(care_request.id)
        episode = Episode.objects.get(pk=result.episode_id)
        assert EPISODE_ID_PATTERN.match(episode.id)

        episode.source_care_request = unassigned_care_request
        with pytest.raises(ImmutableRecordError):
            episode.save()

    def test_source_reference_cannot_be_cleared_in_bulk(self, care_request):
        result = approve_care_request(care_request.id)

        with pytest.raises(ImmutableRecordError):
            Episode.objects.filter(pk=result.episode_id).update(source_care_request=None)

    def test_other_fields_remain_editable(self, care_request):
        result = approve_care_request(care_request.id)
        episode = Episode.objects.get(pk=result.episode_id)

        episode.diagnosis = 'Tension-type headache'
        episode.save()

        episode.refresh_from_db()
        assert episode.diagnosis == 'Tension-type headache'
        assert episode.source_care_request_id == care_request.id


@pytest.mark.django_db
class TestSnapshotImmutability:

    def test_snapshot_cannot_be_updated_or_deleted(self, care_request):
        result = approve_care_request(care_request.id)
        snapshot = EpisodeIntakeSnapshot.objects.get(episode_id=result.episode_id)

        snapshot.payload = {'patient_name': 'Someone Else'}
        with pytest.raises(ImmutableRecordError):
            snapshot.save()
        with pytest.raises(ImmutableRecordError):
            snapshot.delete()
        with pytest.raises(ImmutableRecordError):
            EpisodeIntakeSnapshot.objects.filter(pk=snapshot.pk).update(payload={})

        snapshot.refresh_from_db()
        assert snapshot.payload['patient_name'] == 'Jane Doe'


@pytest.mark.django_db
class TestLifecycleLedger:

    def test_event_is_append_only(self):
        event = record_lifecycle_event('episode', 'EP-1', 'EPISODE_CREATED', metadata={'flag': True})

        event.event_type = 'EPISODE_DELETED'
        with pytest.raises(ImmutableRecordError):
            event.save()
        with pytest.raises(ImmutableRecordError):
            event.delete()
        with pytest.raises(ImmutableRecordError):
            LifecycleEvent.objects.all().delete()
        with pytest.raises(ImmutableRecordError):
            LifecycleEvent.objects.all().update(event_type='X')

    def test_write_failure_is_not_fatal(self, metric_value):
        before = metric_value('lifecycle_events_total', event_type='EPISODE_CREATED', result='failure')
        with mock.patch.object(LifecycleEvent.objects, 'create', side_effect=DatabaseError('disk full')):
            event = record_lifecycle_event('episode', 'EP-1', 'EPISODE_CREATED')

        assert event is None
        assert metric_value('lifecycle_events_total', event_type='EPISODE_CREATED', result='failure') == before + 1

    def test_actor_mapping(self, admin_user, clinician_user, front_desk_user):
        assert actor_for_user(None) == SYSTEM_ACTOR
        assert actor_for_user(admin_user) == Actor('admin', str(admin_user.id))
        assert actor_for_user(clinician_user) == Actor('clinician', str(clinician_user.id))
        assert actor_for_user(front_desk_user) == Actor('staff', str(front_desk_user.id))

    def test_ledger_api_filters_by_entity(self, front_desk_client):
        record_lifecycle_event('episode', 'EP-1', 'EPISODE_CREATED')
        record_lifecycle_event('episode', 'EP-2', 'EPISODE_CREATED')

        response = front_desk_client.get('/api/v1/ledger/events/', {'entity_id': 'EP-1'})

        assert response.status_code == 200
        assert [row['entity_id'] for row in response.data['results']] == ['EP-1']
