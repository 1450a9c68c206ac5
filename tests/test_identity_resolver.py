"""
Tests for patient identity resolution (one account per normalized email).
"""
import datetime
from unittest import mock

import pytest
from django.db import IntegrityError, transaction
from rest_framework import status

from apps.patients.models import PatientAccount
from apps.patients.services import UNKNOWN_PATIENT_NAME, resolve_patient_account


@pytest.mark.django_db
class TestResolvePatientAccount:

    def test_creates_with_normalized_email(self):
        resolved = resolve_patient_account(' Jane.Doe@Example.com ', fallback_name='Jane Doe', fallback_phone='555-0101')

        assert resolved.created is True
        assert resolved.patient.email == 'jane.doe@example.com'
        assert resolved.patient.full_name == 'Jane Doe'
        assert resolved.patient.phone == '555-0101'

    def test_same_email_resolves_to_one_account(self, patient):
        resolved = resolve_patient_account('JANE.DOE@example.com', fallback_name='Somebody Else')

        assert resolved.created is False
        assert resolved.patient.id == patient.id
        assert resolved.patient.full_name == 'Jane Doe'
        assert PatientAccount.objects.count() == 1

    def test_fills_blank_contact_fields_only(self, patient):
        resolve_patient_account(
            'jane.doe@example.com',
            fallback_phone='555-0101',
            extra_fields={'date_of_birth': datetime.date(1985, 4, 12)},
        )
        resolve_patient_account(
            'jane.doe@example.com',
            fallback_phone='555-9999',
            extra_fields={'date_of_birth': datetime.date(1990, 1, 1)},
        )

        patient.refresh_from_db()
        assert patient.phone == '555-0101'
        assert patient.date_of_birth == datetime.date(1985, 4, 12)

    def test_without_email_always_creates(self, metric_value):
        before = metric_value('identity_resolutions_total', result='anonymous')

        first = resolve_patient_account(None, fallback_name='John Smith')
        second = resolve_patient_account('   ')

        assert first.created is True
        assert second.created is True
        assert first.patient.id != second.patient.id
        assert second.patient.full_name == UNKNOWN_PATIENT_NAME
        assert second.patient.email is None
        assert metric_value('identity_resolutions_total', result='anonymous') == before + 2

    def test_insert_conflict_returns_winner(self, patient, metric_value):
        """The lookup misses, the insert hits the unique constraint, the winner is returned."""
        real_filter = PatientAccount.objects.filter
        lookups = []

        def miss_first_lookup(*args, **kwargs):
            lookups.append(kwargs)
            if len(lookups) == 1:
                return PatientAccount.objects.none()
            return real_filter(*args, **kwargs)

        before = metric_value('identity_resolutions_total', result='conflict')
        with mock.patch.object(PatientAccount.objects, 'filter', side_effect=miss_first_lookup):
            resolved = resolve_patient_account('jane.doe@example.com', fallback_phone='555-0101')

        assert resolved.created is False
        assert resolved.patient.id == patient.id
        assert resolved.patient.phone == '555-0101'
        assert PatientAccount.objects.count() == 1
        assert metric_value('identity_resolutions_total', result='conflict') == before + 1

    def test_unrelated_integrity_error_propagates(self, metric_value):
        """An insert failure with no row for the email is not a lost race."""
        before = metric_value('identity_resolutions_total', result='conflict')
        with mock.patch.object(
            PatientAccount.objects, 'create', side_effect=IntegrityError('NOT NULL constraint failed: patient_account.full_name')
        ):
            with pytest.raises(IntegrityError, match='full_name'):
                resolve_patient_account('new.patient@example.com', fallback_name='New Patient')

        assert PatientAccount.objects.count() == 0
        assert metric_value('identity_resolutions_total', result='conflict') == before


@pytest.mark.django_db
class TestPatientAccountConstraints:

    def test_email_unique_regardless_of_case(self, patient):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                PatientAccount.objects.create(email='Jane.Doe@Example.COM', full_name='Jane Again')

        assert PatientAccount.objects.count() == 1

    def test_accounts_without_email_do_not_collide(self, db):
        PatientAccount.objects.create(email=None, full_name='First Walk-in')
        PatientAccount.objects.create(email=None, full_name='Second Walk-in')

        assert PatientAccount.objects.filter(email__isnull=True).count() == 2


@pytest.mark.django_db
class TestPatientAccountAPI:

    def test_lookup_by_email(self, front_desk_client, patient):
        PatientAccount.objects.create(email='other@example.com', full_name='Other Person')

        response = front_desk_client.get('/api/v1/patients/', {'email': ' JANE.DOE@example.com'})

        assert response.status_code == status.HTTP_200_OK
        assert [row['id'] for row in response.data['results']] == [str(patient.id)]

    def test_accounts_are_read_only(self, admin_client):
        response = admin_client.post('/api/v1/patients/', {'email': 'x@example.com', 'full_name': 'X'}, format='json')

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED

    def test_anonymous_denied(self, api_client, patient):
        response = api_client.get(f'/api/v1/patients/{patient.id}/')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
