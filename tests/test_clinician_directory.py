"""
Tests for JWT login and the clinician directory.
"""
import pytest
from rest_framework import status

from apps.authz.models import Clinician


@pytest.mark.django_db
class TestAuthentication:

    def test_obtain_token_with_email(self, api_client, clinician_user):
        response = api_client.post(
            '/api/auth/token/', {'email': 'clinician@test.com', 'password': 'testpass123'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert 'access' in response.data
        assert 'refresh' in response.data

    def test_bearer_token_grants_access(self, api_client, clinician_user, care_request):
        token = api_client.post(
            '/api/auth/token/', {'email': 'clinician@test.com', 'password': 'testpass123'}, format='json'
        ).data['access']

        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = api_client.get('/api/v1/intake/care-requests/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1


@pytest.mark.django_db
class TestClinicianDirectory:

    def test_list_active_clinicians(self, front_desk_client, clinician, admin_clinician):
        Clinician.objects.filter(pk=admin_clinician.pk).update(is_active=False)

        response = front_desk_client.get('/api/v1/clinicians/')

        assert response.status_code == status.HTTP_200_OK
        assert [row['display_name'] for row in response.data['results']] == ['Dr. Sam Rivera']
        assert response.data['results'][0]['clinic_name'] == 'Harbour Physio'

    def test_include_inactive_and_search(self, front_desk_client, clinician, admin_clinician):
        Clinician.objects.filter(pk=admin_clinician.pk).update(is_active=False)

        response = front_desk_client.get('/api/v1/clinicians/', {'include_inactive': 'true', 'q': 'alex'})

        assert [row['display_name'] for row in response.data['results']] == ['Dr. Alex Admin']

    def test_front_desk_cannot_create(self, front_desk_client, front_desk_user):
        response = front_desk_client.post('/api/v1/clinicians/', {
            'user': str(front_desk_user.id),
            'display_name': 'Not A Clinician',
        }, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_creates_clinician_once(self, admin_client, front_desk_user, clinic):
        payload = {'user': str(front_desk_user.id), 'display_name': 'Dr. Robin Lee', 'clinic': str(clinic.id)}

        created = admin_client.post('/api/v1/clinicians/', payload, format='json')
        duplicate = admin_client.post('/api/v1/clinicians/', payload, format='json')

        assert created.status_code == status.HTTP_201_CREATED
        assert created.data['display_name'] == 'Dr. Robin Lee'
        assert duplicate.status_code == status.HTTP_400_BAD_REQUEST
        assert Clinician.objects.filter(user=front_desk_user).count() == 1
