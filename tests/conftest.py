"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- Authenticated API clients by role
- Model instances (Clinic, Clinician, CareRequest, IntakeForm, Episode)
"""
import pytest
from django.core.cache import cache
from django.utils import timezone
from prometheus_client import REGISTRY
from rest_framework.test import APIClient

from apps.authz.models import Clinician, Role, RoleChoices, User, UserRole
from apps.core.models import Clinic
from apps.episodes.models import Episode, EpisodeStatusChoices
from apps.intake.models import CareRequest, CareRequestStatusChoices, IntakeForm, Lead
from apps.patients.models import PatientAccount


JANE_DOE_PAYLOAD = {
    'version': 1,
    'patient_name': 'Jane Doe',
    'email': 'Jane.Doe@Example.com ',
    'phone': '555-0101',
    'date_of_birth': '1985-04-12',
    'chief_complaint': 'Recurring migraines with aura',
    'pain_level': 6,
    'complaints': [{'bodyRegion': 'Head', 'description': 'Migraines'}],
    'referral_source': 'GP letter',
}


def create_user_with_role(email, role, **extra):
    user = User.objects.create_user(email=email, password='testpass123', is_active=True, **extra)
    role_obj, _ = Role.objects.get_or_create(name=role)
    UserRole.objects.create(user=user, role=role_obj)
    return user


@pytest.fixture
def metric_value():
    """Read a labelled prometheus counter (0.0 if the label set was never touched)."""
    def read(name, **labels):
        return REGISTRY.get_sample_value(name, labels) or 0.0
    return read


@pytest.fixture
def jane_doe_payload():
    return dict(JANE_DOE_PAYLOAD)


@pytest.fixture(autouse=True)
def clear_throttle_cache():
    """Throttle counters live in the default cache; start every test clean."""
    cache.clear()
    yield
    cache.clear()


# ============================================================================
# Users and API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def clinic(db):
    return Clinic.objects.create(
        name='Harbour Physio',
        phone='555-0100',
        email='hello@harbour.test',
        address='1 Quay Street',
    )


@pytest.fixture
def admin_user(db):
    return create_user_with_role('admin@test.com', RoleChoices.ADMIN, is_staff=True)


@pytest.fixture
def clinician_user(db):
    return create_user_with_role('clinician@test.com', RoleChoices.CLINICIAN)


@pytest.fixture
def front_desk_user(db):
    return create_user_with_role('frontdesk@test.com', RoleChoices.FRONT_DESK)


@pytest.fixture
def clinician(clinician_user, clinic):
    return Clinician.objects.create(
        user=clinician_user,
        display_name='Dr. Sam Rivera',
        clinic=clinic,
    )


@pytest.fixture
def admin_clinician(admin_user, clinic):
    """Clinician profile for the admin; fallback assignee for unmatched intakes."""
    return Clinician.objects.create(
        user=admin_user,
        display_name='Dr. Alex Admin',
        clinic=clinic,
    )


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def clinician_client(clinician_user):
    client = APIClient()
    client.force_authenticate(user=clinician_user)
    return client


@pytest.fixture
def front_desk_client(front_desk_user):
    """Front desk can triage but cannot open episodes."""
    client = APIClient()
    client.force_authenticate(user=front_desk_user)
    return client


# ============================================================================
# Intake records
# ============================================================================

@pytest.fixture
def lead(db):
    return Lead.objects.create(full_name='Jane Doe', email='jane.doe@example.com')


@pytest.fixture
def care_request(clinician, clinic):
    """Care request assigned to a clinician and ready for approval."""
    return CareRequest.objects.create(
        status=CareRequestStatusChoices.ASSIGNED,
        intake_payload=dict(JANE_DOE_PAYLOAD),
        assigned_clinician=clinician,
        clinic=clinic,
    )


@pytest.fixture
def unassigned_care_request(db):
    return CareRequest.objects.create(intake_payload=dict(JANE_DOE_PAYLOAD))


@pytest.fixture
def intake_form(clinic):
    return IntakeForm.objects.create(
        patient_name='John Smith',
        email='john.smith@example.com',
        phone='555-0202',
        chief_complaint='Knee pain after running',
        pain_level=4,
        clinic=clinic,
        payload={'patient_name': 'John Smith', 'chief_complaint': 'Knee pain after running'},
    )


@pytest.fixture
def patient(db):
    return PatientAccount.objects.create(email='jane.doe@example.com', full_name='Jane Doe')


@pytest.fixture
def episode(patient, clinician, clinic):
    """Open episode owned by the clinician fixture."""
    return Episode.objects.create(
        patient=patient,
        patient_name='Jane Doe',
        clinician=clinician,
        clinician_name=clinician.display_name,
        clinic=clinic,
        body_region='Lower Back',
        episode_type='Neurological',
        status=EpisodeStatusChoices.ACTIVE,
        date_of_service=timezone.localdate(),
    )


@pytest.fixture
def closed_episode(episode):
    Episode.objects.filter(pk=episode.pk).update(
        status=EpisodeStatusChoices.CLOSED,
        closed_at=timezone.now(),
        updated_at=timezone.now(),
    )
    episode.refresh_from_db()
    return episode
