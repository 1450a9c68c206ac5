"""
Tests for log redaction, guard rejection counting and health checks.
"""
import json
import logging

import pytest

from apps.core.observability.events import log_guard_rejection
from apps.core.observability.logging import REDACTED, SanitizedJSONFormatter, sanitize_dict


class TestSanitizeDict:

    def test_redacts_nested_clinical_fields(self):
        data = {
            'episode_id': 'EP-1',
            'intake_payload': {'patient_name': 'Jane Doe'},
            'snapshot': {'patient_name': 'Jane Doe', 'version': 1, 'complaints': [{'bodyRegion': 'Head'}]},
            'contacts': [{'Email': 'jane.doe@example.com', 'kind': 'primary'}],
        }

        sanitized = sanitize_dict(data)

        assert sanitized['episode_id'] == 'EP-1'
        assert sanitized['intake_payload'] == REDACTED
        assert sanitized['snapshot'] == {'patient_name': REDACTED, 'version': 1, 'complaints': REDACTED}
        assert sanitized['contacts'] == [{'Email': REDACTED, 'kind': 'primary'}]
        assert data['snapshot']['patient_name'] == 'Jane Doe'

    def test_non_dict_passthrough(self):
        assert sanitize_dict('EP-1') == 'EP-1'


class TestSanitizedJSONFormatter:

    def test_extra_fields_are_redacted(self):
        record = logging.makeLogRecord({
            'name': 'apps.episodes.services',
            'levelname': 'INFO',
            'msg': 'Episode created',
            'episode_id': 'EP-1',
            'email': 'jane.doe@example.com',
            'checks': {'snapshot_stored': True, 'diagnosis': 'Migraine'},
        })

        output = json.loads(SanitizedJSONFormatter().format(record))

        assert output['message'] == 'Episode created'
        assert output['level'] == 'INFO'
        assert output['episode_id'] == 'EP-1'
        assert output['email'] == REDACTED
        assert output['checks'] == {'snapshot_stored': True, 'diagnosis': REDACTED}
        assert output['request_id'] == '-'
        assert 'jane.doe' not in json.dumps(output)


def test_guard_rejection_is_counted(metric_value):
    before = metric_value('conversion_guard_rejections_total', flow='care_request', code='ALREADY_APPROVED')

    log_guard_rejection('care_request', 'ALREADY_APPROVED', 'CareRequest', 'cr-1', patient_name='Jane Doe')

    assert metric_value(
        'conversion_guard_rejections_total', flow='care_request', code='ALREADY_APPROVED'
    ) == before + 1


@pytest.mark.django_db
class TestHealthChecks:

    def test_healthz(self, client):
        response = client.get('/healthz')

        assert response.status_code == 200
        assert response.json()['status'] == 'ok'

    def test_readyz(self, client):
        response = client.get('/readyz')

        assert response.status_code == 200
        assert response.json() == {'status': 'ready', 'checks': {'database': True, 'migrations': True}}

    def test_request_id_is_echoed(self, client):
        response = client.get('/healthz', HTTP_X_REQUEST_ID='req-123')

        assert response['X-Request-ID'] == 'req-123'
