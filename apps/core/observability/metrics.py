"""
Prometheus metrics for the intake and conversion pipeline.
"""
from prometheus_client import Counter, Histogram


class MetricsRegistry:
    """
    Central metrics registry.

    Every metric is an attribute so call sites read as
    ``metrics.conversions_total.labels(flow='care_request', result='success').inc()``.
    """

    def __init__(self):
        self._setup_metrics()

    def _create_counter(self, name, description, labels=None):
        return Counter(name, description, labels or [])

    def _create_histogram(self, name, description, labels=None, buckets=None):
        if buckets:
            return Histogram(name, description, labels or [], buckets=buckets)
        return Histogram(name, description, labels or [])

    def _setup_metrics(self):
        """Setup all application metrics."""

        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_requests_total = self._create_counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'status']
        )

        self.http_request_duration_seconds = self._create_histogram(
            'http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['method'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.exceptions_total = self._create_counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Conversion Metrics
        # ===================================================================
        self.conversions_total = self._create_counter(
            'conversions_total',
            'Source record to episode conversions',
            ['flow', 'result']  # flow: care_request|intake_form|continuation
        )

        self.conversion_duration_seconds = self._create_histogram(
            'conversion_duration_seconds',
            'Duration of a conversion (excluding notifications)',
            ['flow'],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
        )

        self.conversion_guard_rejections_total = self._create_counter(
            'conversion_guard_rejections_total',
            'Transitions rejected by a precondition guard',
            ['flow', 'code']
        )

        self.conversion_enrichment_failures_total = self._create_counter(
            'conversion_enrichment_failures_total',
            'Non-fatal enrichment step failures',
            ['flow', 'step']  # step: snapshot|access_grant|lead_checkpoint
        )

        self.identity_resolutions_total = self._create_counter(
            'identity_resolutions_total',
            'Patient identity resolutions',
            ['result']  # existing|created|anonymous|conflict
        )

        # ===================================================================
        # Ledger Metrics
        # ===================================================================
        self.lifecycle_events_total = self._create_counter(
            'lifecycle_events_total',
            'Lifecycle ledger writes',
            ['event_type', 'result']
        )

        # ===================================================================
        # Notification Metrics
        # ===================================================================
        self.notifications_total = self._create_counter(
            'notifications_total',
            'Notification dispatch attempts',
            ['channel', 'template', 'result']  # result: delivered|failed|skipped
        )

        self.notification_step_failures_total = self._create_counter(
            'notification_step_failures_total',
            'After-commit notification steps that raised before or around notify',
            ['flow']
        )

        self.notification_retries_total = self._create_counter(
            'notification_retries_total',
            'Retries of recorded notification failures',
            ['channel', 'result']  # result: delivered|failed|exhausted
        )

        # ===================================================================
        # Discharge Metrics
        # ===================================================================
        self.discharge_letter_actions_total = self._create_counter(
            'discharge_letter_actions_total',
            'Discharge letter actions',
            ['action', 'result']
        )

        # ===================================================================
        # Public Funnel Metrics
        # ===================================================================
        self.public_leads_requests_total = self._create_counter(
            'public_leads_requests_total',
            'Public leads requests',
            ['result']  # accepted, rejected
        )

        self.public_intake_submissions_total = self._create_counter(
            'public_intake_submissions_total',
            'Public care-request and intake-form submissions',
            ['kind', 'result']
        )

        self.webhook_requests_total = self._create_counter(
            'webhook_requests_total',
            'Inbound webhook requests',
            ['source', 'result']
        )


# Global metrics instance
metrics = MetricsRegistry()
