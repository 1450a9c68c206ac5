"""
Health check endpoints: /healthz (liveness) and /readyz (readiness).
"""
import logging
from django.http import JsonResponse
from django.views import View
from django.db import DatabaseError, connection
from django.db.migrations.executor import MigrationExecutor
from django.conf import settings

logger = logging.getLogger(__name__)


class HealthzView(View):
    """Liveness: 200 while the process is serving. No dependency checks."""

    def get(self, request):
        health_data = {
            'status': 'ok',
            'version': getattr(settings, 'VERSION', 'unknown'),
        }

        commit_hash = getattr(settings, 'COMMIT_HASH', None)
        if commit_hash:
            health_data['commit'] = commit_hash

        return JsonResponse(health_data, status=200)


class ReadyzView(View):
    """
    Readiness: 200 when the database answers and has no unapplied
    migrations, 503 otherwise.

    Conversions write to several tables in one transaction, so serving
    traffic against a half-migrated schema is treated as not ready.
    """

    def get(self, request):
        database_ok = self._check_database()
        checks = {
            'database': database_ok,
            'migrations': database_ok and self._check_migrations(),
        }

        all_healthy = all(checks.values())

        return JsonResponse(
            {
                'status': 'ready' if all_healthy else 'not_ready',
                'checks': checks,
            },
            status=200 if all_healthy else 503,
        )

    def _check_database(self):
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
            return True
        except DatabaseError as e:
            logger.error(
                'Database health check failed',
                extra={
                    'event': 'health_check_failed',
                    'check': 'database',
                    'error_type': e.__class__.__name__,
                }
            )
            return False

    def _check_migrations(self):
        try:
            executor = MigrationExecutor(connection)
            plan = executor.migration_plan(executor.loader.graph.leaf_nodes())
        except DatabaseError as e:
            logger.error(
                'Migration health check failed',
                extra={
                    'event': 'health_check_failed',
                    'check': 'migrations',
                    'error_type': e.__class__.__name__,
                }
            )
            return False
        if plan:
            logger.warning(
                'Unapplied migrations detected',
                extra={'event': 'health_check_failed', 'check': 'migrations', 'pending': len(plan)}
            )
        return not plan
