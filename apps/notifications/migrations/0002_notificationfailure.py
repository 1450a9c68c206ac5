# Generated migration for notifications app - failed delivery log

import uuid
import django.core.serializers.json
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('notifications', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='NotificationFailure',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('channel', models.CharField(max_length=32)),
                ('template', models.CharField(max_length=64)),
                ('recipient_ref', models.CharField(max_length=255)),
                ('context', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('entity_type', models.CharField(blank=True, max_length=64)),
                ('entity_id', models.CharField(blank=True, max_length=64)),
                ('step', models.CharField(blank=True, max_length=64)),
                ('error_type', models.CharField(max_length=128)),
                ('error_message', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('pending', 'Pending Retry'), ('resolved', 'Resolved'), ('exhausted', 'Retries Exhausted')], default='pending', max_length=20)),
                ('retry_count', models.PositiveIntegerField(default=0)),
                ('max_retries', models.PositiveIntegerField(default=3)),
                ('next_retry_at', models.DateTimeField(blank=True, null=True)),
                ('last_retry_at', models.DateTimeField(blank=True, null=True)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Notification Failure',
                'verbose_name_plural': 'Notification Failures',
                'db_table': 'notification_failure',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='notificationfailure',
            index=models.Index(fields=['status', 'next_retry_at'], name='idx_notif_failure_due'),
        ),
        migrations.AddIndex(
            model_name='notificationfailure',
            index=models.Index(fields=['entity_type', 'entity_id'], name='idx_notif_failure_entity'),
        ),
    ]
