# Generated migration for ledger app - lifecycle_event

import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='LifecycleEvent',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('entity_type', models.CharField(choices=[('lead', 'Lead'), ('care_request', 'Care Request'), ('intake_form', 'Intake Form'), ('pending_episode', 'Pending Episode'), ('patient', 'Patient'), ('episode', 'Episode'), ('continuation', 'Pending Episode Continuation')], max_length=40)),
                ('entity_id', models.CharField(max_length=64)),
                ('event_type', models.CharField(max_length=100)),
                ('actor_type', models.CharField(choices=[('admin', 'Admin'), ('clinician', 'Clinician'), ('staff', 'Staff'), ('patient', 'Patient'), ('system', 'System')], default='system', max_length=20)),
                ('actor_id', models.CharField(blank=True, max_length=64, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Lifecycle Event',
                'verbose_name_plural': 'Lifecycle Events',
                'db_table': 'lifecycle_event',
                'ordering': ['created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='lifecycleevent',
            index=models.Index(fields=['entity_type', 'entity_id'], name='idx_lifecycle_entity'),
        ),
        migrations.AddIndex(
            model_name='lifecycleevent',
            index=models.Index(fields=['event_type'], name='idx_lifecycle_event_type'),
        ),
        migrations.AddIndex(
            model_name='lifecycleevent',
            index=models.Index(fields=['created_at'], name='idx_lifecycle_created'),
        ),
    ]
