# Generated migration for episodes app - episode, snapshot, access, continuation

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion

import apps.episodes.identifiers


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('core', '0001_initial'),
        ('authz', '0001_initial'),
        ('patients', '0001_initial'),
        ('intake', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Episode',
            fields=[
                ('id', models.CharField(default=apps.episodes.identifiers.generate_episode_id, editable=False, max_length=40, primary_key=True, serialize=False)),
                ('patient_name', models.CharField(max_length=255)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('clinician_name', models.CharField(blank=True, max_length=255)),
                ('body_region', models.CharField(max_length=100)),
                ('episode_type', models.CharField(max_length=100)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('ACTIVE_CONSERVATIVE_CARE', 'Active - Conservative Care'), ('CLOSED', 'Closed')], default='ACTIVE', max_length=32)),
                ('date_of_service', models.DateField(blank=True, null=True)),
                ('closed_at', models.DateTimeField(blank=True, null=True)),
                ('diagnosis', models.TextField(blank=True)),
                ('injury_date', models.DateField(blank=True, null=True)),
                ('injury_mechanism', models.TextField(blank=True)),
                ('medical_history', models.TextField(blank=True)),
                ('medications', models.TextField(blank=True)),
                ('pain_level', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('referring_physician', models.CharField(blank=True, max_length=255)),
                ('insurance_provider', models.CharField(blank=True, max_length=255)),
                ('emergency_contact_name', models.CharField(blank=True, max_length=255)),
                ('emergency_contact_phone', models.CharField(blank=True, max_length=50)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='episodes', to='patients.patientaccount')),
                ('clinician', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='episodes', to='authz.clinician')),
                ('clinic', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='episodes', to='core.clinic')),
                ('source_care_request', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='source_episodes', to='intake.carerequest')),
                ('source_intake_form', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='source_episodes', to='intake.intakeform')),
            ],
            options={
                'verbose_name': 'Episode',
                'verbose_name_plural': 'Episodes',
                'db_table': 'episode',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='PendingEpisodeContinuation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('continuation_source', models.CharField(choices=[('documented', 'Documented Complaint'), ('newly_identified', 'Newly Identified')], default='documented', max_length=20)),
                ('documented_complaint_ref', models.CharField(blank=True, max_length=255)),
                ('primary_complaint', models.TextField()),
                ('body_region', models.CharField(blank=True, max_length=100)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('transition_reason', models.TextField(blank=True)),
                ('outcome_tools_suggestion', models.JSONField(blank=True, default=list)),
                ('notes', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('SETUP_COMPLETE', 'Setup Complete'), ('CANCELLED', 'Cancelled')], default='PENDING', max_length=20)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('source_episode', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='continuations', to='episodes.episode')),
                ('clinician', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='continuations', to='authz.clinician')),
                ('clinic', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='continuations', to='core.clinic')),
                ('created_episode', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='created_from_continuation', to='episodes.episode')),
                ('completed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Pending Episode Continuation',
                'verbose_name_plural': 'Pending Episode Continuations',
                'db_table': 'pending_episode_continuation',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddField(
            model_name='episode',
            name='source_continuation',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='opened_episodes', to='episodes.pendingepisodecontinuation'),
        ),
        migrations.CreateModel(
            name='EpisodeIntakeSnapshot',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('payload', models.JSONField(default=dict)),
                ('payload_version', models.PositiveSmallIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('episode', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='intake_snapshots', to='episodes.episode')),
                ('care_request', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='snapshots', to='intake.carerequest')),
                ('intake_form', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='snapshots', to='intake.intakeform')),
                ('continuation', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='snapshots', to='episodes.pendingepisodecontinuation')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Episode Intake Snapshot',
                'verbose_name_plural': 'Episode Intake Snapshots',
                'db_table': 'episode_intake_snapshot',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='PatientEpisodeAccess',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('is_active', models.BooleanField(default=True)),
                ('granted_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='episode_access', to='patients.patientaccount')),
                ('episode', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='patient_access', to='episodes.episode')),
            ],
            options={
                'verbose_name': 'Patient Episode Access',
                'verbose_name_plural': 'Patient Episode Access',
                'db_table': 'patient_episode_access',
            },
        ),
        migrations.AddIndex(
            model_name='episode',
            index=models.Index(fields=['status', '-created_at'], name='idx_episode_status'),
        ),
        migrations.AddIndex(
            model_name='episode',
            index=models.Index(fields=['clinician', 'status'], name='idx_episode_clinician'),
        ),
        migrations.AddIndex(
            model_name='episode',
            index=models.Index(fields=['patient'], name='idx_episode_patient'),
        ),
        migrations.AddIndex(
            model_name='pendingepisodecontinuation',
            index=models.Index(fields=['status', '-created_at'], name='idx_continuation_status'),
        ),
        migrations.AddIndex(
            model_name='pendingepisodecontinuation',
            index=models.Index(fields=['source_episode'], name='idx_continuation_source'),
        ),
        migrations.AddIndex(
            model_name='episodeintakesnapshot',
            index=models.Index(fields=['episode'], name='idx_snapshot_episode'),
        ),
        migrations.AddConstraint(
            model_name='patientepisodeaccess',
            constraint=models.UniqueConstraint(fields=('patient', 'episode'), name='uniq_patient_episode_access'),
        ),
    ]
