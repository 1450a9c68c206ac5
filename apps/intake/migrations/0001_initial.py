# Generated migration for intake app - lead, care_request, intake_form, pending_episode
# Episode references are added in 0002 once the episodes app exists.

import uuid
from django.db import migrations, models
import django.db.models.deletion

import apps.intake.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('authz', '0001_initial'),
        ('patients', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Lead',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('full_name', models.CharField(max_length=255)),
                ('email', models.EmailField(blank=True, max_length=255)),
                ('phone', models.CharField(blank=True, max_length=50)),
                ('primary_concern', models.CharField(blank=True, max_length=255)),
                ('system_category', models.CharField(blank=True, max_length=100)),
                ('utm_source', models.CharField(blank=True, max_length=255)),
                ('utm_medium', models.CharField(blank=True, max_length=255)),
                ('utm_campaign', models.CharField(blank=True, max_length=255)),
                ('utm_term', models.CharField(blank=True, max_length=255)),
                ('utm_content', models.CharField(blank=True, max_length=255)),
                ('origin_page', models.CharField(blank=True, max_length=500)),
                ('origin_cta', models.CharField(blank=True, max_length=255)),
                ('pillar_origin', models.CharField(blank=True, max_length=100)),
                ('checkpoint_status', models.CharField(choices=[('started', 'Started'), ('severity_checked', 'Severity Checked'), ('intake_started', 'Intake Started'), ('intake_completed', 'Intake Completed'), ('episode_opened', 'Episode Opened')], default='started', max_length=32)),
                ('severity_checked_at', models.DateTimeField(blank=True, null=True)),
                ('intake_started_at', models.DateTimeField(blank=True, null=True)),
                ('intake_completed_at', models.DateTimeField(blank=True, null=True)),
                ('episode_opened_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Lead',
                'verbose_name_plural': 'Leads',
                'db_table': 'lead',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='CareRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('SUBMITTED', 'Submitted'), ('ASSIGNED', 'Assigned'), ('IN_REVIEW', 'In Review'), ('CLARIFICATION_REQUESTED', 'Clarification Requested'), ('APPROVED_FOR_CARE', 'Approved for Care'), ('ARCHIVED', 'Archived')], default='SUBMITTED', max_length=32)),
                ('intake_payload', models.JSONField(default=dict)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('clarification_message', models.TextField(blank=True)),
                ('archive_reason', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('lead', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='care_requests', to='intake.lead')),
                ('clinic', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='care_requests', to='core.clinic')),
                ('assigned_clinician', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='assigned_care_requests', to='authz.clinician')),
                ('patient', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='care_requests', to='patients.patientaccount')),
            ],
            options={
                'verbose_name': 'Care Request',
                'verbose_name_plural': 'Care Requests',
                'db_table': 'care_request',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='IntakeForm',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('submitted', 'Submitted'), ('converted', 'Converted')], default='submitted', max_length=20)),
                ('patient_name', models.CharField(max_length=255)),
                ('email', models.EmailField(blank=True, max_length=255)),
                ('phone', models.CharField(blank=True, max_length=50)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('chief_complaint', models.TextField(blank=True)),
                ('pain_level', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('injury_date', models.DateField(blank=True, null=True)),
                ('injury_mechanism', models.TextField(blank=True)),
                ('medical_history', models.TextField(blank=True)),
                ('current_medications', models.TextField(blank=True)),
                ('complaints', models.JSONField(blank=True, default=list)),
                ('emergency_contact_name', models.CharField(blank=True, max_length=255)),
                ('emergency_contact_phone', models.CharField(blank=True, max_length=50)),
                ('insurance_provider', models.CharField(blank=True, max_length=255)),
                ('referring_physician', models.CharField(blank=True, max_length=255)),
                ('access_code', models.CharField(blank=True, max_length=32)),
                ('payload', models.JSONField(blank=True, default=dict)),
                ('converted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('lead', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='intake_forms', to='intake.lead')),
                ('clinic', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='intake_forms', to='core.clinic')),
            ],
            options={
                'verbose_name': 'Intake Form',
                'verbose_name_plural': 'Intake Forms',
                'db_table': 'intake_form',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='PendingEpisode',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('patient_name', models.CharField(max_length=255)),
                ('access_code', models.CharField(default=apps.intake.models.generate_access_code, max_length=32)),
                ('body_region', models.CharField(blank=True, max_length=100)),
                ('status', models.CharField(choices=[('intake_pending', 'Intake Pending'), ('converted', 'Converted')], default='intake_pending', max_length=20)),
                ('converted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('clinician', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='pending_episodes', to='authz.clinician')),
                ('clinic', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='pending_episodes', to='core.clinic')),
            ],
            options={
                'verbose_name': 'Pending Episode',
                'verbose_name_plural': 'Pending Episodes',
                'db_table': 'pending_episode',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='lead',
            index=models.Index(fields=['checkpoint_status', '-created_at'], name='idx_lead_checkpoint'),
        ),
        migrations.AddIndex(
            model_name='lead',
            index=models.Index(fields=['email'], name='idx_lead_email'),
        ),
        migrations.AddIndex(
            model_name='carerequest',
            index=models.Index(fields=['status', '-created_at'], name='idx_care_request_status'),
        ),
        migrations.AddIndex(
            model_name='carerequest',
            index=models.Index(fields=['assigned_clinician'], name='idx_care_request_clinician'),
        ),
        migrations.AddIndex(
            model_name='intakeform',
            index=models.Index(fields=['status', '-created_at'], name='idx_intake_form_status'),
        ),
        migrations.AddIndex(
            model_name='intakeform',
            index=models.Index(fields=['access_code'], name='idx_intake_form_access_code'),
        ),
        migrations.AddIndex(
            model_name='pendingepisode',
            index=models.Index(fields=['status', 'access_code'], name='idx_pending_episode_code'),
        ),
    ]
