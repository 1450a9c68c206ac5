# Generated migration for core app - clinic

import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Clinic',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('phone', models.CharField(blank=True, max_length=50)),
                ('email', models.EmailField(blank=True, max_length=255)),
                ('address', models.TextField(blank=True)),
                ('welcome_email_subject', models.CharField(blank=True, max_length=255)),
                ('welcome_email_body', models.TextField(blank=True)),
                ('scheduling_email_enabled', models.BooleanField(default=False, help_text='Send a scheduling email right after the welcome email')),
                ('scheduling_email_subject', models.CharField(blank=True, max_length=255)),
                ('scheduling_email_body', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Clinic',
                'verbose_name_plural': 'Clinics',
                'db_table': 'clinic',
                'ordering': ['name'],
            },
        ),
        migrations.AddIndex(
            model_name='clinic',
            index=models.Index(fields=['is_active'], name='idx_clinic_active'),
        ),
    ]
