# Generated migration for discharge app - discharge_letter_task

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('episodes', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='DischargeLetterTask',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('confirmed', 'Confirmed'), ('sent', 'Sent')], default='draft', max_length=20)),
                ('draft_letter', models.JSONField(blank=True, default=dict)),
                ('draft_generated_at', models.DateTimeField(blank=True, null=True)),
                ('confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('sent_to', models.EmailField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('episode', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='discharge_letter_task', to='episodes.episode')),
                ('confirmed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('sent_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Discharge Letter Task',
                'verbose_name_plural': 'Discharge Letter Tasks',
                'db_table': 'discharge_letter_task',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='dischargelettertask',
            index=models.Index(fields=['status'], name='idx_discharge_letter_status'),
        ),
    ]
