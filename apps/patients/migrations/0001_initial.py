# Generated migration for patients app - patient_account

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PatientAccount',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('email', models.EmailField(blank=True, max_length=255, null=True)),
                ('full_name', models.CharField(max_length=255)),
                ('phone', models.CharField(blank=True, default='', max_length=50)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(blank=True, help_text='Set when the patient claims the account for portal access', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='patient_account', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Patient Account',
                'verbose_name_plural': 'Patient Accounts',
                'db_table': 'patient_account',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddConstraint(
            model_name='patientaccount',
            constraint=models.UniqueConstraint(condition=models.Q(('email__isnull', False)), fields=('email',), name='uniq_patient_account_email'),
        ),
        migrations.AddIndex(
            model_name='patientaccount',
            index=models.Index(fields=['created_at'], name='idx_patient_account_created'),
        ),
    ]
