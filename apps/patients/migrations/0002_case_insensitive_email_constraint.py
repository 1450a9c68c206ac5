# Generated migration for patients app - unique email regardless of case

from django.db import migrations, models
import django.db.models.functions.text


class Migration(migrations.Migration):

    dependencies = [
        ('patients', '0001_initial'),
    ]

    operations = [
        migrations.RemoveConstraint(
            model_name='patientaccount',
            name='uniq_patient_account_email',
        ),
        migrations.AddConstraint(
            model_name='patientaccount',
            constraint=models.UniqueConstraint(django.db.models.functions.text.Lower('email'), condition=models.Q(('email__isnull', False)), name='uniq_patient_account_email'),
        ),
    ]
