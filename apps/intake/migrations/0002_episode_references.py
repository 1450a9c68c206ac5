# Generated migration for intake app - write-once episode references

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    dependencies = [
        ('intake', '0001_initial'),
        ('episodes', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='carerequest',
            name='episode',
            field=models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='approved_care_request', to='episodes.episode'),
        ),
        migrations.AddField(
            model_name='intakeform',
            name='converted_to_episode',
            field=models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='converted_intake_form', to='episodes.episode'),
        ),
        migrations.AddField(
            model_name='pendingepisode',
            name='converted_episode',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='pending_episodes', to='episodes.episode'),
        ),
    ]
