import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('blood_requests', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('blood_request', 'Blood Request'), ('request_fulfilled', 'Request Fulfilled'), ('donor_accepted', 'Donor Accepted'), ('donation_update', 'Donation Update')], default='blood_request', max_length=20)),
                ('title', models.CharField(max_length=200)),
                ('message', models.TextField()),
                ('data', models.JSONField(blank=True, default=dict)),
                ('urgent', models.BooleanField(default=False)),
                ('is_read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['user', 'is_read', '-created_at'], name='notificatio_user_id_8a5c2e_idx')],
            },
        ),
        migrations.CreateModel(
            name='DonorNotification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('distance', models.FloatField(blank=True, null=True)),
                ('sms_sent', models.BooleanField(default=False)),
                ('push_requested', models.BooleanField(default=False)),
                ('status', models.CharField(choices=[('notified', 'Notified'), ('accepted', 'Accepted'), ('declined', 'Declined'), ('stood_down', 'Stood Down')], default='notified', max_length=20)),
                ('notified_at', models.DateTimeField(auto_now_add=True)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('blood_request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='donor_notifications', to='blood_requests.bloodrequest')),
                ('donor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='donor_notifications', to=settings.AUTH_USER_MODEL)),
                ('in_app_notification', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to='notifications.notification')),
            ],
            options={
                'ordering': ['-notified_at'],
                'indexes': [models.Index(fields=['blood_request', 'status'], name='notificatio_blood_r_4e7b91_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('blood_request', 'donor'), name='one_outreach_per_donor_per_request'),
                ],
            },
        ),
    ]
