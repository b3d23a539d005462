import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

BLOOD_TYPES = [('A+', 'A+'), ('A-', 'A-'), ('B+', 'B+'), ('B-', 'B-'),
               ('AB+', 'AB+'), ('AB-', 'AB-'), ('O+', 'O+'), ('O-', 'O-')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='BloodRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('patient_name', models.CharField(max_length=200)),
                ('patient_age', models.PositiveIntegerField(validators=[django.core.validators.MaxValueValidator(150)])),
                ('patient_blood_type', models.CharField(choices=BLOOD_TYPES, max_length=3)),
                ('patient_condition', models.TextField()),
                ('urgent_note', models.TextField(blank=True)),
                ('hospital_name', models.CharField(blank=True, max_length=200)),
                ('hospital_address', models.TextField(blank=True)),
                ('hospital_latitude', models.FloatField(blank=True, null=True)),
                ('hospital_longitude', models.FloatField(blank=True, null=True)),
                ('hospital_contact_number', models.CharField(blank=True, max_length=20)),
                ('hospital_department', models.CharField(blank=True, max_length=100)),
                ('urgency_level', models.CharField(choices=[('critical', 'Critical - Life Threatening'), ('urgent', 'Urgent'), ('standard', 'Standard')], default='standard', max_length=10)),
                ('required_units', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ('deadline', models.DateTimeField()),
                ('description', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('fulfilled', 'Fulfilled'), ('expired', 'Expired'), ('cancelled', 'Cancelled')], db_index=True, default='active', max_length=10)),
                ('fulfilled_units', models.PositiveIntegerField(default=0)),
                ('accepted_count', models.PositiveIntegerField(default=0, editable=False)),
                ('requester_name', models.CharField(max_length=200)),
                ('requester_phone', models.CharField(max_length=20)),
                ('alternate_contact', models.CharField(blank=True, max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('requester', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='blood_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Blood Request',
                'verbose_name_plural': 'Blood Requests',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'deadline'], name='blood_reque_status_3c8e1a_idx'),
                    models.Index(fields=['patient_blood_type', 'status'], name='blood_reque_patient_9d2f47_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('required_units__gte', 1)), name='blood_request_required_units_min'),
                    models.CheckConstraint(condition=models.Q(('accepted_count__lte', models.F('required_units'))), name='blood_request_accepted_within_capacity'),
                ],
            },
        ),
        migrations.CreateModel(
            name='MatchedDonor',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('donor_name', models.CharField(max_length=200)),
                ('donor_blood_type', models.CharField(choices=BLOOD_TYPES, max_length=3)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('completed', 'Donation Completed'), ('declined', 'Declined')], default='pending', max_length=10)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('blood_request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='matched_donors', to='blood_requests.bloodrequest')),
                ('donor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='blood_request_responses', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['responded_at'],
                'constraints': [
                    models.UniqueConstraint(fields=('blood_request', 'donor'), name='one_response_per_donor_per_request'),
                ],
            },
        ),
    ]
