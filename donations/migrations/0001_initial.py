import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

BLOOD_TYPES = [('A+', 'A+'), ('A-', 'A-'), ('B+', 'B+'), ('B-', 'B-'),
               ('AB+', 'AB+'), ('AB-', 'AB-'), ('O+', 'O+'), ('O-', 'O-')]

ACTORS = [('donor', 'Donor'), ('recipient', 'Recipient'), ('hospital', 'Hospital'), ('system', 'System')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('blood_requests', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Donation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('blood_type', models.CharField(choices=BLOOD_TYPES, max_length=3)),
                ('hospital_name', models.CharField(max_length=200)),
                ('hospital_address', models.TextField(blank=True)),
                ('hospital_contact_number', models.CharField(blank=True, max_length=20)),
                ('hospital_department', models.CharField(blank=True, max_length=100)),
                ('hospital_reference', models.CharField(blank=True, max_length=100)),
                ('appointment_at', models.DateTimeField(blank=True, null=True)),
                ('appointment_place', models.CharField(blank=True, max_length=200)),
                ('estimated_duration', models.PositiveIntegerField(default=60, help_text='Minutes')),
                ('appointment_status', models.CharField(choices=[('unscheduled', 'Unscheduled'), ('confirmed', 'Confirmed'), ('in_progress', 'In Progress'), ('completed', 'Completed'), ('missed', 'Missed'), ('cancelled', 'Cancelled')], default='unscheduled', max_length=15)),
                ('hospital_receipt', models.CharField(blank=True, max_length=255)),
                ('medical_staff_signature', models.CharField(blank=True, max_length=255)),
                ('hospital_reference_number', models.CharField(blank=True, max_length=100)),
                ('donation_certificate', models.CharField(blank=True, max_length=255)),
                ('blood_bag_id', models.CharField(blank=True, max_length=100)),
                ('donor_arrived', models.BooleanField(default=False)),
                ('donor_arrived_at', models.DateTimeField(blank=True, null=True)),
                ('donor_latitude', models.FloatField(blank=True, null=True)),
                ('donor_longitude', models.FloatField(blank=True, null=True)),
                ('hospital_received', models.BooleanField(default=False)),
                ('hospital_received_at', models.DateTimeField(blank=True, null=True)),
                ('hospital_staff_id', models.CharField(blank=True, max_length=100)),
                ('hospital_notes', models.TextField(blank=True)),
                ('donor_completed', models.BooleanField(default=False)),
                ('donor_completed_at', models.DateTimeField(blank=True, null=True)),
                ('donor_notes', models.TextField(blank=True)),
                ('blood_bank_processed', models.BooleanField(default=False)),
                ('blood_bank_processed_at', models.DateTimeField(blank=True, null=True)),
                ('blood_bank_reference', models.CharField(blank=True, max_length=100)),
                ('recipient_received', models.BooleanField(default=False)),
                ('recipient_received_at', models.DateTimeField(blank=True, null=True)),
                ('recipient_notes', models.TextField(blank=True)),
                ('overall_status', models.CharField(choices=[('initiated', 'Initiated'), ('scheduled', 'Scheduled'), ('in_progress', 'In Progress'), ('donor_completed', 'Donor Completed'), ('hospital_confirmed', 'Hospital Confirmed'), ('blood_processed', 'Blood Processed'), ('recipient_confirmed', 'Recipient Confirmed'), ('completed', 'Completed'), ('disputed', 'Disputed'), ('failed', 'Failed')], db_index=True, default='initiated', max_length=20)),
                ('verification_level', models.CharField(choices=[('basic', 'Basic'), ('verified', 'Verified'), ('hospital_verified', 'Hospital Verified'), ('medical_verified', 'Medical Verified')], default='basic', max_length=20)),
                ('trust_score', models.PositiveSmallIntegerField(default=50, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('status_override', models.CharField(blank=True, choices=[('', 'None'), ('disputed', 'Disputed'), ('failed', 'Failed')], max_length=10)),
                ('volume_ml', models.PositiveIntegerField(blank=True, null=True)),
                ('donation_type', models.CharField(choices=[('whole_blood', 'Whole Blood'), ('plasma', 'Plasma'), ('platelets', 'Platelets'), ('red_cells', 'Red Cells')], default='whole_blood', max_length=15)),
                ('emergency_level', models.CharField(default='standard', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('blood_request', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='donation', to='blood_requests.bloodrequest')),
                ('donor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='donations_given', to=settings.AUTH_USER_MODEL)),
                ('recipient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='donations_received', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['donor', '-created_at'], name='donations_d_donor_i_7c1a3b_idx'),
                    models.Index(fields=['recipient', '-created_at'], name='donations_d_recipie_2f9e64_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DonationTimelineEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('stage', models.CharField(max_length=30)),
                ('status', models.CharField(max_length=30)),
                ('actor', models.CharField(choices=ACTORS, max_length=10)),
                ('notes', models.TextField(blank=True)),
                ('evidence', models.CharField(blank=True, max_length=255)),
                ('latitude', models.FloatField(blank=True, null=True)),
                ('longitude', models.FloatField(blank=True, null=True)),
                ('timestamp', models.DateTimeField()),
                ('donation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='timeline', to='donations.donation')),
            ],
            options={
                'verbose_name_plural': 'Donation timeline entries',
                'ordering': ['timestamp', 'pk'],
            },
        ),
        migrations.CreateModel(
            name='DonationDispute',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reason', models.TextField()),
                ('status', models.CharField(choices=[('open', 'Open'), ('investigating', 'Investigating'), ('resolved', 'Resolved'), ('closed', 'Closed')], default='open', max_length=15)),
                ('resolution', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('donation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='disputes', to='donations.donation')),
                ('reported_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='donation_disputes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['created_at'],
            },
        ),
    ]
