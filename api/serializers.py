# api/serializers.py
from django.utils import timezone
from rest_framework import serializers

from blood_requests.models import BloodRequest, MatchedDonor
from donations import state_machine
from donations.models import Donation, DonationDispute, DonationTimelineEntry
from donations.services import PROOF_FIELDS
from notifications.models import Notification


class MatchedDonorSerializer(serializers.ModelSerializer):
    class Meta:
        model = MatchedDonor
        fields = ['id', 'blood_request', 'donor', 'donor_name', 'donor_blood_type', 'status',
                  'responded_at', 'completed_at']
        read_only_fields = fields


class BloodRequestSerializer(serializers.ModelSerializer):
    """
    Blood request as posted by a requester.
    Requester contact defaults to the posting user's profile.
    """
    requester_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    requester_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    remaining_units = serializers.IntegerField(read_only=True)

    class Meta:
        model = BloodRequest
        fields = [
            'id',
            'requester',
            'patient_name',
            'patient_age',
            'patient_blood_type',
            'patient_condition',
            'urgent_note',
            'hospital_name',
            'hospital_address',
            'hospital_latitude',
            'hospital_longitude',
            'hospital_contact_number',
            'hospital_department',
            'urgency_level',
            'required_units',
            'deadline',
            'description',
            'status',
            'accepted_count',
            'fulfilled_units',
            'remaining_units',
            'requester_name',
            'requester_phone',
            'alternate_contact',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['requester', 'status', 'accepted_count', 'fulfilled_units', 'created_at', 'updated_at']

    def validate_deadline(self, value):
        if value <= timezone.now():
            raise serializers.ValidationError("Deadline must be in the future.")
        return value

    def validate_required_units(self, value):
        if value < 1:
            raise serializers.ValidationError("At least one unit is required.")
        return value

    def validate(self, attrs):
        user = self.context['request'].user
        if not attrs.get('requester_name'):
            attrs['requester_name'] = user.display_name
        if not attrs.get('requester_phone'):
            if not user.phone_number:
                raise serializers.ValidationError({'requester_phone': "A contact phone number is required."})
            attrs['requester_phone'] = user.phone_number
        return attrs


class DonationTimelineEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = DonationTimelineEntry
        fields = ['stage', 'status', 'actor', 'notes', 'evidence', 'latitude', 'longitude', 'timestamp']


class DonationDisputeSerializer(serializers.ModelSerializer):
    class Meta:
        model = DonationDispute
        fields = ['id', 'reported_by', 'reason', 'status', 'resolution', 'created_at', 'resolved_at']
        read_only_fields = fields


class DonationSerializer(serializers.ModelSerializer):
    timeline = DonationTimelineEntrySerializer(many=True, read_only=True)
    disputes = DonationDisputeSerializer(many=True, read_only=True)
    has_open_dispute = serializers.BooleanField(read_only=True)

    class Meta:
        model = Donation
        exclude = ['status_override']
        read_only_fields = [f.name for f in Donation._meta.fields]


class ConfirmationSerializer(serializers.Serializer):
    confirmation = serializers.ChoiceField(choices=state_machine.CONFIRMATIONS)
    timestamp = serializers.DateTimeField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    evidence = serializers.CharField(required=False, allow_blank=True, max_length=255)
    latitude = serializers.FloatField(required=False, min_value=-90, max_value=90)
    longitude = serializers.FloatField(required=False, min_value=-180, max_value=180)

    def validate(self, attrs):
        if ('latitude' in attrs) != ('longitude' in attrs):
            raise serializers.ValidationError("Latitude and longitude go together.")
        return attrs


class ScheduleSerializer(serializers.Serializer):
    appointment_at = serializers.DateTimeField()
    place = serializers.CharField(max_length=200)
    estimated_duration = serializers.IntegerField(min_value=1, default=60)


class ProofSerializer(serializers.Serializer):
    hospital_receipt = serializers.CharField(required=False, allow_blank=True, max_length=255)
    medical_staff_signature = serializers.CharField(required=False, allow_blank=True, max_length=255)
    hospital_reference_number = serializers.CharField(required=False, allow_blank=True, max_length=100)
    donation_certificate = serializers.CharField(required=False, allow_blank=True, max_length=255)
    blood_bag_id = serializers.CharField(required=False, allow_blank=True, max_length=100)

    def validate(self, attrs):
        if not any(attrs.get(name) for name in PROOF_FIELDS):
            raise serializers.ValidationError("Provide at least one piece of proof.")
        return attrs


class DisputeCreateSerializer(serializers.Serializer):
    reason = serializers.CharField()
    escalate = serializers.BooleanField(default=False)


class DisputeUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DonationDispute.STATUS_CHOICES)
    resolution = serializers.CharField(required=False, allow_blank=True)
    mark_failed = serializers.BooleanField(default=False)


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'kind', 'title', 'message', 'data', 'urgent', 'is_read', 'created_at']
        read_only_fields = ['id', 'kind', 'title', 'message', 'data', 'urgent', 'created_at']
