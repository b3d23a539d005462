from django.contrib import admin

from .models import Donation, DonationDispute, DonationTimelineEntry


class DonationTimelineInline(admin.TabularInline):
    model = DonationTimelineEntry
    extra = 0
    can_delete = False
    readonly_fields = ['stage', 'status', 'actor', 'notes', 'evidence', 'latitude', 'longitude', 'timestamp']


class DonationDisputeInline(admin.TabularInline):
    model = DonationDispute
    extra = 0
    fields = ['reported_by', 'reason', 'status', 'resolution', 'created_at', 'resolved_at']
    readonly_fields = ['reported_by', 'reason', 'created_at', 'resolved_at']


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'blood_request', 'donor', 'recipient', 'blood_type',
        'overall_status', 'verification_level', 'trust_score', 'created_at',
    ]
    list_filter = ['overall_status', 'verification_level', 'blood_type']
    search_fields = ['donor__username', 'recipient__username', 'hospital_name', 'blood_bag_id']
    # Derived values are recomputed by donations.services on every write
    readonly_fields = ['overall_status', 'verification_level', 'trust_score', 'created_at', 'updated_at']
    inlines = [DonationTimelineInline, DonationDisputeInline]
