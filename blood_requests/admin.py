from django.contrib import admin
from django.utils import timezone

from .models import BloodRequest, MatchedDonor


class MatchedDonorInline(admin.TabularInline):
    model = MatchedDonor
    extra = 0
    fields = ['donor', 'donor_name', 'donor_blood_type', 'status', 'responded_at', 'completed_at']
    readonly_fields = ['donor', 'donor_name', 'donor_blood_type', 'responded_at', 'completed_at']
    can_delete = False


@admin.register(BloodRequest)
class BloodRequestAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'patient_name', 'patient_blood_type', 'urgency_level', 'status',
        'accepted_count', 'required_units', 'fulfilled_units', 'deadline',
    ]
    list_filter = ['status', 'urgency_level', 'patient_blood_type']
    search_fields = ['patient_name', 'hospital_name', 'requester__username', 'requester_phone']
    ordering = ['-created_at']
    readonly_fields = ['accepted_count', 'fulfilled_units', 'created_at', 'updated_at']
    inlines = [MatchedDonorInline]

    fieldsets = (
        ('Patient', {
            'fields': ('requester', 'patient_name', 'patient_age', 'patient_blood_type', 'patient_condition', 'urgent_note')
        }),
        ('Hospital', {
            'fields': ('hospital_name', 'hospital_address', 'hospital_latitude', 'hospital_longitude',
                       'hospital_contact_number', 'hospital_department')
        }),
        ('Request', {
            'fields': ('urgency_level', 'required_units', 'deadline', 'description', 'status',
                       'accepted_count', 'fulfilled_units')
        }),
        ('Contact', {
            'fields': ('requester_name', 'requester_phone', 'alternate_contact')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    actions = ['cancel_requests']

    @admin.action(description='Cancel selected active requests')
    def cancel_requests(self, request, queryset):
        updated = queryset.filter(status=BloodRequest.STATUS_ACTIVE).update(
            status=BloodRequest.STATUS_CANCELLED,
            updated_at=timezone.now(),
        )
        self.message_user(request, f'Cancelled {updated} request(s).')


@admin.register(MatchedDonor)
class MatchedDonorAdmin(admin.ModelAdmin):
    list_display = ['donor_name', 'donor_blood_type', 'blood_request', 'status', 'responded_at']
    list_filter = ['status', 'donor_blood_type']
    search_fields = ['donor_name', 'donor__username']
    readonly_fields = ['responded_at', 'completed_at']
