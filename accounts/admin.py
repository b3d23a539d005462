from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    list_display  = ('username', 'full_name', 'phone_number', 'blood_type', 'available_for_donation', 'user_type')
    search_fields = ('username', 'full_name', 'phone_number')
    list_filter   = ('user_type', 'blood_type', 'is_donor', 'available_for_donation', 'is_staff')

    fieldsets = UserAdmin.fieldsets + (
        ('Donor Info', {
            'fields': ('user_type', 'full_name', 'phone_number', 'blood_type', 'is_donor',
                       'available_for_donation', 'last_donation_date')
        }),
        ('Location', {
            'fields': ('latitude', 'longitude')
        }),
        ('Notifications', {
            'fields': ('notification_preferences',),
            'classes': ('collapse',),
        }),
    )
