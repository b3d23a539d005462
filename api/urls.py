# api/urls.py
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.tokens import CustomTokenObtainPairView

from . import views

router = DefaultRouter()
router.register(r'blood-requests', views.BloodRequestViewSet, basename='blood-request')
router.register(r'donations', views.DonationViewSet, basename='donation')
router.register(r'notifications', views.NotificationViewSet, basename='notification')

app_name = 'api'

urlpatterns = [
    path('', include(router.urls)),
    path('token/', CustomTokenObtainPairView.as_view(), name='token-obtain'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
]

# POST  /api/blood-requests/{id}/respond/        - Donor accepts
# POST  /api/blood-requests/{id}/decline/        - Donor declines
# POST  /api/blood-requests/{id}/notify/         - Re-run donor outreach
# GET   /api/blood-requests/{id}/eligibility/    - Can the current user respond?
# POST  /api/blood-requests/{id}/donation/       - Start the donation
# POST  /api/donations/{id}/confirm/             - Record a stage confirmation
# POST  /api/donations/{id}/schedule/            - Book the appointment
# POST  /api/donations/{id}/proof/               - Attach receipts and signatures
# POST  /api/donations/{id}/disputes/            - Report a problem
# PATCH /api/donations/{id}/disputes/{dispute}/  - Staff dispute workflow
# POST  /api/notifications/{id}/mark-read/
