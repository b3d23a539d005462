# api/views.py
import logging

from django.conf import settings
from django.db.models import Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from algorithms.eligibility import evaluate_eligibility
from blood_requests import coordinator
from blood_requests.models import BloodRequest
from donations import services
from donations.models import Donation
from munqidh.exceptions import BusinessRuleViolation
from notifications.dispatcher import dispatch_notifications
from notifications.models import Notification

from .serializers import (
    BloodRequestSerializer,
    ConfirmationSerializer,
    DisputeCreateSerializer,
    DisputeUpdateSerializer,
    DonationDisputeSerializer,
    DonationSerializer,
    MatchedDonorSerializer,
    NotificationSerializer,
    ProofSerializer,
    ScheduleSerializer,
)

logger = logging.getLogger(__name__)


def actor_for(user, donation):
    """Role a user plays on a donation"""
    if user.pk == donation.donor_id:
        return 'donor'
    if user.pk == donation.recipient_id:
        return 'recipient'
    if user.user_type == 'hospital_staff':
        return 'hospital'
    if user.is_staff:
        return 'system'
    raise PermissionDenied("You are not part of this donation.")


# ============================================
# BLOOD REQUESTS
# ============================================
class BloodRequestViewSet(mixins.ListModelMixin,
                          mixins.CreateModelMixin,
                          mixins.RetrieveModelMixin,
                          viewsets.GenericViewSet):
    """Blood requests: post one, browse them, and respond as a donor"""
    queryset = BloodRequest.objects.all().order_by('-created_at')
    serializer_class = BloodRequestSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = super().get_queryset()
        status_filter = self.request.query_params.get('status')
        if status_filter and status_filter != 'all':
            queryset = queryset.filter(status=status_filter)
        blood_type = self.request.query_params.get('blood_type')
        if blood_type:
            queryset = queryset.filter(patient_blood_type=blood_type)
        if self.request.query_params.get('mine'):
            queryset = queryset.filter(requester=self.request.user)
        return queryset

    def perform_create(self, serializer):
        blood_request = serializer.save(requester=self.request.user)
        logger.info(f"Blood request {blood_request.pk} created by user {self.request.user.pk}")

    @action(detail=True, methods=['post'])
    def respond(self, request, pk=None):
        result = coordinator.respond_to_request(pk, request.user.pk)
        return Response(result.as_dict(), status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'])
    def decline(self, request, pk=None):
        match = coordinator.decline_request(pk, request.user.pk)
        return Response(MatchedDonorSerializer(match).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'])
    def notify(self, request, pk=None):
        """Re-run donor outreach for a request (requester or staff)"""
        blood_request = self.get_object()
        if blood_request.requester_id != request.user.pk and not request.user.is_staff:
            raise PermissionDenied("Only the requester can re-notify donors.")
        if blood_request.status != BloodRequest.STATUS_ACTIVE:
            raise BusinessRuleViolation(f"This request is {blood_request.status}", code='request_inactive')

        summary = dispatch_notifications(blood_request)
        return Response(summary.as_dict(), status=status.HTTP_200_OK)

    @action(detail=True, methods=['get'])
    def eligibility(self, request, pk=None):
        blood_request = self.get_object()
        result = evaluate_eligibility(request.user, blood_request, settings.DONOR_MAX_DISTANCE_KM)
        return Response(result.as_dict())

    @action(detail=True, methods=['post'])
    def donation(self, request, pk=None):
        """Start the donation for a request the current user accepted"""
        donation = services.initiate_donation_for_request(pk, request.user.pk)
        return Response(DonationSerializer(donation).data, status=status.HTTP_201_CREATED)


# ============================================
# DONATIONS
# ============================================
class DonationViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = DonationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = Donation.objects.all().prefetch_related('timeline', 'disputes')
        user = self.request.user
        if user.is_staff or user.user_type == 'hospital_staff':
            return queryset
        return queryset.filter(Q(donor=user) | Q(recipient=user))

    def _respond(self, donation_id, code=status.HTTP_200_OK):
        donation = self.get_queryset().get(pk=donation_id)
        return Response(DonationSerializer(donation).data, status=code)

    @action(detail=True, methods=['post'])
    def confirm(self, request, pk=None):
        donation = self.get_object()
        serializer = ConfirmationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        location = None
        if 'latitude' in data:
            location = (data['latitude'], data['longitude'])

        services.record_confirmation(
            donation.pk,
            data['confirmation'],
            actor_for(request.user, donation),
            timestamp=data.get('timestamp'),
            notes=data.get('notes'),
            evidence=data.get('evidence'),
            location=location,
        )
        return self._respond(donation.pk)

    @action(detail=True, methods=['post'])
    def schedule(self, request, pk=None):
        donation = self.get_object()
        serializer = ScheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        services.schedule_appointment(
            donation.pk,
            actor_for(request.user, donation),
            data['appointment_at'],
            data['place'],
            estimated_duration=data['estimated_duration'],
        )
        return self._respond(donation.pk)

    @action(detail=True, methods=['post'])
    def proof(self, request, pk=None):
        donation = self.get_object()
        serializer = ProofSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        proof = {name: value for name, value in serializer.validated_data.items() if value}
        services.attach_proof(donation.pk, actor_for(request.user, donation), **proof)
        return self._respond(donation.pk)

    @action(detail=True, methods=['post'])
    def disputes(self, request, pk=None):
        donation = self.get_object()
        serializer = DisputeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dispute = services.report_dispute(
            donation.pk,
            request.user,
            serializer.validated_data['reason'],
            escalate=serializer.validated_data['escalate'],
        )
        return Response(DonationDisputeSerializer(dispute).data, status=status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=['patch'],
        url_path=r'disputes/(?P<dispute_id>[^/.]+)',
        permission_classes=[IsAuthenticated, IsAdminUser],
    )
    def update_dispute(self, request, pk=None, dispute_id=None):
        donation = self.get_object()
        serializer = DisputeUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        dispute = services.update_dispute(
            donation.pk,
            dispute_id,
            data['status'],
            resolution=data.get('resolution'),
            mark_failed=data['mark_failed'],
        )
        return Response(DonationDisputeSerializer(dispute).data)


# ============================================
# NOTIFICATIONS
# ============================================
class NotificationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = Notification.objects.filter(user=self.request.user)
        if self.request.query_params.get('unread'):
            queryset = queryset.filter(is_read=False)
        return queryset

    @action(detail=True, methods=['post'], url_path='mark-read')
    def mark_read(self, request, pk=None):
        notification = self.get_object()
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=['is_read'])
        return Response(NotificationSerializer(notification).data)

    @action(detail=False, methods=['post'], url_path='mark-all-read')
    def mark_all_read(self, request):
        updated = self.get_queryset().filter(is_read=False).update(is_read=True)
        return Response({'marked_read': updated})
