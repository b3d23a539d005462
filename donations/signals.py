from django.dispatch import Signal

# Sent once a donation reaches 'completed'. Args: donation
donation_completed = Signal()
