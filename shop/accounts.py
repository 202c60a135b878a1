"""
Customer profiles, admin role bootstrap and the customer listing.
"""
import hmac
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.db.models.signals import post_save

from .exceptions import AdminSetupNotConfigured, InvalidSetupCode
from .models import Profile, UserRole

logger = logging.getLogger(__name__)

User = get_user_model()


def _full_name(user):
    return f"{user.first_name} {user.last_name}".strip()


def create_profile(sender, instance, created, raw=False, **kwargs):
    if created and not raw:
        Profile.objects.get_or_create(
            user=instance,
            defaults={'full_name': _full_name(instance), 'email': instance.email or ''},
        )


def connect():
    post_save.connect(create_profile, sender=User, dispatch_uid='shop-create-profile')


def update_profile(user, full_name, phone):
    profile, _ = Profile.objects.get_or_create(user=user, defaults={'email': user.email or ''})
    profile.full_name = full_name
    profile.phone = phone
    profile.save(update_fields=['full_name', 'phone'])
    return profile


def is_admin(user):
    if not user or not user.is_authenticated:
        return False
    return UserRole.objects.filter(user=user, role=UserRole.ADMIN).exists()


def grant_admin(user, setup_code):
    """
    Grants the admin role when ``setup_code`` matches ``ADMIN_SETUP_CODE``.

    Returns True when the role was created and False when the user already
    had it.
    """
    expected = getattr(settings, 'ADMIN_SETUP_CODE', '')
    if not expected:
        logger.error("ADMIN_SETUP_CODE not configured")
        raise AdminSetupNotConfigured()

    if not hmac.compare_digest(str(setup_code or ''), str(expected)):
        logger.warning("Invalid admin setup code provided for user %s", user.pk)
        raise InvalidSetupCode()

    with transaction.atomic():
        _, created = UserRole.objects.get_or_create(user=user, role=UserRole.ADMIN)
        if not user.is_staff:
            user.is_staff = True
            user.save(update_fields=['is_staff'])

    if created:
        logger.info("Granted admin role to user %s", user.pk)
    else:
        logger.info("User %s already has the admin role", user.pk)
    return created


def search_customers(query=''):
    profiles = Profile.objects.select_related('user').order_by('-created_at')
    if query:
        profiles = profiles.filter(
            Q(email__icontains=query) | Q(full_name__icontains=query) | Q(phone__contains=query)
        )
    return list(profiles)
