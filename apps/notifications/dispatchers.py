"""
Notification dispatchers, one per channel.

A dispatcher either delivers or raises. Swallowing failures is the gate's
job, not the dispatcher's.
"""
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail

from .models import Notification
from .templates import render_notification


class DeliveryError(Exception):
    """Raised when a channel reports the message was not accepted."""
    pass


class BaseDispatcher:
    channel = None

    def dispatch(self, recipient, template_id, context):
        raise NotImplementedError


class EmailDispatcher(BaseDispatcher):
    """
    Email through Django's configured EMAIL_BACKEND.

    Recipient is an email address. Delivery time is bounded by EMAIL_TIMEOUT.
    """
    channel = 'email'

    def dispatch(self, recipient, template_id, context):
        rendered = render_notification(template_id, context)
        sent = send_mail(
            subject=rendered.subject,
            message=rendered.body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient],
            fail_silently=False,
        )
        if not sent:
            raise DeliveryError(f'Email backend accepted 0 messages for {template_id}')


class InAppDispatcher(BaseDispatcher):
    """In-app notification row. Recipient is a User or a user id."""
    channel = 'in_app'

    def dispatch(self, recipient, template_id, context):
        if not isinstance(recipient, get_user_model()):
            recipient = get_user_model().objects.get(pk=recipient)
        rendered = render_notification(template_id, context)
        Notification.objects.create(
            recipient=recipient,
            notification_type=template_id,
            title=rendered.subject,
            message=rendered.body,
            link=rendered.link,
        )
