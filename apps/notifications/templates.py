"""
Notification template registry.

Templates use Django template syntax and are rendered with autoescape off
(plain-text email and in-app text). A caller may override the subject or
body for one send by passing ``subject_template`` / ``body_template`` in
the context; clinics use this for their own welcome/scheduling copy.
"""
from typing import Any, Dict, NamedTuple

from django.template import Context, Engine

from apps.core.models import (
    DEFAULT_SCHEDULING_BODY,
    DEFAULT_SCHEDULING_SUBJECT,
    DEFAULT_WELCOME_BODY,
    DEFAULT_WELCOME_SUBJECT,
)


class UnknownTemplateError(KeyError):
    pass


class NotificationTemplate(NamedTuple):
    subject: str
    body: str
    link: str = ''


class RenderedNotification(NamedTuple):
    subject: str
    body: str
    link: str


TEMPLATES = {
    # In-app, clinician
    'new_episode_assigned': NotificationTemplate(
        subject='New episode assigned',
        body='A new {{ episode_type }} episode ({{ body_region }}) has been assigned to you.',
        link='/episodes/{{ episode_id }}',
    ),
    'new_episode_created': NotificationTemplate(
        subject='New episode created from intake',
        body='An intake was converted into a {{ episode_type }} episode ({{ body_region }}) for you.',
        link='/episodes/{{ episode_id }}',
    ),
    'continuation_episode_ready': NotificationTemplate(
        subject='Continuation episode ready',
        body='A continuation episode ({{ body_region }}) is set up and assigned to you.',
        link='/episodes/{{ episode_id }}',
    ),
    # In-app, admin
    'patient_ready_for_scheduling': NotificationTemplate(
        subject='Patient ready for scheduling',
        body='Episode {{ episode_id }} with {{ clinician_name }} is ready for a first visit.',
        link='/episodes/{{ episode_id }}',
    ),
    # Email, care team
    'care_request_approved': NotificationTemplate(
        subject='Care request approved: episode {{ episode_id }}',
        body=(
            'Care request {{ care_request_id }} was approved and episode {{ episode_id }} '
            'was opened with {{ clinician_name }}.\n'
        ),
    ),
    # Email, patient
    'patient_welcome': NotificationTemplate(
        subject=DEFAULT_WELCOME_SUBJECT,
        body=DEFAULT_WELCOME_BODY,
    ),
    'patient_scheduling': NotificationTemplate(
        subject=DEFAULT_SCHEDULING_SUBJECT,
        body=DEFAULT_SCHEDULING_BODY,
    ),
    'patient_discharge_letter': NotificationTemplate(
        subject='Your discharge summary from {{ clinic_name }}',
        body=(
            '{{ letter.opening }}\n\n'
            '{{ letter.what_we_focused_on }}\n\n'
            '{{ letter.how_things_progressed }}\n\n'
            '{{ letter.where_you_are_now }}\n\n'
            '{{ letter.what_to_expect }}\n\n'
            '{{ letter.when_to_reach_out }}\n\n'
            '{{ letter.closing }}\n'
        ),
    ),
}

_engine = Engine(autoescape=False)


def render_notification(template_id: str, context: Dict[str, Any]) -> RenderedNotification:
    """Render a registered template (or a per-send override) with ``context``."""
    try:
        template = TEMPLATES[template_id]
    except KeyError:
        raise UnknownTemplateError(template_id)

    subject_source = context.get('subject_template') or template.subject
    body_source = context.get('body_template') or template.body
    ctx = Context(context, autoescape=False)

    return RenderedNotification(
        subject=_engine.from_string(subject_source).render(ctx).strip(),
        body=_engine.from_string(body_source).render(ctx),
        link=_engine.from_string(template.link).render(ctx) if template.link else '',
    )
