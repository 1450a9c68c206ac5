"""
Plain-language patient discharge letter.

The letter is a dict of sections so the clinician can review it before it
is confirmed, and the email template renders the same sections.
"""
from django.utils import timezone

LETTER_SECTIONS = (
    'opening',
    'what_we_focused_on',
    'how_things_progressed',
    'where_you_are_now',
    'what_to_expect',
    'when_to_reach_out',
    'closing',
)

PLAIN_LANGUAGE_STATUS = {
    'resolved': 'been fully addressed',
    'improved': 'improved significantly',
    'stable': 'stabilized and is managed well',
    'referred': 'been transitioned to specialist care',
}


def plain_language_status(status):
    return PLAIN_LANGUAGE_STATUS.get(status, 'progressed as expected')


def care_targets_for(episode):
    region = episode.body_region or 'Your primary concern'
    return [{
        'name': region,
        'summary': f'Your {episode.body_region or "condition"} has {plain_language_status("improved")}.',
    }]


def build_letter_sections(episode, care_targets, clinic=None):
    first_name = (episode.patient_name or '').split(' ')[0] or 'there'
    clinic_name = clinic.name if clinic else 'our clinic'
    contact_lines = []
    if clinic and clinic.phone:
        contact_lines.append(f'Phone: {clinic.phone}')
    if clinic and clinic.email:
        contact_lines.append(f'Email: {clinic.email}')

    focus_list = '\n'.join(f'- {target["name"]}' for target in care_targets)
    progress = ' '.join(target['summary'] for target in care_targets)
    reach_out = (
        "You're welcome to contact us anytime if:\n"
        "- You notice new or worsening symptoms\n"
        "- You'd like a check-in appointment\n"
        "- You have questions about your home program"
    )
    if contact_lines:
        reach_out += '\n\n' + '\n'.join(contact_lines)

    return {
        'opening': (
            f'Dear {first_name},\n\n'
            'Thank you for trusting us with your care. As you finish active treatment, '
            'here is a summary of the progress we made together and some guidance for the road ahead.'
        ),
        'what_we_focused_on': (
            f'During your time with us, we focused on:\n\n{focus_list}\n\n'
            'Our goal was to help you return to the activities that matter most to you.'
        ),
        'how_things_progressed': f'Throughout your care, you made meaningful progress. {progress}',
        'where_you_are_now': (
            'You are now in a stable place and managing well. '
            'You are ready to move forward with confidence.'
        ),
        'what_to_expect': (
            "Occasional flare-ups or days when symptoms feel more noticeable are normal and are part "
            "of recovery. The strategies and exercises we worked on will continue to serve you well."
        ),
        'when_to_reach_out': reach_out,
        'closing': (
            "It has been a privilege to work with you. We're here if you ever need us again.\n\n"
            f'With warm regards,\n\n{episode.clinician_name or "Your care team"}\n{clinic_name}'
        ),
    }


def build_draft_letter(episode):
    """Draft letter payload stored on the task."""
    clinic = episode.clinic
    care_targets = care_targets_for(episode)
    return {
        'episode_id': episode.id,
        'patient_name': episode.patient_name,
        'care_targets': care_targets,
        'letter': build_letter_sections(episode, care_targets, clinic),
        'start_date': episode.date_of_service.isoformat() if episode.date_of_service else None,
        'discharge_date': (episode.closed_at or timezone.now()).date().isoformat(),
        'clinician_name': episode.clinician_name,
        'clinic_name': clinic.name if clinic else None,
        'clinic_phone': clinic.phone if clinic else None,
        'clinic_email': clinic.email if clinic else None,
    }
