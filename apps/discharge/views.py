"""
Discharge views - patient discharge letter actions.
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.permissions import CanOpenEpisodes, IsClinicalStaff
from apps.core.exceptions import (
    PipelineError,
    pipeline_error_response,
    unexpected_error_response,
)
from apps.core.observability.correlation import set_request_user
from .serializers import DISCHARGE_ACTIONS, DischargeLetterTaskSerializer
from .services import confirm_letter, generate_draft, get_letter_task, send_letter

ACTION_HANDLERS = {
    'draft': (generate_draft, 'Draft letter generated. Ready for clinician confirmation.'),
    'confirm': (confirm_letter, 'Letter confirmed. Ready to send.'),
    'send': (send_letter, 'Patient discharge letter has been sent.'),
}


class DischargeLetterView(APIView):
    """
    GET /api/v1/episodes/{episode_id}/discharge-letter/
    POST /api/v1/episodes/{episode_id}/discharge-letter/ {"action": "draft" | "confirm" | "send"}
    """

    def get_permissions(self):
        if self.request.method == 'POST':
            return [CanOpenEpisodes()]
        return [IsClinicalStaff()]

    def get(self, request, episode_id):
        task = get_letter_task(episode_id)
        return Response({
            'success': True,
            'task': DischargeLetterTaskSerializer(task).data if task else None,
        })

    def post(self, request, episode_id):
        set_request_user(request.user)
        action = request.data.get('action', 'draft')
        if action not in DISCHARGE_ACTIONS:
            return Response(
                {'success': False, 'error': 'Invalid action', 'code': 'INVALID_ACTION'},
                status=status.HTTP_400_BAD_REQUEST
            )

        handler, message = ACTION_HANDLERS[action]
        try:
            task = handler(episode_id, actor_user=request.user)
        except PipelineError as e:
            return pipeline_error_response(e)
        except Exception as e:
            return unexpected_error_response(e, f'discharge_letter.{action}', episode_id=str(episode_id))

        return Response({
            'success': True,
            'task': DischargeLetterTaskSerializer(task).data,
            'message': message,
        })
