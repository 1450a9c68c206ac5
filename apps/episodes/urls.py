"""
Episodes URLs.
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import (
    ApproveCareRequestView,
    CompleteContinuationView,
    ConvertIntakeView,
    EpisodeViewSet,
    PendingEpisodeContinuationViewSet,
)

router = SimpleRouter()
# Episodes sit at the root prefix; continuations/ must be registered first
router.register(r'continuations', PendingEpisodeContinuationViewSet, basename='continuation')
router.register(r'', EpisodeViewSet, basename='episode')

urlpatterns = [
    path('conversions/approve-care-request/', ApproveCareRequestView.as_view(), name='approve-care-request'),
    path('conversions/convert-intake/', ConvertIntakeView.as_view(), name='convert-intake'),
    path('conversions/complete-continuation/', CompleteContinuationView.as_view(), name='complete-continuation'),
    path('', include(router.urls)),
]
