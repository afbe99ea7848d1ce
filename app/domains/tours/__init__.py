from app.domains.tours.entities import Annotation, AnnotationKind, Step, Tour
from app.domains.tours.editor import AnnotationEditor, RenderedBounds, TourEditor
from app.domains.tours.playback import PlaybackController, PlaybackState
from app.domains.tours.share import ShareLinkManager, ensure_share_slug, generate_share_slug
from app.domains.tours.engagement import EngagementTracker
from app.domains.tours.services import TourService, AnalyticsService

__all__ = [
    "Annotation", "AnnotationKind", "Step", "Tour",
    "AnnotationEditor", "RenderedBounds", "TourEditor",
    "PlaybackController", "PlaybackState",
    "ShareLinkManager", "ensure_share_slug", "generate_share_slug",
    "EngagementTracker",
    "TourService", "AnalyticsService"
]
