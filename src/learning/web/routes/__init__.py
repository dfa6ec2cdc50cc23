"""Route handlers for Web API."""

from learning.web.routes.health import router as health_router
from learning.web.routes.learners import router as learners_router
from learning.web.routes.personas import router as personas_router
from learning.web.routes.modules import router as modules_router
from learning.web.routes.tutor import router as tutor_router
from learning.web.routes.progress import router as progress_router
from learning.web.routes.feedback import router as feedback_router

__all__ = [
    "health_router",
    "learners_router",
    "personas_router",
    "modules_router",
    "tutor_router",
    "progress_router",
    "feedback_router",
]
