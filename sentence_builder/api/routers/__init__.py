"""
API Routers Package
Exposes all route modules for the sentence builder service
"""

from . import generation_router
from . import autocomplete_router
from . import import_router
from . import reload_router
from . import browse_router

__all__ = [
    "generation_router",
    "autocomplete_router",
    "import_router",
    "reload_router",
    "browse_router",
]
