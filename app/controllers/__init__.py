"""FastAPI routers acting as controllers in the MVC architecture."""

from . import brands, checks, process_events, voice_clone

__all__ = ["brands", "checks", "process_events", "voice_clone"]
