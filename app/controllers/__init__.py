"""FastAPI routers acting as controllers in the MVC architecture."""

from . import videos

__all__ = ["videos"]
