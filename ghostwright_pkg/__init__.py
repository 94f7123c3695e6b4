"""
Ghostwright - A static site builder for Ghost blogs.

Ghostwright queries posts, tags, authors and pages from a Ghost content
source, plans every route the site needs (including paginated tag, author
and index listings) and renders them with Jinja2 templates.
"""

__version__ = "1.0.0"

from .content import ContentQueryError, QueryResult
from .core import Ghostwright
from .routes import DuplicateRouteError, RouteRegistry, plan_routes

__all__ = ['Ghostwright', 'ContentQueryError', 'QueryResult', 'DuplicateRouteError', 'RouteRegistry', 'plan_routes']
