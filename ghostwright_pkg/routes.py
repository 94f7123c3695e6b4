"""
Route planning for Ghostwright.

Decides which pages the site emits and which template and context each one
gets. Nothing is rendered here; routes are appended to a RouteRegistry that
the renderer walks afterwards.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

from .pagination import paginate

TEMPLATE_INDEX = 'index'
TEMPLATE_TAG = 'tag'
TEMPLATE_AUTHOR = 'author'
TEMPLATE_PAGE = 'page'
TEMPLATE_POST = 'post'

TEMPLATES = (TEMPLATE_INDEX, TEMPLATE_TAG, TEMPLATE_AUTHOR, TEMPLATE_PAGE, TEMPLATE_POST)


class DuplicateRouteError(Exception):
    """Two routes were registered at the same path."""


class Route:
    """A single page the site must emit."""

    __slots__ = ('path', 'template', 'context')

    def __init__(self, path: str, template: str, context: Optional[Dict[str, Any]] = None):
        self.path = path
        self.template = template
        self.context = context or {}

    def __eq__(self, other):
        if not isinstance(other, Route):
            return NotImplemented
        return (self.path, self.template, self.context) == (other.path, other.template, other.context)

    def __repr__(self):
        return f"Route(path={self.path!r}, template={self.template!r}, context={self.context!r})"


class RouteRegistry:
    """Append-only table of routes, kept in registration order."""

    def __init__(self):
        self._routes: List[Route] = []
        self._by_path: Dict[str, Route] = {}
        self.logger = logging.getLogger('RoutePlanner')

    def register(self, path: str, template: str, context: Optional[Dict[str, Any]] = None) -> Route:
        if template not in TEMPLATES:
            raise ValueError(f"Unknown template: {template}")
        if path in self._by_path:
            raise DuplicateRouteError(
                f"Route {path} is already registered with template '{self._by_path[path].template}'"
            )
        route = Route(path, template, context)
        self._routes.append(route)
        self._by_path[path] = route
        self.logger.debug(f"Registered {template} route at {path}")
        return route

    def get(self, path: str) -> Optional[Route]:
        return self._by_path.get(path)

    def paths(self) -> List[str]:
        return [route.path for route in self._routes]

    def by_template(self, template: str) -> List[Route]:
        return [route for route in self._routes if route.template == template]

    def __iter__(self) -> Iterator[Route]:
        return iter(self._routes)

    def __len__(self):
        return len(self._routes)


def single_page_url(slug):
    return f"/{slug}/"


def taxonomy_url(segment, slug):
    return f"/{segment}/{slug}"


class RoutePlanner:
    """Turns a content query result into registered routes."""

    def __init__(self, registry: RouteRegistry, posts_per_page: int):
        if posts_per_page < 1:
            raise ValueError(f"posts_per_page must be at least 1, got {posts_per_page}")
        self.registry = registry
        self.posts_per_page = posts_per_page
        self.logger = logging.getLogger('RoutePlanner')

    def create_taxonomy_pages(self, nodes, segment, template):
        """Paginated listing pages for each tag or author."""
        for node in nodes:
            # postCount may be null when the source has no count for this node
            total_posts = node.get('postCount') or 0
            url = taxonomy_url(segment, node['slug'])
            items = [None] * total_posts

            def path_prefix(page_number, url=url):
                return url if page_number == 0 else f"{url}/page"

            pages = paginate(
                self.registry.register,
                items,
                self.posts_per_page,
                template,
                path_prefix,
                context={'slug': node['slug']}
            )
            self.logger.debug(f"Planned {pages} {segment} page(s) for {node['slug']}")

    def create_tag_pages(self, tags):
        self.create_taxonomy_pages(tags, 'tag', TEMPLATE_TAG)

    def create_author_pages(self, authors):
        self.create_taxonomy_pages(authors, 'author', TEMPLATE_AUTHOR)

    def create_single_pages(self, nodes, template):
        """One route per post or page, at ``/{slug}/``."""
        for node in nodes:
            node['url'] = single_page_url(node['slug'])
            self.registry.register(node['url'], template, {'slug': node['slug']})

    def create_pages(self, pages):
        self.create_single_pages(pages, TEMPLATE_PAGE)

    def create_posts(self, posts):
        self.create_single_pages(posts, TEMPLATE_POST)

    def create_index_pages(self, posts):
        paginate(
            self.registry.register,
            posts,
            self.posts_per_page,
            TEMPLATE_INDEX,
            lambda page_number: '/' if page_number == 0 else '/page'
        )

    def plan(self, result) -> RouteRegistry:
        """Validate the query result and register every route it implies."""
        result.raise_for_errors()

        posts = result.posts
        self.create_tag_pages(result.tags)
        self.create_author_pages(result.authors)
        self.create_pages(result.pages)
        self.create_posts(posts)
        self.create_index_pages(posts)

        self.logger.info(f"Planned {len(self.registry)} routes")
        return self.registry


def plan_routes(result, posts_per_page, registry=None) -> RouteRegistry:
    """Plan all routes for a query result into a (new) registry."""
    planner = RoutePlanner(registry if registry is not None else RouteRegistry(), posts_per_page)
    return planner.plan(result)
