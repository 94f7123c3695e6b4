import os
import logging
from datetime import datetime, timezone
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, TemplateSyntaxError, select_autoescape
from tqdm import tqdm

from .routes import TEMPLATE_AUTHOR, TEMPLATE_INDEX, TEMPLATE_PAGE, TEMPLATE_POST, TEMPLATE_TAG


def parse_published_at(value):
    """Parse a Ghost ``published_at`` timestamp. Unknown values sort first."""
    if isinstance(value, str) and value:
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return datetime.min
    if isinstance(value, datetime):
        # Compare everything as naive UTC
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None)
    return datetime.min


class ContentIndex:
    """Slug lookups over a query result, for resolving route context."""

    def __init__(self, result):
        self.posts = result.posts
        self.pages = result.pages
        self.tags = {node['slug']: node for node in result.tags}
        self.authors = {node['slug']: node for node in result.authors}
        self._posts_by_slug = {node['slug']: node for node in self.posts}
        self._pages_by_slug = {node['slug']: node for node in self.pages}
        self.newest_first = sorted(self.posts, key=lambda p: parse_published_at(p.get('published_at')), reverse=True)

    def post(self, slug):
        return self._posts_by_slug.get(slug)

    def page(self, slug):
        return self._pages_by_slug.get(slug)

    def posts_tagged(self, slug):
        return [p for p in self.newest_first if any(t.get('slug') == slug for t in p.get('tags') or [])]

    def posts_by_author(self, slug):
        return [p for p in self.newest_first if (p.get('primary_author') or {}).get('slug') == slug]


class RouteRenderer:
    """Render registered routes to ``<output>/<path>/index.html``."""

    def __init__(self, templates_dir, output_dir, site_url=None, site_title=None, show_progress=False):
        self.templates_dir = templates_dir
        self.output_dir = output_dir
        self.site_url = site_url
        self.site_title = site_title
        self.show_progress = show_progress
        self.logger = logging.getLogger('RouteRenderer')
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(['html', 'xml'])
        )

    def output_dir_for(self, path):
        parts = [part for part in path.split('/') if part]
        return os.path.join(self.output_dir, *parts)

    def is_within_output_dir(self, target_dir):
        """Check that a resolved route directory stays inside the output directory."""
        output_root = os.path.abspath(self.output_dir)
        target = os.path.abspath(target_dir)
        return target == output_root or target.startswith(output_root + os.sep)

    def calculate_relative_path(self, current_output_dir):
        """Calculate relative path from current directory to root."""
        rel_path = os.path.relpath(self.output_dir, current_output_dir)
        if rel_path == '.':
            return ''
        else:
            return rel_path + '/'

    def resolve_context(self, route, content):
        """Look up the content a route's template needs."""
        context = dict(route.context)
        slug = context.get('slug')
        skip = context.get('skip', 0)
        limit = context.get('limit')
        window = slice(skip, skip + limit if limit is not None else None)

        if route.template == TEMPLATE_POST:
            context['post'] = content.post(slug)
        elif route.template == TEMPLATE_PAGE:
            context['page'] = content.page(slug)
        elif route.template == TEMPLATE_TAG:
            context['tag'] = content.tags.get(slug)
            context['posts'] = content.posts_tagged(slug)[window]
        elif route.template == TEMPLATE_AUTHOR:
            context['author'] = content.authors.get(slug)
            context['posts'] = content.posts_by_author(slug)[window]
        elif route.template == TEMPLATE_INDEX:
            context['posts'] = content.newest_first[window]

        return context

    def render_template(self, template_name, **context):
        template = self.env.get_template(template_name)
        return template.render(**context)

    def build_route(self, route, content):
        """Render a single route. Returns True on success."""
        output_dir = self.output_dir_for(route.path)
        output_file_path = os.path.join(output_dir, 'index.html')

        if not self.is_within_output_dir(output_dir):
            self.logger.error(f"Route {route.path} resolves outside the output directory, skipping")
            return False

        try:
            rendered_html = self.render_template(
                f"{route.template}.html",
                route=route,
                relative_path=self.calculate_relative_path(output_dir),
                site_url=self.site_url,
                site_title=self.site_title,
                navigation=content.pages,
                **self.resolve_context(route, content)
            )
        except (TemplateNotFound, TemplateSyntaxError) as e:
            self.logger.error(f"Template error for {route.path}: {e}")
            return False

        try:
            os.makedirs(output_dir, exist_ok=True)
            with open(output_file_path, 'w', encoding='utf-8') as output_file:
                output_file.write(rendered_html)
            self.logger.debug(f"Generated HTML: {output_file_path}")
        except (IOError, OSError, PermissionError) as e:
            self.logger.error(f"Failed to write HTML file {output_file_path}: {e}")
            return False

        return True

    def render(self, routes, content):
        """Render every route. Returns the list of paths that failed."""
        failed = []
        for route in tqdm(list(routes), desc='Rendering', unit='page', disable=not self.show_progress):
            if not self.build_route(route, content):
                failed.append(route.path)
        return failed
