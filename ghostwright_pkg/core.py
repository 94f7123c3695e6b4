import os
import shutil
import logging
import time
from datetime import datetime
from importlib import resources
from xml.sax.saxutils import escape
from jinja2 import TemplateNotFound, TemplateSyntaxError

from .bundler import (
    BUILD_JAVASCRIPT_STAGE,
    DEVELOP_STAGE,
    default_build_config,
    minify_assets,
    patch_build_config,
)
from .renderer import ContentIndex, RouteRenderer, parse_published_at
from .routes import TEMPLATE_PAGE, TEMPLATE_POST, RouteRegistry, RoutePlanner


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Site build completed in",
            "Total routes planned:",
            "Total routes rendered:",
            "Querying content",
            "Applied build configuration",
            "Generating XML sitemap",
            "Generating robots.txt",
            "Building 404 page"
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


def package_templates_dir():
    return str(resources.files('ghostwright_pkg') / 'templates')


class Ghostwright:
    def __init__(self, source, templates_dir='templates', output_dir='public', posts_per_page=12, site_url=None, site_title=None, assets_dir=None, production=True, log_dir=None, show_progress=False):
        self.source = source
        self.templates_dir = templates_dir
        self.output_dir = output_dir
        self.posts_per_page = posts_per_page
        self.site_url = site_url.rstrip('/') if site_url else site_url
        self.site_title = site_title
        self.assets_dir = assets_dir
        self.production = production
        self.log_dir = log_dir
        self.show_progress = show_progress
        self.registry = RouteRegistry()
        self.content = None
        self.build_config = None
        self.routes_planned = 0
        self.routes_rendered = 0
        self.assets_minified = 0
        self.failed_routes = []

        # If templates_dir is relative and doesn't exist, use the packaged templates
        if not os.path.isabs(self.templates_dir) and not os.path.exists(self.templates_dir):
            self.templates_dir = package_templates_dir()

        self.setup_logging()

    def setup_logging(self):
        """Set up logging configuration."""
        self.logger = logging.getLogger('Ghostwright')
        self.logger.setLevel(logging.DEBUG)

        if not self.logger.handlers:
            # Console handler with filter
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.addFilter(InfoFilter())
            console_handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(console_handler)

            # File handler for all logs
            logs_dir = self.log_dir or os.path.join(os.getcwd(), 'logs')
            os.makedirs(logs_dir, exist_ok=True)
            log_filename = datetime.now().strftime('ghostwright_%Y-%m-%d_%H-%M-%S.log')
            file_handler = logging.FileHandler(os.path.join(logs_dir, log_filename))
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            self.logger.addHandler(file_handler)

            # Sub-component loggers write to the same handlers
            for name in ('RoutePlanner', 'RouteRenderer', 'ContentSource'):
                child = logging.getLogger(name)
                child.setLevel(logging.DEBUG)
                child.handlers = [file_handler]
                child.propagate = False

    def query_content(self):
        """Run the content query. Any reported error aborts the build."""
        self.logger.info("Querying content")
        result = self.source.query()
        result.raise_for_errors()
        return result

    def plan_routes(self, result):
        planner = RoutePlanner(self.registry, self.posts_per_page)
        planner.plan(result)
        self.routes_planned = len(self.registry)
        return self.registry

    def create_output_dir(self):
        """Create the output directory, clearing everything but hidden files."""
        if not os.path.exists(self.output_dir):
            os.makedirs(self.output_dir, exist_ok=True)
            return

        for item in os.listdir(self.output_dir):
            if item.startswith('.'):
                continue
            item_path = os.path.join(self.output_dir, item)
            if os.path.isdir(item_path):
                shutil.rmtree(item_path)
            else:
                os.remove(item_path)

    def copy_assets_to_output(self):
        """Copy the assets directory to ``<output>/assets``."""
        if not self.assets_dir or not os.path.exists(self.assets_dir):
            self.logger.debug("No assets directory to copy")
            return False

        output_assets_dir = os.path.join(self.output_dir, 'assets')
        try:
            if os.path.exists(output_assets_dir):
                shutil.rmtree(output_assets_dir)
            shutil.copytree(self.assets_dir, output_assets_dir)
            self.logger.info(f"Copied assets from {self.assets_dir}")
        except (IOError, OSError, PermissionError) as e:
            self.logger.error(f"Failed to copy assets from {self.assets_dir}: {e}")
            return False
        return True

    def on_create_build_config(self, stage):
        """Stage hook: returns the build configuration for ``stage``."""
        config = patch_build_config(default_build_config(self.production), stage)
        self.logger.info(f"Applied build configuration for stage '{stage}'")
        return config

    def bundle_assets(self):
        stage = BUILD_JAVASCRIPT_STAGE if self.production else DEVELOP_STAGE
        self.build_config = self.on_create_build_config(stage)
        self.assets_minified = minify_assets(os.path.join(self.output_dir, 'assets'), self.build_config, self.logger)

    def render_routes(self):
        renderer = RouteRenderer(self.templates_dir, self.output_dir, self.site_url, self.site_title, self.show_progress)
        self.failed_routes = renderer.render(self.registry, self.content)
        self.routes_rendered = len(self.registry) - len(self.failed_routes)
        for path in self.failed_routes:
            self.logger.error(f"Failed to render route {path}")
        return renderer

    def build_404_page(self, renderer):
        """Build 404 error page."""
        try:
            html = renderer.render_template(
                '404.html',
                relative_path='',
                site_url=self.site_url,
                site_title=self.site_title,
                navigation=self.content.pages
            )
        except (TemplateNotFound, TemplateSyntaxError) as e:
            self.logger.error(f"Template error for 404 page: {e}")
            return False

        not_found_file = os.path.join(self.output_dir, '404.html')
        try:
            with open(not_found_file, 'w', encoding='utf-8') as f:
                f.write(html)
            self.logger.info("Building 404 page")
        except (IOError, OSError, PermissionError) as e:
            self.logger.error(f"Failed to write 404 page {not_found_file}: {e}")
            return False

        return True

    def generate_xml_sitemap(self):
        """Generate XML sitemap for every rendered route."""
        sitemap_content = '''<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
'''
        now = datetime.now()
        for route in self.registry:
            if route.path in self.failed_routes:
                continue
            lastmod = now
            slug = route.context.get('slug')
            node = None
            if route.template == TEMPLATE_POST:
                node = self.content.post(slug)
            elif route.template == TEMPLATE_PAGE:
                node = self.content.page(slug)
            if node and node.get('published_at'):
                published = parse_published_at(node['published_at'])
                if published != datetime.min:
                    lastmod = published
            sitemap_content += self.format_xml_sitemap_entry(f"{self.site_url}{route.path}", lastmod)

        sitemap_content += '</urlset>'

        sitemap_file = os.path.join(self.output_dir, 'sitemap.xml')
        try:
            with open(sitemap_file, 'w', encoding='utf-8') as f:
                f.write(sitemap_content)
            self.logger.info("Generating XML sitemap")
        except (IOError, OSError, PermissionError) as e:
            self.logger.error(f"Failed to write sitemap file {sitemap_file}: {e}")
            return False

        return True

    def format_xml_sitemap_entry(self, url, lastmod):
        """Format a single sitemap entry."""
        return f'''<url>
<loc>{escape(url)}</loc>
<lastmod>{lastmod.strftime('%Y-%m-%d')}</lastmod>
</url>
'''

    def generate_robots_txt(self, mode="public"):
        """Generate robots.txt file."""
        if mode == "public":
            robots_content = """User-agent: *
Allow: /"""
            # The sitemap is only written when there is a site URL
            if self.site_url:
                robots_content += "\n\nSitemap: {}/sitemap.xml".format(self.site_url)
        else:
            robots_content = """User-agent: *
Disallow: /"""

        robots_file = os.path.join(self.output_dir, 'robots.txt')
        try:
            with open(robots_file, 'w', encoding='utf-8') as f:
                f.write(robots_content)
            self.logger.info("Generating robots.txt")
        except (IOError, OSError, PermissionError) as e:
            self.logger.error(f"Failed to write robots.txt file {robots_file}: {e}")
            return False

        return True

    def build(self, robots='public'):
        """
        Main build process.

        The content is queried and every route planned before the output
        directory is touched, so a failed query leaves the last build intact.
        """
        start_time = time.time()

        result = self.query_content()
        self.plan_routes(result)
        self.content = ContentIndex(result)
        self.logger.info(f"Total routes planned: {self.routes_planned}")

        self.create_output_dir()
        self.copy_assets_to_output()
        self.bundle_assets()

        renderer = self.render_routes()
        self.build_404_page(renderer)

        if self.site_url:
            self.generate_xml_sitemap()
        self.generate_robots_txt(robots)

        self.logger.info(f"Total routes rendered: {self.routes_rendered}")
        self.logger.info(f"Site build completed in {time.time() - start_time:.6f} seconds.")
        return not self.failed_routes

    def cleanup(self):
        """Cleanup resources (close the content source session)."""
        close = getattr(self.source, 'close', None)
        if close:
            close()
