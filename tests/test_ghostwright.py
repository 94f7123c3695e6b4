"""Tests for the Ghostwright build and its renderer."""

import pytest
import os
import sys
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import Mock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from ghostwright_pkg.bundler import CSS_MINIMIZER, css_minimizer_options, find_minimizer
from ghostwright_pkg.content import ContentQueryError, FileContentSource, QueryResult
from ghostwright_pkg.core import Ghostwright, package_templates_dir
from ghostwright_pkg.renderer import ContentIndex, RouteRenderer, parse_published_at
from ghostwright_pkg.routes import Route, TEMPLATE_AUTHOR, TEMPLATE_INDEX, TEMPLATE_TAG, plan_routes


@pytest.fixture
def output_dir(temp_dir):
    return os.path.join(temp_dir, 'public')


@pytest.fixture
def log_dir(temp_dir):
    return os.path.join(temp_dir, 'logs')


def read(output_dir, *parts):
    return Path(output_dir, *parts).read_text(encoding='utf-8')


class TestContentIndex:
    """Test cases for ContentIndex."""

    def test_lookups(self, sample_data):
        content = ContentIndex(QueryResult(sample_data))
        assert content.post('welcome')['title'] == 'Welcome'
        assert content.page('about')['title'] == 'About'
        assert content.post('missing') is None
        assert content.tags['news']['name'] == 'News'
        assert content.authors['ghost']['name'] == 'Ghost'

    def test_newest_first(self, sample_data):
        content = ContentIndex(QueryResult(sample_data))
        assert [p['slug'] for p in content.newest_first] == ['third-post', 'second-post', 'welcome']
        assert [p['slug'] for p in content.posts_tagged('news')] == ['second-post', 'welcome']
        assert len(content.posts_by_author('ghost')) == 3

    def test_parse_published_at(self):
        assert parse_published_at('2023-01-01T09:00:00.000Z').year == 2023
        assert parse_published_at(None) == parse_published_at('not a date')

    def test_parse_published_at_normalizes_offsets(self):
        # 10:00+02:00 is 08:00 UTC, earlier than 09:00Z
        assert parse_published_at('2023-01-01T10:00:00+02:00') < parse_published_at('2023-01-01T09:00:00Z')
        assert parse_published_at('2023-01-01T10:00:00+02:00') == datetime(2023, 1, 1, 8, 0)
        assert parse_published_at(datetime(2023, 1, 1, 10, tzinfo=timezone(timedelta(hours=2)))) == datetime(2023, 1, 1, 8, 0)

    def test_newest_first_across_offsets(self, data_factory):
        data = data_factory()
        data['allGhostPost']['edges'] = [
            {'node': {'slug': 'utc', 'published_at': '2023-01-01T09:00:00Z'}},
            {'node': {'slug': 'offset', 'published_at': '2023-01-01T10:00:00+02:00'}},
        ]
        content = ContentIndex(QueryResult(data))
        assert [p['slug'] for p in content.newest_first] == ['utc', 'offset']


class TestRouteRenderer:
    """Test cases for RouteRenderer."""

    def test_tag_listing_is_sliced(self, sample_data, output_dir):
        result = QueryResult(sample_data)
        registry = plan_routes(result, 1)
        renderer = RouteRenderer(package_templates_dir(), output_dir)

        context = renderer.resolve_context(registry.get('/tag/news/page/2'), ContentIndex(result))

        assert context['tag']['slug'] == 'news'
        assert [p['slug'] for p in context['posts']] == ['welcome']

    def test_index_without_limit_gets_everything(self, sample_data, output_dir):
        renderer = RouteRenderer(package_templates_dir(), output_dir)
        context = renderer.resolve_context(Route('/', TEMPLATE_INDEX, {}), ContentIndex(QueryResult(sample_data)))
        assert len(context['posts']) == 3

    def test_output_paths(self, output_dir):
        renderer = RouteRenderer(package_templates_dir(), output_dir)
        assert renderer.output_dir_for('/') == output_dir
        assert renderer.output_dir_for('/tag/news/page/2') == os.path.join(output_dir, 'tag', 'news', 'page', '2')
        assert renderer.calculate_relative_path(os.path.join(output_dir, 'tag', 'news')) == '../../'
        assert renderer.calculate_relative_path(output_dir) == ''

    def test_is_within_output_dir(self, temp_dir, output_dir):
        renderer = RouteRenderer(package_templates_dir(), output_dir)
        assert renderer.is_within_output_dir(renderer.output_dir_for('/'))
        assert renderer.is_within_output_dir(renderer.output_dir_for('/tag/news/page/2'))
        assert not renderer.is_within_output_dir(renderer.output_dir_for('/../escaped/'))
        assert not renderer.is_within_output_dir(os.path.join(temp_dir, 'public-sibling'))

    def test_route_outside_output_dir_fails(self, temp_dir, sample_data, output_dir):
        renderer = RouteRenderer(package_templates_dir(), output_dir)
        route = Route('/../escaped/', 'post', {'slug': '../escaped'})
        assert renderer.render([route], ContentIndex(QueryResult(sample_data))) == ['/../escaped/']
        assert not os.path.exists(os.path.join(temp_dir, 'escaped'))

    def test_missing_template_fails_route(self, temp_dir, sample_data, output_dir):
        templates = Path(temp_dir) / 'templates'
        templates.mkdir()
        renderer = RouteRenderer(str(templates), output_dir)
        failed = renderer.render([Route('/tag/news', TEMPLATE_TAG, {'slug': 'news'})], ContentIndex(QueryResult(sample_data)))
        assert failed == ['/tag/news']


class TestGhostwright:
    """Test cases for the Ghostwright build."""

    def make_generator(self, snapshot_file, output_dir, log_dir, **kwargs):
        kwargs.setdefault('posts_per_page', 2)
        return Ghostwright(
            FileContentSource(snapshot_file),
            templates_dir='nonexistent-templates',
            output_dir=output_dir,
            log_dir=log_dir,
            **kwargs
        )

    def test_falls_back_to_package_templates(self, snapshot_file, output_dir, log_dir):
        generator = self.make_generator(snapshot_file, output_dir, log_dir)
        assert generator.templates_dir == package_templates_dir()
        assert os.path.exists(os.path.join(generator.templates_dir, 'post.html'))

    def test_site_url_normalization(self, snapshot_file, output_dir, log_dir):
        generator = self.make_generator(snapshot_file, output_dir, log_dir, site_url='https://example.com/')
        assert generator.site_url == 'https://example.com'

    def test_build_writes_every_route(self, snapshot_file, output_dir, log_dir):
        generator = self.make_generator(snapshot_file, output_dir, log_dir, site_title='Demo')

        assert generator.build() is True

        assert generator.routes_planned == 9
        assert generator.routes_rendered == 9
        assert generator.failed_routes == []
        for path in generator.registry.paths():
            parts = [part for part in path.split('/') if part]
            assert os.path.exists(os.path.join(output_dir, *parts, 'index.html'))

        post_html = read(output_dir, 'welcome', 'index.html')
        assert '<p>Hello from Ghost.</p>' in post_html
        assert 'Demo' in post_html

        home_html = read(output_dir, 'index.html')
        assert 'Third Post' in home_html
        assert 'Welcome' not in home_html.split('<main>')[1]
        assert 'Page 1 of 2' in home_html
        assert '<a href="/page/2">2</a>' in home_html
        assert '<a href="/">1</a>' in read(output_dir, 'page', '2', 'index.html')

        assert 'Welcome' in read(output_dir, 'page', '2', 'index.html')
        assert 'Ghost' in read(output_dir, 'author', 'ghost', 'page', '2', 'index.html')
        assert os.path.exists(os.path.join(output_dir, '404.html'))

    def test_query_error_leaves_output_untouched(self, temp_dir, output_dir, log_dir):
        os.makedirs(output_dir)
        Path(output_dir, 'index.html').write_text('previous build')
        source = Mock()
        source.query.return_value = QueryResult(errors=[{'message': 'schema mismatch'}])

        generator = Ghostwright(source, output_dir=output_dir, log_dir=log_dir)
        with pytest.raises(ContentQueryError, match='schema mismatch'):
            generator.build()

        assert len(generator.registry) == 0
        assert read(output_dir, 'index.html') == 'previous build'

    def test_production_build_patches_and_minifies(self, snapshot_file, output_dir, log_dir, mock_assets_dir):
        generator = self.make_generator(snapshot_file, output_dir, log_dir, assets_dir=mock_assets_dir)
        generator.build()

        minimizers = generator.build_config['optimization']['minimizer']
        css_entry = minimizers[find_minimizer(minimizers, CSS_MINIMIZER)]
        assert css_entry['options'] == css_minimizer_options()
        assert generator.assets_minified == 2
        assert os.path.exists(os.path.join(output_dir, 'assets', 'css', 'style.min.css'))
        assert os.path.exists(os.path.join(output_dir, 'assets', 'js', 'main.min.js'))

    def test_develop_build_skips_minification(self, snapshot_file, output_dir, log_dir, mock_assets_dir):
        generator = self.make_generator(snapshot_file, output_dir, log_dir, assets_dir=mock_assets_dir, production=False)
        generator.build()

        assert generator.build_config['optimization']['minimize'] is False
        assert generator.build_config['optimization']['minimizer'][1]['options'] == {}
        assert generator.assets_minified == 0
        assert os.path.exists(os.path.join(output_dir, 'assets', 'css', 'style.css'))
        assert not os.path.exists(os.path.join(output_dir, 'assets', 'css', 'style.min.css'))

    def test_create_output_dir_keeps_hidden_files(self, snapshot_file, output_dir, log_dir):
        os.makedirs(os.path.join(output_dir, 'stale'))
        Path(output_dir, '.git').write_text('keep')
        generator = self.make_generator(snapshot_file, output_dir, log_dir)

        generator.create_output_dir()

        assert not os.path.exists(os.path.join(output_dir, 'stale'))
        assert os.path.exists(os.path.join(output_dir, '.git'))

    def test_sitemap_and_robots(self, snapshot_file, output_dir, log_dir):
        generator = self.make_generator(snapshot_file, output_dir, log_dir, site_url='https://example.com')
        generator.build()

        sitemap = read(output_dir, 'sitemap.xml')
        assert '<loc>https://example.com/</loc>' in sitemap
        assert '<loc>https://example.com/tag/news</loc>' in sitemap
        assert '<loc>https://example.com/welcome/</loc>' in sitemap
        assert '<lastmod>2023-01-01</lastmod>' in sitemap
        assert 'Sitemap: https://example.com/sitemap.xml' in read(output_dir, 'robots.txt')

    def test_build_refuses_slugs_that_escape_output(self, temp_dir, sample_data, log_dir):
        sample_data['allGhostPost']['edges'][0]['node']['slug'] = '../escaped'
        snapshot = Path(temp_dir) / 'traversal.json'
        snapshot.write_text(json.dumps({'data': sample_data}))
        output_dir = os.path.join(temp_dir, 'site', 'public')
        generator = Ghostwright(
            FileContentSource(str(snapshot)),
            templates_dir='nonexistent-templates',
            output_dir=output_dir,
            log_dir=log_dir,
            site_url='https://example.com'
        )

        assert generator.build() is False

        assert generator.failed_routes == ['/../escaped/']
        assert not os.path.exists(os.path.join(temp_dir, 'site', 'escaped', 'index.html'))
        assert os.path.exists(os.path.join(output_dir, 'second-post', 'index.html'))
        assert 'escaped' not in read(output_dir, 'sitemap.xml')

    def test_public_robots_without_site_url(self, snapshot_file, output_dir, log_dir):
        generator = self.make_generator(snapshot_file, output_dir, log_dir)
        generator.build()
        assert read(output_dir, 'robots.txt') == "User-agent: *\nAllow: /"
        assert not os.path.exists(os.path.join(output_dir, 'sitemap.xml'))

    def test_404_write_failure_is_logged(self, snapshot_file, output_dir, log_dir):
        generator = self.make_generator(snapshot_file, output_dir, log_dir)
        generator.content = ContentIndex(QueryResult({}))
        renderer = RouteRenderer(package_templates_dir(), output_dir)
        # Output directory was never created
        assert generator.build_404_page(renderer) is False
        assert not os.path.exists(os.path.join(output_dir, '404.html'))

    def test_private_robots(self, snapshot_file, output_dir, log_dir):
        generator = self.make_generator(snapshot_file, output_dir, log_dir)
        generator.build(robots='private')
        assert read(output_dir, 'robots.txt') == "User-agent: *\nDisallow: /"
        assert not os.path.exists(os.path.join(output_dir, 'sitemap.xml'))

    def test_cleanup_closes_source(self, output_dir, log_dir):
        source = Mock()
        Ghostwright(source, output_dir=output_dir, log_dir=log_dir).cleanup()
        source.close.assert_called_once()
