"""Test configuration and fixtures for Ghostwright tests."""

import pytest
import tempfile
import shutil
import json
import copy
from pathlib import Path
from unittest.mock import Mock

SAMPLE_DATA = {
    'allGhostPost': {'edges': [
        {'node': {
            'slug': 'welcome',
            'title': 'Welcome',
            'html': '<p>Hello from Ghost.</p>',
            'excerpt': 'Hello from Ghost.',
            'published_at': '2023-01-01T09:00:00.000Z',
            'primary_author': {'slug': 'ghost', 'name': 'Ghost'},
            'tags': [{'slug': 'news', 'name': 'News'}],
        }},
        {'node': {
            'slug': 'second-post',
            'title': 'Second Post',
            'html': '<p>Second.</p>',
            'excerpt': 'Second.',
            'published_at': '2023-02-01T09:00:00.000Z',
            'primary_author': {'slug': 'ghost', 'name': 'Ghost'},
            'tags': [{'slug': 'news', 'name': 'News'}],
        }},
        {'node': {
            'slug': 'third-post',
            'title': 'Third Post',
            'html': '<p>Third.</p>',
            'excerpt': 'Third.',
            'published_at': '2023-03-01T09:00:00.000Z',
            'primary_author': {'slug': 'ghost', 'name': 'Ghost'},
            'tags': [],
        }},
    ]},
    'allGhostTag': {'edges': [
        {'node': {'slug': 'news', 'url': 'https://demo.ghost.io/tag/news/', 'name': 'News', 'postCount': 2}},
    ]},
    'allGhostAuthor': {'edges': [
        {'node': {'slug': 'ghost', 'url': 'https://demo.ghost.io/author/ghost/', 'name': 'Ghost', 'postCount': 3}},
    ]},
    'allGhostPage': {'edges': [
        {'node': {
            'slug': 'about',
            'url': 'https://demo.ghost.io/about/',
            'title': 'About',
            'html': '<p>About us.</p>',
            'published_at': '2022-12-01T09:00:00.000Z',
        }},
    ]},
}


def make_data(posts=0, tags=None, authors=None, pages=0):
    """Build a query ``data`` mapping with generated posts and pages."""
    return {
        'allGhostPost': {'edges': [
            {'node': {'slug': f'post-{i}', 'title': f'Post {i}', 'published_at': f'2023-01-{i + 1:02d}T00:00:00Z'}}
            for i in range(posts)
        ]},
        'allGhostTag': {'edges': [{'node': dict(node)} for node in tags or []]},
        'allGhostAuthor': {'edges': [{'node': dict(node)} for node in authors or []]},
        'allGhostPage': {'edges': [
            {'node': {'slug': f'page-{i}', 'title': f'Page {i}'}}
            for i in range(pages)
        ]},
    }


@pytest.fixture
def data_factory():
    """Factory for query ``data`` mappings of a given size."""
    return make_data


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def sample_data():
    """A fresh copy of the sample query data."""
    return copy.deepcopy(SAMPLE_DATA)


@pytest.fixture
def snapshot_file(temp_dir, sample_data):
    """Write the sample data as a JSON content snapshot."""
    path = Path(temp_dir) / 'content.json'
    path.write_text(json.dumps({'data': sample_data}))
    return str(path)


@pytest.fixture
def mock_assets_dir(temp_dir):
    """Create an assets directory with one CSS and one JS file."""
    assets_dir = Path(temp_dir) / 'static'
    (assets_dir / 'css').mkdir(parents=True)
    (assets_dir / 'js').mkdir(parents=True)
    (assets_dir / 'css' / 'style.css').write_text("""
body {
    color: #ffffff;
    margin: 0px;
}
""")
    (assets_dir / 'js' / 'main.js').write_text("""
function greet(name) {
    // say hello
    return 'Hello ' + name;
}
""")
    return str(assets_dir)


@pytest.fixture
def mock_session():
    """Create a mock requests session."""
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def mock_response():
    """Factory for mock HTTP responses carrying a JSON payload."""
    def factory(payload, status_code=200):
        response = Mock()
        response.status_code = status_code
        response.json.return_value = payload
        response.raise_for_status.return_value = None
        return response
    return factory
