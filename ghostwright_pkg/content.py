"""
Content sources for Ghostwright.

Every source answers the same content query and returns a QueryResult shaped
like a GraphQL response: ``data.allGhostPost.edges[].node`` and so on.
"""

import os
import json
import logging
import requests
import yaml
from typing import Any, Dict, List, Optional

CONTENT_QUERY = """
{
    allGhostPost(sort: { order: ASC, fields: published_at }) {
        edges {
            node {
                slug
                title
                html
                excerpt
                feature_image
                published_at
                primary_author { slug name }
                tags { slug name }
            }
        }
    }
    allGhostTag(sort: { order: ASC, fields: name }) {
        edges {
            node {
                slug
                url
                name
                description
                postCount
            }
        }
    }
    allGhostAuthor(sort: { order: ASC, fields: name }) {
        edges {
            node {
                slug
                url
                name
                bio
                profile_image
                postCount
            }
        }
    }
    allGhostPage(sort: { order: ASC, fields: published_at }) {
        edges {
            node {
                slug
                url
                title
                html
                published_at
            }
        }
    }
}
"""

COLLECTIONS = {
    'posts': 'allGhostPost',
    'tags': 'allGhostTag',
    'authors': 'allGhostAuthor',
    'pages': 'allGhostPage',
}


class ContentQueryError(Exception):
    """The content query failed or reported errors. Always fatal to a build."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or []


class QueryResult:
    """Result of the content query, in GraphQL response shape."""

    def __init__(self, data=None, errors=None):
        self.data = data or {}
        self.errors = errors or []

    def _nodes(self, collection):
        connection = self.data.get(collection) or {}
        return [edge['node'] for edge in connection.get('edges') or []]

    @property
    def posts(self):
        return self._nodes(COLLECTIONS['posts'])

    @property
    def tags(self):
        return self._nodes(COLLECTIONS['tags'])

    @property
    def authors(self):
        return self._nodes(COLLECTIONS['authors'])

    @property
    def pages(self):
        return self._nodes(COLLECTIONS['pages'])

    def raise_for_errors(self):
        """Raise ContentQueryError if the query reported any error."""
        if self.errors:
            messages = '; '.join(_error_message(e) for e in self.errors)
            raise ContentQueryError(f"Content query failed: {messages}", self.errors)

    def to_dict(self) -> Dict[str, Any]:
        payload = {'data': self.data}
        if self.errors:
            payload['errors'] = self.errors
        return payload

    @classmethod
    def from_dict(cls, payload):
        """Build a result from a GraphQL response body or a bare ``data`` mapping."""
        if not isinstance(payload, dict):
            raise ContentQueryError(f"Expected a mapping, got {type(payload).__name__}")
        if 'data' in payload or 'errors' in payload:
            return cls(payload.get('data'), payload.get('errors'))
        return cls(payload)


def _error_message(error):
    if isinstance(error, dict):
        return str(error.get('message', error))
    return str(error)


def _connection(nodes):
    return {'edges': [{'node': node} for node in nodes]}


class GraphQLContentSource:
    """Run the content query against a GraphQL endpoint over HTTP."""

    def __init__(self, endpoint: str, session=None, headers: Optional[Dict[str, str]] = None, timeout: int = 30):
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.headers = headers or {}
        self.timeout = timeout
        self.logger = logging.getLogger('ContentSource')

    def query(self, query: str = CONTENT_QUERY) -> QueryResult:
        self.logger.debug(f"Querying GraphQL endpoint {self.endpoint}")
        try:
            response = self.session.post(
                self.endpoint,
                json={'query': query},
                headers=self.headers,
                timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.HTTPError as e:
            raise ContentQueryError(f"GraphQL endpoint returned an error: {e}") from e
        except (requests.exceptions.InvalidJSONError, json.JSONDecodeError) as e:
            raise ContentQueryError(f"GraphQL endpoint returned invalid JSON: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ContentQueryError(f"Could not reach GraphQL endpoint {self.endpoint}: {e}") from e

        return QueryResult.from_dict(payload)

    def close(self):
        self.session.close()


class GhostContentSource:
    """
    Read content straight from the Ghost Content API.

    The API is paged; each resource is fetched until ``meta.pagination.next``
    is empty. The result is shaped like the GraphQL response so the planner
    never needs to know which source produced it.
    """

    RESOURCES = {
        'allGhostPost': ('posts', {'include': 'tags,authors', 'order': 'published_at asc'}),
        'allGhostTag': ('tags', {'include': 'count.posts', 'order': 'name asc', 'filter': 'visibility:public'}),
        'allGhostAuthor': ('authors', {'include': 'count.posts', 'order': 'name asc'}),
        'allGhostPage': ('pages', {'order': 'published_at asc'}),
    }

    def __init__(self, api_url: str, content_api_key: str, version: str = 'v5.0', session=None, per_page: int = 100, timeout: int = 30):
        if not api_url:
            raise ValueError("Ghost API URL is required")
        if not content_api_key:
            raise ValueError("Ghost Content API key is required")
        self.api_url = api_url.rstrip('/')
        self.content_api_key = content_api_key
        self.version = version
        self.session = session or requests.Session()
        self.per_page = per_page
        self.timeout = timeout
        self.logger = logging.getLogger('ContentSource')

    def fetch_resource(self, resource: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """Fetch every page of a Content API resource."""
        url = f"{self.api_url}/ghost/api/content/{resource}/"
        items = []
        page = 1

        while page:
            query = dict(params, key=self.content_api_key, limit=self.per_page, page=page)
            try:
                response = self.session.get(
                    url,
                    params=query,
                    headers={'Accept-Version': self.version},
                    timeout=self.timeout
                )
                response.raise_for_status()
                payload = response.json()
            except (requests.exceptions.InvalidJSONError, json.JSONDecodeError) as e:
                raise ContentQueryError(f"Invalid JSON fetching {resource} from {url}: {e}") from e
            except requests.exceptions.RequestException as e:
                raise ContentQueryError(f"Failed to fetch {resource} from {url}: {e}") from e

            if payload.get('errors'):
                QueryResult(errors=payload['errors']).raise_for_errors()

            items.extend(payload.get(resource, []))
            pagination = (payload.get('meta') or {}).get('pagination') or {}
            page = pagination.get('next')

        self.logger.debug(f"Fetched {len(items)} {resource}")
        return items

    def query(self, query: str = CONTENT_QUERY) -> QueryResult:
        data = {}
        for collection, (resource, params) in self.RESOURCES.items():
            nodes = [self.to_node(resource, item) for item in self.fetch_resource(resource, params)]
            data[collection] = _connection(nodes)
        return QueryResult(data)

    def to_node(self, resource, item):
        """Map a Content API object onto the fields the content query exposes."""
        node = dict(item)
        if resource in ('tags', 'authors'):
            count = node.pop('count', None) or {}
            node['postCount'] = count.get('posts')
        if resource == 'posts':
            authors = node.pop('authors', None) or []
            if not node.get('primary_author') and authors:
                node['primary_author'] = authors[0]
        return node

    def close(self):
        self.session.close()


class FileContentSource:
    """Read a content snapshot saved as JSON or YAML."""

    def __init__(self, path: str):
        self.path = path

    def query(self, query: str = CONTENT_QUERY) -> QueryResult:
        ext = os.path.splitext(self.path)[1].lower()
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                if ext in ['.yml', '.yaml']:
                    payload = yaml.safe_load(f) or {}
                elif ext == '.json':
                    payload = json.load(f)
                else:
                    raise ContentQueryError(f"Unsupported snapshot format: {ext}")
        except (IOError, OSError) as e:
            raise ContentQueryError(f"Error reading content snapshot {self.path}: {e}") from e
        except yaml.YAMLError as e:
            raise ContentQueryError(f"Invalid YAML in content snapshot {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ContentQueryError(f"Invalid JSON in content snapshot {self.path}: {e}") from e

        return QueryResult.from_dict(payload)

    def close(self):
        pass


def write_snapshot(result: QueryResult, path: str) -> str:
    """Write a query result to disk in the shape FileContentSource reads."""
    ext = os.path.splitext(path)[1].lower()
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        if ext in ['.yml', '.yaml']:
            yaml.safe_dump(result.to_dict(), f, allow_unicode=True, sort_keys=False)
        elif ext == '.json':
            json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
        else:
            raise ValueError(f"Unsupported snapshot format: {ext}")
    return path


def create_content_source(settings: Dict[str, Any]):
    """Create the content source named by the ``source`` setting."""
    source = settings.get('source', 'file')
    if source == 'file':
        return FileContentSource(settings['content_file'])
    if source == 'graphql':
        if not settings.get('graphql_url'):
            raise ValueError("graphql_url is required for the graphql source")
        return GraphQLContentSource(settings['graphql_url'])
    if source == 'ghost':
        return GhostContentSource(settings.get('ghost_api_url'), settings.get('ghost_content_api_key'))
    raise ValueError(f"Unknown content source: {source}")
