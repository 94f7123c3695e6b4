"""
Pagination helper.

Slices an ordered collection into fixed-size pages and registers one route
per page. Page 0 lives at the prefix itself; page n lives at
``{prefix}/{n + 1}``.
"""

import math
import re


def _join(prefix, human_page_number):
    return re.sub(r'/+', '/', f"{prefix}/{human_page_number}")


def _page_path(path_prefix, page_number):
    prefix = path_prefix(page_number) if callable(path_prefix) else path_prefix
    if page_number == 0:
        return prefix
    return _join(prefix, page_number + 1)


def get_pagination_links(current_page, total_pages):
    """
    Returns a list of page numbers (or ellipses) to display in pagination.
    Always shows page 1 and total_pages.
    Shows two pages before and after the current page.
    Inserts '...' when there is a gap.
    """
    delta = 2
    links = [1]

    start = max(current_page - delta, 2)
    end = min(current_page + delta, total_pages - 1)

    if start > 2:
        links.append('...')

    links.extend(range(start, end + 1))

    if end < total_pages - 1:
        links.append('...')

    if total_pages > 1:
        links.append(total_pages)

    return links


def get_page_links(path_prefix, current_page, total_pages):
    """Pair each entry of get_pagination_links() with its page path (None for '...')."""
    return [
        {'number': number, 'path': None if number == '...' else _page_path(path_prefix, number - 1)}
        for number in get_pagination_links(current_page, total_pages)
    ]


def paginate(register, items, items_per_page, template, path_prefix, context=None):
    """
    Register one route per page of ``items``.

    Args:
        register: Callable taking ``(path, template, context)``.
        items: Ordered sequence to paginate. Only its length matters here.
        items_per_page: Page size, at least 1.
        template: Template identifier bound to every page.
        path_prefix: A string, or a callable taking the 0-based page number
            and returning the prefix for that page.
        context: Extra context merged into every page.

    Returns:
        The number of pages registered. Always at least 1.
    """
    if items_per_page < 1:
        raise ValueError(f"items_per_page must be at least 1, got {items_per_page}")

    number_of_pages = max(1, math.ceil(len(items) / items_per_page))

    for page_number in range(number_of_pages):
        if page_number > 0:
            previous_path = _page_path(path_prefix, page_number - 1)
        else:
            previous_path = ''
        if page_number < number_of_pages - 1:
            next_path = _page_path(path_prefix, page_number + 1)
        else:
            next_path = ''

        page_context = dict(context or {})
        page_context.update({
            'pageNumber': page_number,
            'humanPageNumber': page_number + 1,
            'skip': page_number * items_per_page,
            'limit': items_per_page,
            'numberOfPages': number_of_pages,
            'previousPagePath': previous_path,
            'nextPagePath': next_path,
            'pageNumbers': get_pagination_links(page_number + 1, number_of_pages),
            'pageLinks': get_page_links(path_prefix, page_number + 1, number_of_pages),
        })
        register(_page_path(path_prefix, page_number), template, page_context)

    return number_of_pages
