from rest_framework.pagination import PageNumberPagination

from core.utils import success_response


class StandardPagination(PageNumberPagination):
    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = 50

    def get_paginated_response(self, data, message='Items retrieved successfully', code='ITEMS_RETRIEVED', extra=None):
        pages = self.page.paginator.num_pages
        body = {
            'items': data,
            'pagination': {
                'current_page': self.page.number,
                'total_pages': pages,
                'total_items': self.page.paginator.count,
                'items_per_page': self.get_page_size(self.request),
                'has_next_page': self.page.has_next(),
                'has_prev_page': self.page.has_previous(),
            },
        }
        if extra:
            body.update(extra)
        return success_response(message, code, body)
