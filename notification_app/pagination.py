from rest_framework import pagination
from rest_framework.response import Response


class NotificationCursorPagination(pagination.CursorPagination):
    page_size = 20
    page_size_query_param = 'limit'
    max_page_size = 50
    ordering = ('-created_at', '-id')
    cursor_query_param = 'before'

    def get_paginated_response(self, data):
        return Response({
            'success': True,
            'data': {
                'notifications': data,
                'next': self.get_next_link(),
                'previous': self.get_previous_link(),
            },
        })
