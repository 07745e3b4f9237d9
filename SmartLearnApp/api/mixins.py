from functools import cached_property

from rest_framework.response import Response

from SmartLearnApp.core.exceptions import Unauthenticated
from SmartLearnApp.core.identity import resolve_caller


class PaginationMixin:
    """Shared helper to reduce pagination boilerplate."""

    def paginate_and_respond(self, queryset, serializer_cls, many=True):
        page = self.paginate_queryset(queryset)
        serializer = serializer_cls(page if page is not None else queryset, many=many)
        if page is not None:
            return self.get_paginated_response(serializer.data)
        return Response(serializer.data)


class CallerMixin:
    """Resolves the request's principal to its profile once per request."""

    @cached_property
    def caller(self):
        profile = resolve_caller(self.request)
        if profile is None:
            raise Unauthenticated()
        return profile
