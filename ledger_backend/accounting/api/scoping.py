# accounting/api/scoping.py

"""
PATH: accounting/api/scoping.py

Request helpers shared by the accounting views:
- company selection (`company` query param or body field, company code)
- Django model-permission gate (no role hardcoding)
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.response import Response

from accounting.services.account_resolver import get_company


def company_from_request(request, *, required: bool = True):
    """Raises EventDataError for a missing/unknown company."""
    raw = request.query_params.get("company")
    if raw is None and isinstance(getattr(request, "data", None), dict):
        raw = request.data.get("company")
    if raw is None and not required:
        return None
    return get_company(raw)


def permission_denied(request, perm: str, action: str) -> Response | None:
    if request.user.has_perm(perm):
        return None
    return Response(
        {"detail": f"You do not have permission to {action}."},
        status=status.HTTP_403_FORBIDDEN,
    )
