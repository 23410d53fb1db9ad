from rest_framework import permissions
from rest_framework.response import Response

from core.constants import ROLE_CLIENT, ROLE_WORKER
from core.exceptions import Forbidden


class IsClient(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return hasattr(request.user, 'client')


class IsWorker(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return hasattr(request.user, 'worker')


def resolve_role(user, party):
    """
    Work out which side of a negotiation or contract ``user`` is on.

    ``party`` is anything with ``client_id`` (a user id) and ``worker``
    (a Worker profile). Raises Forbidden when the user is neither.
    """
    if user is None or not user.is_authenticated:
        raise Forbidden("Authentication required")
    if party.client_id == user.pk:
        return ROLE_CLIENT
    if party.worker.user_id == user.pk:
        return ROLE_WORKER
    raise Forbidden("You are not a party to this record")


def party_user_ids(party):
    """User ids of both parties, client first."""
    return [party.client_id, party.worker.user_id]


def success_response(message, code, data=None, status_code=200):
    """The success envelope: ``{"success": true, "message", "code", "data"}``."""
    body = {'success': True, 'message': message, 'code': code}
    if data is not None:
        body['data'] = data
    return Response(body, status=status_code)
