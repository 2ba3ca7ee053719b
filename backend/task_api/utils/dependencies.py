import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..models.task import Task
from ..models.user import Role
from .errors import Forbidden, MalformedIdentifier, MissingToken, NotFound, Unauthenticated
from .security import Identity, TokenService

bearer_scheme = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """Verify the bearer token and attach the caller's identity to the request."""
    if credentials is None or not credentials.credentials:
        raise MissingToken()
    identity = tokens.verify(credentials.credentials)
    request.state.identity = identity
    return identity


class RoleGuard:
    """
    Lets the request through only if the attached identity has one of `roles`.

    Must run after get_current_identity; with no identity attached it
    refuses with 401 rather than guessing.
    """

    def __init__(self, *roles: Role):
        self.roles = frozenset(Role(r).value for r in roles)

    def __call__(self, request: Request) -> Identity:
        identity: Optional[Identity] = getattr(request.state, "identity", None)
        if identity is None:
            raise Unauthenticated()
        if identity.role not in self.roles:
            raise Forbidden()
        return identity


admin_only = RoleGuard(Role.ADMIN)


def parse_task_id(task_id: str) -> str:
    try:
        return str(uuid.UUID(task_id))
    except (ValueError, AttributeError, TypeError):
        raise MalformedIdentifier()


def get_owned_task(db: Session, task_id: str, identity: Identity) -> Task:
    """Fetch a task the caller may act on: 400 bad id, 404 absent, 403 not theirs."""
    task = db.get(Task, parse_task_id(task_id))
    if task is None:
        raise NotFound()
    if not identity.is_admin and task.owner_id != identity.id:
        raise Forbidden()
    return task
