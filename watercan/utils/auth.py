# watercan/utils/auth.py
"""
Access guard: who is calling and with which role.

The bearer token is only decoded here; the caller identity and role are
then passed explicitly to routes and services as a ``Caller``.
"""

import logging
import jwt
import requests
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from watercan.core import config
from watercan.core.exceptions import AccessDenied, NotAuthenticated, RoleLookupError
from watercan.db.get_db import get_db
from watercan.models.customer import Customer
from watercan.models.enums import AppRole

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24


@dataclass
class Caller:
    caller_id: str
    role: AppRole
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_owner(self) -> bool:
        return self.role == AppRole.owner


@dataclass
class RoleResolution:
    role: AppRole
    source: str
    failures: List[Tuple[str, str]] = field(default_factory=list)


RoleStrategy = Callable[[str, dict, Session], Optional[AppRole]]


def _as_role(value) -> Optional[AppRole]:
    if isinstance(value, AppRole):
        return value
    # Metadata from the identity provider may hold any JSON value
    if isinstance(value, str) and value in AppRole._value2member_map_:
        return AppRole(value)
    return None


def identity_provider_role(caller_id: str, claims: dict, db: Session) -> Optional[AppRole]:
    """Role stored in the identity provider's public metadata for this user."""
    if not config.IDENTITY_PROVIDER_URL:
        return None
    try:
        response = requests.get(
            f"{config.IDENTITY_PROVIDER_URL.rstrip('/')}/users/{caller_id}",
            headers={"Authorization": f"Bearer {config.IDENTITY_PROVIDER_SECRET}"},
            timeout=config.IDENTITY_PROVIDER_TIMEOUT
        )
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as e:
        raise RoleLookupError(f"Identity provider lookup failed: {e}") from e

    metadata = payload.get("public_metadata") if isinstance(payload, dict) else None
    if not isinstance(metadata, dict):
        return None
    return _as_role(metadata.get("role"))


def token_claim_role(caller_id: str, claims: dict, db: Session) -> Optional[AppRole]:
    return _as_role(claims.get("role"))


def customer_record_role(caller_id: str, claims: dict, db: Session) -> Optional[AppRole]:
    try:
        customer = db.query(Customer).filter(Customer.id == caller_id).first()
    except SQLAlchemyError as e:
        raise RoleLookupError(f"Customer lookup failed: {e}") from e
    return customer.role if customer else None


def default_role(caller_id: str, claims: dict, db: Session) -> Optional[AppRole]:
    return AppRole.customer


ROLE_STRATEGIES: Sequence[Tuple[str, RoleStrategy]] = (
    ("identity_provider", identity_provider_role),
    ("token_claim", token_claim_role),
    ("customer_record", customer_record_role),
    ("default", default_role),
)


def resolve_role(caller_id: str, claims: dict, db: Session, strategies=None) -> RoleResolution:
    """
    Ask each strategy in order and return the first definite role.

    A strategy answers ``None`` when it has no opinion and raises
    ``RoleLookupError`` when its source is unreachable; failures are logged
    and kept on the result, then the next strategy is consulted.
    """
    failures = []
    for name, strategy in strategies if strategies is not None else ROLE_STRATEGIES:
        try:
            role = strategy(caller_id, claims, db)
        except RoleLookupError as e:
            logger.warning("Role strategy %s failed for %s: %s", name, caller_id, e.message)
            failures.append((name, e.message))
            continue
        if role is not None:
            return RoleResolution(role=role, source=name, failures=failures)

    return RoleResolution(role=AppRole.customer, source="fallback", failures=failures)


def get_current_caller(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Caller:
    if not credentials or not credentials.credentials:
        raise NotAuthenticated()

    try:
        payload = jwt.decode(credentials.credentials, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise NotAuthenticated("Token has expired")
    except jwt.InvalidTokenError:
        raise NotAuthenticated("Invalid token")

    caller_id = payload.get("sub") or payload.get("user_id")
    if not caller_id:
        raise NotAuthenticated("Invalid token")

    resolution = resolve_role(str(caller_id), payload, db)
    return Caller(
        caller_id=str(caller_id),
        role=resolution.role,
        name=payload.get("name"),
        email=payload.get("email")
    )


def require_owner(caller: Caller = Depends(get_current_caller)) -> Caller:
    if not caller.is_owner:
        raise AccessDenied("Permission denied. Required role: owner")
    return caller


def ensure_self_or_owner(caller: Caller, customer_key: str, message: str = "You can only access your own account"):
    if not caller.is_owner and caller.caller_id != customer_key:
        raise AccessDenied(message)


def create_access_token(data: dict, expires_delta: timedelta = None) -> str:
    """
    Generate a JWT for a caller
    Expect data to contain: {"sub": <caller id>} and optionally "role", "name", "email"
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)
