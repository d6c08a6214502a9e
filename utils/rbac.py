import logging

from django.contrib.auth import get_user_model

# Canonical role names
ROLE_USER = "user"
ROLE_SELLER = "seller"
ROLE_ADMIN = "admin"

# Plan that grants marketplace access
PLAN_SUPER_HERO = "super_hero"

logger = logging.getLogger(__name__)


def _fetch_user_from_db(user):
    """Fetch a fresh copy of the user with only the fields marketplace checks need.

    Returns None for anonymous users. Suspension and plan changes made by
    other requests are therefore visible immediately.
    """
    if not getattr(user, "is_authenticated", False):
        return None
    User = get_user_model()
    return (
        User.objects.only("id", "role", "plan", "is_superuser", "marketplace_suspended")
        .filter(pk=getattr(user, "pk", None))
        .first()
    )


def is_admin(user) -> bool:
    """Consistent admin check across the codebase, verified against the database."""
    db_user = _fetch_user_from_db(user)
    if not db_user:
        return False
    return bool(db_user.is_superuser or db_user.role == ROLE_ADMIN)


def has_marketplace_entitlement(user) -> bool:
    """The user's plan grants marketplace access, or the user is an admin."""
    db_user = _fetch_user_from_db(user)
    if not db_user:
        return False
    return db_user.plan == PLAN_SUPER_HERO or bool(db_user.is_superuser or db_user.role == ROLE_ADMIN)


def is_marketplace_suspended(user) -> bool:
    db_user = _fetch_user_from_db(user)
    return bool(db_user and db_user.marketplace_suspended)


def can_sell(user) -> bool:
    """Entitled and not suspended."""
    allowed = has_marketplace_entitlement(user) and not is_marketplace_suspended(user)
    if not allowed:
        logger.info("Marketplace selling denied: user_id=%s", getattr(user, "id", None))
    return allowed
