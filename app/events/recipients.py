"""Recipient resolution helpers."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from app.errors import StorageError
from app.models.assignment import StaffMember

logger = logging.getLogger(__name__)


def get_manager_user_ids(session: Session, org_id: str) -> list[str]:
    """Login ids of the tenant's active managers that have a linked account.

    Args:
        session: Database session
        org_id: Tenant id

    Returns:
        Distinct auth user ids, in a stable order

    Raises:
        StorageError: If the staff query fails
    """
    try:
        rows = session.exec(
            select(StaffMember.auth_user_id)
            .where(StaffMember.org_id == org_id)
            .where(StaffMember.is_manager == True)  # noqa: E712
            .where(StaffMember.is_active == True)  # noqa: E712
            .where(col(StaffMember.auth_user_id).is_not(None))
            .order_by(StaffMember.auth_user_id)
        ).all()
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError("Failed to load managers", detail=str(e)) from e

    user_ids: list[str] = []
    for user_id in rows:
        if user_id and user_id not in user_ids:
            user_ids.append(user_id)

    logger.debug(
        "Resolved managers",
        extra={"org_id": org_id, "manager_count": len(user_ids)},
    )
    return user_ids
