"""
Access rules for the archive.

Every function here is pure: the requester and the document (or target OPD)
are passed in, nothing is read from the database or from request state.
Anything with `role` and `opd_id` attributes works as a requester, so the
ORM User, the auth dependency result and plain test doubles are all accepted.

Roles:
    admin      - reads everything, mutates everything, uploads anywhere
    pengelola  - reads own OPD + public, mutates and uploads within own OPD
    staf       - reads own OPD + public, read-only

A non-admin without an OPD falls back to public documents only.
"""
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

from app.models.document import Document
from app.models.enums import UserRole


def is_admin(requester) -> bool:
    return requester.role == UserRole.ADMIN


def can_view(requester, document) -> bool:
    """
    Decide whether requester may read document.

    Precedence: admin, then public flag, then same-OPD membership.
    """
    if is_admin(requester):
        return True
    if document.is_public:
        return True
    return requester.opd_id is not None and requester.opd_id == document.opd_id


def can_mutate(requester, document) -> bool:
    """Edit and delete share this rule; staf never passes it."""
    if is_admin(requester):
        return True
    return (
        requester.role == UserRole.PENGELOLA
        and requester.opd_id is not None
        and requester.opd_id == document.opd_id
    )


def can_upload(requester, opd_id: int) -> bool:
    if is_admin(requester):
        return True
    return (
        requester.role == UserRole.PENGELOLA
        and requester.opd_id is not None
        and requester.opd_id == opd_id
    )


def visibility_clause(requester, include_private: bool = False) -> Optional[ColumnElement]:
    """
    Translate the read scope into a SQL filter over Document.

    Returns None when no restriction applies (admin who opted in to private
    documents). Without the opt-in every role, admin included, gets the
    public-only scope.
    """
    if include_private:
        if is_admin(requester):
            return None
        if requester.opd_id is not None:
            return or_(Document.is_public.is_(True), Document.opd_id == requester.opd_id)
    return Document.is_public.is_(True)
