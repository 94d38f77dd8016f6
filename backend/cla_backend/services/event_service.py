# backend/cla_backend/services/event_service.py
"""
Event Service for the CLA backend.

Records the audit trail: who changed which signature, approval list or ACL,
on behalf of which company and CLA group. Every event carries a details
string (``event_data``) and a short summary, both rendered from a typed
event-data object so wording stays consistent across call sites.

Logging an event is best-effort: ``log_event`` never raises, so callers can
schedule it in the background without guarding it.

Usage:
    from cla_backend.services.event_service import event_service, LogEventArgs

    await event_service.log_event(LogEventArgs(
        event_type=EventType.CLA_APPROVAL_LIST_UPDATED,
        ...
    ))
"""

import base64
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import func, or_, select

from ..database.models import Event
from ..models import EventList, EventModel
from .database_service import DatabaseService, database_service

logger = logging.getLogger("cla.services.event_service")

DEFAULT_EVENT_PAGE_SIZE = 10


class EventType:
    """Event type names stored in ``Event.event_type``."""

    INVALIDATED_SIGNATURE = "InvalidatedSignature"
    CLA_APPROVAL_LIST_UPDATED = "ClaApprovalListUpdated"
    EMPLOYEE_SIGNATURE_CREATED = "EmployeeSignatureCreated"


# =========================================================================
# EVENT DATA
# =========================================================================


@dataclass
class ApprovalListChangeEventData:
    """One entry added to or removed from an approval list."""

    category: str
    value: str
    added: bool

    def get_event_details_string(self, args: "LogEventArgs") -> Tuple[str, bool]:
        action = "added" if self.added else "removed"
        preposition = "to" if self.added else "from"
        data = (
            f"CLA Manager {args.lf_username or args.user_name} {action} {self.category} {self.value} "
            f"{preposition} the approval list for company {args.company_name} ({args.company_id}) "
            f"and CLA group {args.cla_group_name} ({args.cla_group_id})."
        )
        return data, True

    def get_event_summary_string(self, args: "LogEventArgs") -> Tuple[str, bool]:
        action = "added" if self.added else "removed"
        preposition = "to" if self.added else "from"
        summary = (
            f"{args.user_name or args.lf_username} {action} {self.category} {self.value} {preposition} "
            f"the approval list for {args.company_name} on {args.cla_group_name}."
        )
        return summary, True


@dataclass
class SignatureInvalidatedEventData:
    """An employee signature invalidated by an approval list change."""

    signature_id: str
    reason: str

    def get_event_details_string(self, args: "LogEventArgs") -> Tuple[str, bool]:
        data = (
            f"Signature {self.signature_id} for company {args.company_name} ({args.company_id}) "
            f"and CLA group {args.cla_group_name} ({args.cla_group_id}) was invalidated: {self.reason}."
        )
        return data, False

    def get_event_summary_string(self, args: "LogEventArgs") -> Tuple[str, bool]:
        return f"Signature invalidated for {args.company_name} on {args.cla_group_name}.", False


@dataclass
class EmployeeSignatureCreatedEventData:
    """An ECLA auto-created from an approval list update."""

    signature_id: str
    employee_identity: str

    def get_event_details_string(self, args: "LogEventArgs") -> Tuple[str, bool]:
        data = (
            f"Employee acknowledgement {self.signature_id} was auto-created for {self.employee_identity} "
            f"under company {args.company_name} ({args.company_id}) and CLA group "
            f"{args.cla_group_name} ({args.cla_group_id})."
        )
        return data, True

    def get_event_summary_string(self, args: "LogEventArgs") -> Tuple[str, bool]:
        return (
            f"Employee acknowledgement auto-created for {self.employee_identity} on {args.cla_group_name}.",
            True,
        )


@dataclass
class LogEventArgs:
    """Context for one audit event."""

    event_type: str
    event_data: object = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    lf_username: Optional[str] = None
    cla_group_id: Optional[str] = None
    cla_group_name: Optional[str] = None
    project_sfid: Optional[str] = None
    parent_project_sfid: Optional[str] = None
    company_id: Optional[str] = None
    company_name: Optional[str] = None
    company_sfid: Optional[str] = None


# =========================================================================
# CURSORS
# =========================================================================


def _encode_cursor(offset: int) -> str:
    return base64.urlsafe_b64encode(str(offset).encode()).decode()


def _decode_cursor(next_key: Optional[str]) -> int:
    if not next_key:
        return 0
    try:
        return int(base64.urlsafe_b64decode(next_key.encode()).decode())
    except (ValueError, UnicodeDecodeError):
        logger.warning(f"Ignoring malformed event cursor: {next_key}")
        return 0


class EventService:
    """
    Audit event persistence and queries.

    Queries return newest events first, paginated with an opaque ``next_key``
    cursor and a page size (default 10). Passing ``all_events=True`` returns
    every matching event in one page.
    """

    def __init__(self, db: Optional[DatabaseService] = None):
        self._db = db or database_service

    async def log_event(self, args: LogEventArgs) -> Optional[EventModel]:
        """
        Render and persist an audit event.

        Failures are logged and swallowed.

        Returns:
            The stored event, or None when it could not be stored
        """
        try:
            event_data, contains_pii = "", False
            event_summary = ""
            if args.event_data is not None:
                event_data, contains_pii = args.event_data.get_event_details_string(args)
                event_summary, _ = args.event_data.get_event_summary_string(args)

            now = datetime.utcnow()
            async with self._db.get_session() as session:
                row = Event(
                    event_type=args.event_type,
                    event_user_id=args.user_id,
                    event_user_name=args.user_name,
                    event_lf_username=args.lf_username,
                    event_cla_group_id=args.cla_group_id,
                    event_cla_group_name=args.cla_group_name,
                    event_project_sfid=args.project_sfid,
                    event_parent_project_sfid=args.parent_project_sfid,
                    event_company_id=args.company_id,
                    event_company_name=args.company_name,
                    event_company_sfid=args.company_sfid,
                    event_data=event_data,
                    event_summary=event_summary,
                    contains_pii=contains_pii,
                    event_time=now,
                    event_time_epoch=int(time.time()),
                )
                session.add(row)
                await session.flush()
                logger.debug(f"Logged event {args.event_type} ({row.event_id})")
                return EventModel.model_validate(row)
        except Exception as e:
            logger.error(f"Failed to log event {args.event_type}: {e}")
            return None

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def _query_events(
        self,
        conditions: list,
        next_key: Optional[str],
        page_size: Optional[int],
        all_events: bool = False,
        search_term: Optional[str] = None,
    ) -> EventList:
        offset = 0 if all_events else _decode_cursor(next_key)
        limit = None if all_events else (page_size or DEFAULT_EVENT_PAGE_SIZE)

        query = select(Event)
        for condition in conditions:
            query = query.where(condition)
        if search_term:
            pattern = f"%{search_term.lower()}%"
            query = query.where(
                or_(
                    func.lower(Event.event_data).like(pattern),
                    func.lower(Event.event_summary).like(pattern),
                )
            )
        query = query.order_by(Event.event_time_epoch.desc(), Event.event_id.desc()).offset(offset)
        if limit is not None:
            # Fetch one extra row to know whether another page exists
            query = query.limit(limit + 1)

        async with self._db.get_session() as session:
            result = await session.execute(query)
            rows = list(result.scalars())

        next_cursor = None
        if limit is not None and len(rows) > limit:
            rows = rows[:limit]
            next_cursor = _encode_cursor(offset + limit)

        events = [EventModel.model_validate(row) for row in rows]
        return EventList(events=events, next_key=next_cursor, result_count=len(events))

    async def get_cla_group_events(
        self,
        cla_group_id: str,
        next_key: Optional[str] = None,
        page_size: Optional[int] = None,
        all_events: bool = False,
        search_term: Optional[str] = None,
    ) -> EventList:
        return await self._query_events(
            [Event.event_cla_group_id == cla_group_id], next_key, page_size, all_events, search_term
        )

    async def get_company_events(
        self,
        company_id: str,
        event_type: Optional[str] = None,
        next_key: Optional[str] = None,
        page_size: Optional[int] = None,
        all_events: bool = False,
    ) -> EventList:
        conditions = [Event.event_company_id == company_id]
        if event_type:
            conditions.append(Event.event_type == event_type)
        return await self._query_events(conditions, next_key, page_size, all_events)

    async def search_events(
        self,
        event_type: Optional[str] = None,
        user_id: Optional[str] = None,
        company_id: Optional[str] = None,
        cla_group_id: Optional[str] = None,
        search_term: Optional[str] = None,
        next_key: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> EventList:
        conditions = []
        if event_type:
            conditions.append(Event.event_type == event_type)
        if user_id:
            conditions.append(Event.event_user_id == user_id)
        if company_id:
            conditions.append(Event.event_company_id == company_id)
        if cla_group_id:
            conditions.append(Event.event_cla_group_id == cla_group_id)
        return await self._query_events(conditions, next_key, page_size, search_term=search_term)


# Global singleton instance
event_service = EventService()
