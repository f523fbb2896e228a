"""Route repository - Database operations for routes and waypoints"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Route, RouteNote, RouteWaypoint


class RouteRepository:
    """Repository for route database operations"""

    @staticmethod
    def get_route(db: Session, route_id: int) -> Optional[Route]:
        return db.query(Route).filter(Route.id == route_id).first()

    @staticmethod
    def get_by_share_id(db: Session, share_id: str) -> Optional[Route]:
        return db.query(Route).filter(Route.share_id == share_id).first()

    @staticmethod
    def get_by_share_token(db: Session, share_token: str) -> Optional[Route]:
        return db.query(Route).filter(Route.share_token == share_token).first()

    @staticmethod
    def share_id_exists(db: Session, share_id: str) -> bool:
        return db.query(Route.id).filter(Route.share_id == share_id).first() is not None

    @staticmethod
    def get_user_routes(db: Session, user_id: int, archived: bool = False) -> list[Route]:
        return (
            db.query(Route)
            .filter(Route.user_id == user_id, Route.is_archived == archived)
            .order_by(Route.created_at.desc(), Route.id.desc())
            .all()
        )

    @staticmethod
    def get_routes_scheduled_between(db: Session, user_id: int, start: datetime, end: datetime) -> list[Route]:
        """Routes whose scheduled date falls in [start, end)"""
        return (
            db.query(Route)
            .filter(
                Route.user_id == user_id,
                Route.scheduled_date.isnot(None),
                Route.scheduled_date >= start,
                Route.scheduled_date < end,
            )
            .order_by(Route.scheduled_date)
            .all()
        )

    @staticmethod
    def get_waypoint_counts(db: Session, route_ids: list[int]) -> dict[int, tuple[int, int]]:
        """route_id -> (waypoint count, completed waypoint count)"""
        if not route_ids:
            return {}

        totals = dict(
            db.query(RouteWaypoint.route_id, func.count(RouteWaypoint.id))
            .filter(RouteWaypoint.route_id.in_(route_ids))
            .group_by(RouteWaypoint.route_id)
            .all()
        )
        completed = dict(
            db.query(RouteWaypoint.route_id, func.count(RouteWaypoint.id))
            .filter(RouteWaypoint.route_id.in_(route_ids), RouteWaypoint.status == "complete")
            .group_by(RouteWaypoint.route_id)
            .all()
        )
        return {rid: (totals.get(rid, 0), completed.get(rid, 0)) for rid in route_ids}

    @staticmethod
    def get_waypoint(db: Session, waypoint_id: int) -> Optional[RouteWaypoint]:
        return db.query(RouteWaypoint).filter(RouteWaypoint.id == waypoint_id).first()

    @staticmethod
    def get_missed_waypoints(db: Session, user_id: int) -> list[tuple[RouteWaypoint, Route]]:
        return (
            db.query(RouteWaypoint, Route)
            .join(Route, RouteWaypoint.route_id == Route.id)
            .filter(Route.user_id == user_id, RouteWaypoint.status == "missed")
            .order_by(Route.id, RouteWaypoint.position)
            .all()
        )

    @staticmethod
    def get_completed_routes_before(db: Session, user_id: int, cutoff: datetime) -> list[Route]:
        return (
            db.query(Route)
            .filter(
                Route.user_id == user_id,
                Route.is_archived.is_(False),
                Route.completed_at.isnot(None),
                Route.completed_at <= cutoff,
            )
            .all()
        )

    @staticmethod
    def get_notes(db: Session, route_id: int) -> list[RouteNote]:
        return (
            db.query(RouteNote)
            .filter(RouteNote.route_id == route_id)
            .order_by(RouteNote.created_at.desc(), RouteNote.id.desc())
            .all()
        )

    @staticmethod
    def get_note(db: Session, note_id: int, user_id: int) -> Optional[RouteNote]:
        return db.query(RouteNote).filter(RouteNote.id == note_id, RouteNote.user_id == user_id).first()

    @staticmethod
    def save(db: Session, *objects) -> None:
        for obj in objects:
            db.add(obj)
        db.commit()
        for obj in objects:
            db.refresh(obj)

    @staticmethod
    def delete(db: Session, obj) -> None:
        db.delete(obj)
        db.commit()
