"""
Optional persistence for fractals, collections, user stats and users.

get_db() returns None when DATABASE_URL is unset or the engine cannot be created;
every query helper then logs a warning and returns an empty result instead of failing.
Tables are created on first connect; there are no migrations.
"""
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from loguru import logger
from sqlalchemy import create_engine, select
from sqlalchemy.engine.base import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as SQLAlchemySession
from sqlalchemy.orm import sessionmaker

from portal.config import get_database_url
from storage.models import Base, Collection, Fractal, User, UserStats, to_dict


class Database:
    def __init__(self, database_uri: str, echo: bool = False):
        if not database_uri:
            raise RuntimeError("Database URI is not set. Set the DATABASE_URL environment variable.")
        self.database_uri = database_uri
        connect_args = {}
        if database_uri.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(database_uri, echo=echo, connect_args=connect_args)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)
        logger.debug("Database ready: {}", self.engine.url.render_as_string(hide_password=True))

    @contextmanager
    def session(self) -> Iterator[SQLAlchemySession]:
        """Session committed on success, rolled back on error."""
        s = self._session_factory()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    def dispose(self) -> None:
        self.engine.dispose()


_db: Optional[Database] = None


def get_db() -> Optional[Database]:
    """Lazily create the database so local tooling runs without one."""
    global _db
    if _db is None:
        url = get_database_url()
        if not url:
            return None
        try:
            _db = Database(url)
        except (SQLAlchemyError, RuntimeError, ImportError) as e:
            logger.warning("[Database] Failed to connect: {}", e)
            _db = None
    return _db


def set_db(db: Optional[Database]) -> None:
    global _db
    _db = db


def _resolve(db: Optional[Database]) -> Optional[Database]:
    return db if db is not None else get_db()


def _stats_row(s: SQLAlchemySession, user_id: str) -> Optional[UserStats]:
    return s.get(UserStats, user_id)


# ----- users -----

def upsert_user(user_id: str, db: Optional[Database] = None, **fields: Any) -> None:
    if not user_id:
        raise ValueError("User ID is required for upsert")
    db = _resolve(db)
    if db is None:
        logger.warning("[Database] Cannot upsert user: database not available")
        return
    allowed = {"name", "email", "login_method", "role", "last_signed_in"}
    updates = {k: v for k, v in fields.items() if k in allowed and v is not None}
    if not updates:
        updates["last_signed_in"] = datetime.now()
    with db.session() as s:
        row = s.get(User, user_id)
        if row is None:
            row = User(id=user_id)
            s.add(row)
        for k, v in updates.items():
            setattr(row, k, v)


def get_user(user_id: str, db: Optional[Database] = None) -> Optional[Dict[str, Any]]:
    db = _resolve(db)
    if db is None:
        logger.warning("[Database] Cannot get user: database not available")
        return None
    with db.session() as s:
        row = s.get(User, user_id)
        return to_dict(row) if row else None


# ----- fractals -----

def create_fractal(db: Optional[Database] = None, **fields: Any) -> None:
    """Insert a fractal and bump the owner's generated count."""
    db = _resolve(db)
    if db is None:
        logger.warning("[Database] Cannot create fractal: database not available")
        return
    with db.session() as s:
        fractal = Fractal(**fields)
        s.add(fractal)
        stats = _stats_row(s, fractal.user_id)
        if stats is None:
            s.add(UserStats(user_id=fractal.user_id, total_fractals_generated=1, last_generated_at=datetime.now()))
        else:
            stats.total_fractals_generated = (stats.total_fractals_generated or 0) + 1
            stats.last_generated_at = datetime.now()


def get_user_fractals(user_id: str, limit: int = 50, db: Optional[Database] = None) -> List[Dict[str, Any]]:
    db = _resolve(db)
    if db is None:
        logger.warning("[Database] Cannot get fractals: database not available")
        return []
    try:
        with db.session() as s:
            rows = s.scalars(
                select(Fractal).where(Fractal.user_id == user_id).order_by(Fractal.created_at.desc()).limit(limit)
            ).all()
            return [to_dict(r) for r in rows]
    except SQLAlchemyError as e:
        logger.error("[Database] Failed to get user fractals: {}", e)
        return []


def get_fractal(fractal_id: str, db: Optional[Database] = None) -> Optional[Dict[str, Any]]:
    db = _resolve(db)
    if db is None:
        logger.warning("[Database] Cannot get fractal: database not available")
        return None
    try:
        with db.session() as s:
            row = s.get(Fractal, fractal_id)
            return to_dict(row) if row else None
    except SQLAlchemyError as e:
        logger.error("[Database] Failed to get fractal: {}", e)
        return None


def update_fractal(fractal_id: str, db: Optional[Database] = None, **updates: Any) -> None:
    """Apply the non-None fields among title, description, is_public."""
    db = _resolve(db)
    if db is None:
        logger.warning("[Database] Cannot update fractal: database not available")
        return
    allowed = {"title", "description", "is_public"}
    with db.session() as s:
        row = s.get(Fractal, fractal_id)
        if row is None:
            return
        for k, v in updates.items():
            if k in allowed and v is not None:
                setattr(row, k, v)


def toggle_fractal_favorite(fractal_id: str, is_favorite: bool, user_id: str, db: Optional[Database] = None) -> None:
    db = _resolve(db)
    if db is None:
        logger.warning("[Database] Cannot toggle favorite: database not available")
        return
    with db.session() as s:
        row = s.get(Fractal, fractal_id)
        if row is not None:
            row.is_favorite = is_favorite
        stats = _stats_row(s, user_id)
        if stats is not None:
            current = stats.total_favorites or 0
            stats.total_favorites = current + 1 if is_favorite else max(0, current - 1)


def delete_fractal(fractal_id: str, db: Optional[Database] = None) -> None:
    db = _resolve(db)
    if db is None:
        logger.warning("[Database] Cannot delete fractal: database not available")
        return
    with db.session() as s:
        row = s.get(Fractal, fractal_id)
        if row is not None:
            s.delete(row)


# ----- collections -----

def create_collection(db: Optional[Database] = None, **fields: Any) -> None:
    db = _resolve(db)
    if db is None:
        logger.warning("[Database] Cannot create collection: database not available")
        return
    with db.session() as s:
        collection = Collection(**fields)
        s.add(collection)
        stats = _stats_row(s, collection.user_id)
        if stats is not None:
            stats.total_collections = (stats.total_collections or 0) + 1


def get_user_collections(user_id: str, db: Optional[Database] = None) -> List[Dict[str, Any]]:
    db = _resolve(db)
    if db is None:
        logger.warning("[Database] Cannot get collections: database not available")
        return []
    try:
        with db.session() as s:
            rows = s.scalars(
                select(Collection).where(Collection.user_id == user_id).order_by(Collection.created_at.desc())
            ).all()
            return [to_dict(r) for r in rows]
    except SQLAlchemyError as e:
        logger.error("[Database] Failed to get user collections: {}", e)
        return []


def get_user_stats(user_id: str, db: Optional[Database] = None) -> Optional[Dict[str, Any]]:
    db = _resolve(db)
    if db is None:
        logger.warning("[Database] Cannot get stats: database not available")
        return None
    try:
        with db.session() as s:
            row = _stats_row(s, user_id)
            return to_dict(row) if row else None
    except SQLAlchemyError as e:
        logger.error("[Database] Failed to get user stats: {}", e)
        return None
