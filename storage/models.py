from sqlalchemy import TIMESTAMP, Boolean, Column, Enum, Integer, String, Text, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()
metadata = Base.metadata


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    name = Column(Text)
    email = Column(String(320))
    login_method = Column("loginMethod", String(64))
    role = Column(Enum("user", "admin", name="user_role"), default="user", nullable=False)
    created_at = Column("createdAt", TIMESTAMP, default=func.current_timestamp())
    last_signed_in = Column("lastSignedIn", TIMESTAMP, default=func.current_timestamp())


class Fractal(Base):
    """A saved visualization: image URL plus the UCF parameters that produced it."""
    __tablename__ = "fractals"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(64), nullable=False, index=True)
    image_url = Column("imageUrl", Text, nullable=False)
    harmony = Column(String(32), nullable=False)
    zoom = Column(String(32), nullable=False)
    resilience = Column(String(32), nullable=False)
    prana = Column(String(32), nullable=False)
    drishti = Column(String(32), nullable=False)
    klesha = Column(String(32), nullable=False)
    is_favorite = Column("isFavorite", Boolean, default=False)
    is_public = Column("isPublic", Boolean, default=False)
    title = Column(String(255))
    description = Column(Text)
    created_at = Column("createdAt", TIMESTAMP, default=func.current_timestamp(), index=True)
    updated_at = Column("updatedAt", TIMESTAMP, default=func.current_timestamp(), onupdate=func.current_timestamp())


class Collection(Base):
    __tablename__ = "collections"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    is_public = Column("isPublic", Boolean, default=False)
    created_at = Column("createdAt", TIMESTAMP, default=func.current_timestamp(), index=True)
    updated_at = Column("updatedAt", TIMESTAMP, default=func.current_timestamp(), onupdate=func.current_timestamp())


class FractalInCollection(Base):
    __tablename__ = "fractals_in_collections"

    fractal_id = Column("fractalId", String(64), primary_key=True)
    collection_id = Column("collectionId", String(64), primary_key=True)
    added_at = Column("addedAt", TIMESTAMP, default=func.current_timestamp())


class UserStats(Base):
    __tablename__ = "user_stats"

    user_id = Column("userId", String(64), primary_key=True)
    total_fractals_generated = Column("totalFractalsGenerated", Integer, default=0)
    total_favorites = Column("totalFavorites", Integer, default=0)
    total_collections = Column("totalCollections", Integer, default=0)
    last_generated_at = Column("lastGeneratedAt", TIMESTAMP)
    updated_at = Column("updatedAt", TIMESTAMP, default=func.current_timestamp(), onupdate=func.current_timestamp())


def to_dict(row) -> dict:
    """Row -> dict keyed by column name (camelCase, as stored)."""
    return {c.name: getattr(row, attr) for attr, c in row.__mapper__.columns.items()}
