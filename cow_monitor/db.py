from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, Tuple

from sqlalchemy import create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings

def _engine_kwargs(url: str) -> Dict[str, Any]:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    # in-memory databases live per connection; share a single one
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs

settings = get_settings()
engine = create_engine(settings.database_url, echo=settings.database_echo, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()

UPSERT_DIALECTS: Tuple[str, ...] = ("postgresql", "sqlite")

def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def upsert(
    db: Session,
    model,
    values: Dict[str, Any],
    conflict_cols: Iterable[str],
    update_cols: Iterable[str],
) -> None:
    """
    INSERT ... ON CONFLICT (conflict_cols) DO UPDATE SET update_cols.

    The last writer for a natural key wins; nothing is committed here.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model).values(**values)
    else:
        raise ValueError(f"upsert supports {', '.join(UPSERT_DIALECTS)}, not {dialect!r}")

    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_cols),
        set_={col: stmt.excluded[col] for col in update_cols},
    )
    db.execute(stmt)
