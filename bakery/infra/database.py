"""
Exécuteur SQL (sans ORM) au-dessus de SQLAlchemy Core.
- query(sql, params): lecture/écriture autonome, retourne des dicts
- connect(): connexion de lecture (pas de commit)
- transaction(): bloc atomique, commit en sortie normale, rollback sur exception
"""
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

from bakery.config import DATABASE_URL, DB_ECHO, DB_POOL_SIZE

logger = logging.getLogger(__name__)

T = TypeVar("T")

_engine: Optional[Engine] = None

def _make_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # SQLite en mémoire: une seule connexion partagée entre threads (TestClient)
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=DB_ECHO, future=True, **kwargs)
    return create_engine(
        url,
        echo=DB_ECHO,
        future=True,
        pool_size=DB_POOL_SIZE,
        pool_pre_ping=True,
    )

def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = _make_engine(DATABASE_URL)
    return _engine

def set_engine(engine: Optional[Engine]) -> None:
    """Remplace l'engine global (tests, scripts). None force une recréation au prochain appel."""
    global _engine
    _engine = engine

def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None

def rows(conn: Connection, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Exécute un SELECT sur une connexion existante et retourne une liste de dicts."""
    result = conn.execute(text(sql), params or {})
    return [dict(r) for r in result.mappings().all()]

def first(conn: Connection, sql: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    found = rows(conn, sql, params)
    return found[0] if found else None

def execute(conn: Connection, sql: str, params: Optional[Dict[str, Any]] = None) -> int:
    """Exécute une écriture et retourne le nombre de lignes affectées."""
    result = conn.execute(text(sql), params or {})
    return result.rowcount

def insert_returning_id(conn: Connection, sql: str, params: Optional[Dict[str, Any]] = None) -> int:
    """INSERT ... RETURNING id (Postgres, SQLite >= 3.35)."""
    result = conn.execute(text(sql), params or {})
    return int(result.scalar_one())

def query(sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """
    Requête autonome sur sa propre connexion.
    - SELECT: retourne les lignes
    - écriture: commit immédiat, retourne []
    """
    with get_engine().begin() as conn:
        result = conn.execute(text(sql), params or {})
        if result.returns_rows:
            return [dict(r) for r in result.mappings().all()]
        return []

@contextmanager
def connect() -> Iterator[Connection]:
    """Connexion de lecture; toute écriture éventuelle est annulée à la fermeture."""
    with get_engine().connect() as conn:
        try:
            yield conn
        finally:
            if conn.in_transaction():
                conn.rollback()

@contextmanager
def transaction() -> Iterator[Connection]:
    """Bloc atomique: commit si le bloc se termine, rollback sinon (l'exception est propagée)."""
    with get_engine().connect() as conn:
        with conn.begin():
            yield conn

def run_in_transaction(fn: Callable[[Connection], T]) -> T:
    """Équivalent fonctionnel de transaction(): exécute fn(conn) dans un bloc atomique."""
    with transaction() as conn:
        return fn(conn)

def ping() -> Dict[str, Any]:
    try:
        with connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"connect_ok": True, "error": None}
    except Exception as e:
        logger.exception("database.ping failed")
        return {"connect_ok": False, "error": str(e)}
