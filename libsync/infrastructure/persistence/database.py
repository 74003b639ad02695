"""
Configuration de la base de données SQLite pour libsync.

Ce module fournit :
- create_db_engine : engine SQLite utilisable depuis plusieurs threads
- init_db : création des tables, de l'index FTS5 et de ses triggers

L'index plein texte media_library_fts est une table "external content" :
il ne stocke que l'index, et les triggers le maintiennent dans la même
transaction que chaque écriture de media_library.
"""

from pathlib import Path

from loguru import logger
from sqlalchemy import Engine, event, text
from sqlmodel import SQLModel, create_engine

# Colonnes indexées en plein texte (dans l'ordre de la table FTS)
FTS_COLUMNS = ("title", "original_title", "summary", "actors_json", "director")

_FTS_COLS = ", ".join(FTS_COLUMNS)
_NEW_COLS = ", ".join(f"NEW.{c}" for c in FTS_COLUMNS)
_OLD_COLS = ", ".join(f"OLD.{c}" for c in FTS_COLUMNS)

_FTS_STATEMENTS = (
    f"""
    CREATE VIRTUAL TABLE IF NOT EXISTS media_library_fts USING fts5(
        {_FTS_COLS}, content=media_library, content_rowid=id
    )
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS media_library_ai AFTER INSERT ON media_library BEGIN
        INSERT INTO media_library_fts(rowid, {_FTS_COLS}) VALUES (NEW.id, {_NEW_COLS});
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS media_library_ad AFTER DELETE ON media_library BEGIN
        INSERT INTO media_library_fts(media_library_fts, rowid, {_FTS_COLS})
        VALUES ('delete', OLD.id, {_OLD_COLS});
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS media_library_au AFTER UPDATE ON media_library BEGIN
        INSERT INTO media_library_fts(media_library_fts, rowid, {_FTS_COLS})
        VALUES ('delete', OLD.id, {_OLD_COLS});
        INSERT INTO media_library_fts(rowid, {_FTS_COLS}) VALUES (NEW.id, {_NEW_COLS});
    END
    """,
)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Crée l'engine SQLite.

    Le répertoire parent du fichier est créé si nécessaire. Le mode WAL est
    active pour que les lectures (API web) ne bloquent pas la synchronisation.

    Args:
        database_url: URL SQLAlchemy (ex: sqlite:///libsync.db)
        echo: Journaliser les requêtes SQL
    """
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        db_path = Path(database_url.replace("sqlite:///", "", 1))
        db_path.parent.mkdir(exist_ok=True, parents=True)

    engine = create_engine(
        database_url,
        echo=echo,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    return engine


def init_db(engine: Engine) -> None:
    """
    Initialise la base de données : tables SQLModel, index FTS5 et triggers.

    Idempotent : peut être appelée à chaque démarrage.
    """
    # Import des modèles pour enregistrer leurs métadonnées
    from libsync.infrastructure.persistence import models  # noqa: F401

    SQLModel.metadata.create_all(engine)

    with engine.begin() as conn:
        for statement in _FTS_STATEMENTS:
            conn.execute(text(statement))
    logger.debug(f"Base initialisée: {engine.url}")
