"""
Configuration de la connexion à la base de données.
PostgreSQL en production, SQLite accepté en développement et pour les tests.

Le moteur et la fabrique de sessions sont construits une seule fois au démarrage
(lifespan de l'application) puis stockés sur app.state : aucune connexion globale.
"""

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """
    Crée le moteur SQLAlchemy.

    Pour SQLite, chaque transaction démarre par BEGIN IMMEDIATE : le verrou d'écriture
    est pris dès le début, ce qui sérialise les inscriptions concurrentes au lieu de
    provoquer des "database is locked" au moment de l'UPDATE.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Désactive la gestion implicite des transactions du driver pysqlite
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    """Dépendance FastAPI : fournit une session BDD et la ferme après usage."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
