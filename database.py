# =============================================================================
# 🗄️ database.py
# -----------------------------------------------------------------------------
# SQLAlchemy-Datenbankkonfiguration für PianoStyle QR
# MySQL (PyMySQL) wenn MYSQL_HOST gesetzt ist, sonst DATABASE_URL / SQLite
# =============================================================================

import os
from urllib.parse import quote_plus

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

# 🔹 .env laden (z. B. aus .env-Datei im Projektverzeichnis)
load_dotenv()


def _database_url() -> str:
    if os.getenv("MYSQL_HOST"):
        user = os.getenv("MYSQL_USER", "root")
        # 🔹 Passwort sicher escapen (bei Sonderzeichen wie @, #, !, %)
        password = quote_plus(os.getenv("MYSQL_PASS", ""))
        host = os.getenv("MYSQL_HOST")
        port = os.getenv("MYSQL_PORT", "3306")
        db = os.getenv("MYSQL_DB", "pianostyle")
        return f"mysql+pymysql://{user}:{password}@{host}:{port}/{db}?charset=utf8mb4"
    return os.getenv("DATABASE_URL", "sqlite:///./pianostyle.db")


SQLALCHEMY_DATABASE_URL = _database_url()

# 🔹 Engine erstellen
# pool_pre_ping = erkennt automatisch unterbrochene Verbindungen
if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        pool_pre_ping=True,
        pool_recycle=280,
    )

# 🔹 SessionFactory – erzeugt Session für jede Anfrage
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# 🔹 Basisklasse für alle SQLAlchemy-Modelle
Base = declarative_base()


# 🔹 Dependency für FastAPI
def get_db():
    """
    Erstellt eine neue Datenbank-Session pro Anfrage und schließt sie automatisch.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
