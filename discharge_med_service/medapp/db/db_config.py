# medapp/db/db_config.py

import os
import sqlite3
from pathlib import Path

from medapp.core.env import SERVICE_ROOT, load_env

load_env()

# Database directory (discharge_med_service/medapp/db/ unless overridden)
DB_DIR = Path(os.getenv("MEDAPP_DB_DIR") or SERVICE_ROOT / "medapp" / "db")
DB_DIR.mkdir(parents=True, exist_ok=True)

# Pipeline checkpoints (LangGraph) and application data
CHECKPOINT_DB_PATH = DB_DIR / "checkpoints.db"
DATA_DB_PATH = DB_DIR / "medapp.db"

def get_sqlite_connection(path: Path | str | None = None) -> sqlite3.Connection:
    """
    Create and configure SQLite connection with recommended PRAGMA settings.
    """
    conn = sqlite3.connect(str(path or DATA_DB_PATH), check_same_thread=False)

    # Performance & concurrency settings
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA busy_timeout=5000;")

    return conn
