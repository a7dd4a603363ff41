import os
from pathlib import Path
from dotenv import load_dotenv

SERVICE_ROOT = Path(__file__).resolve().parents[2]  # discharge_med_service/

def env_file() -> Path:
    return Path(os.getenv("MEDAPP_ENV_FILE") or SERVICE_ROOT / "config.env")

def load_env() -> bool:
    """Load config.env (or MEDAPP_ENV_FILE). Real environment variables win."""
    return load_dotenv(dotenv_path=env_file(), override=False)
