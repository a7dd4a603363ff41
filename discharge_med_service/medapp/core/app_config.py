# medapp/core/app_config.py
import os

from medapp.core.env import load_env

load_env()

MAX_SUMMARY_CHARS = int(os.getenv("MAX_SUMMARY_CHARS", "10000"))

# Medication defaults shared by both extraction dialects
DURATION_UNSPECIFIED = "Duration not specified"
JSON_COURSE_DAYS = int(os.getenv("JSON_COURSE_DAYS", "7"))
OPEN_ENDED_DAYS = int(os.getenv("OPEN_ENDED_DAYS", "365"))

# course length per dialect; None = open-ended
DIALECT_COURSE_DAYS = {
    "bullet": None,
    "json": JSON_COURSE_DAYS,
}

DUE_WINDOW_MINUTES = int(os.getenv("DUE_WINDOW_MINUTES", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
