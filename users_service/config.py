import os

from dotenv import load_dotenv

# Chargement des variables d'environnement
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


SERVICE_NAME = os.getenv("SERVICE_NAME", "users-service")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))

LOG_FILE = os.getenv("LOG_FILE", "logs.json")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_ROTATION = os.getenv("LOG_ROTATION", "1 day")

# Status for unknown ids (500 gives the legacy generic-failure behaviour)
NOT_FOUND_STATUS_CODE = int(os.getenv("NOT_FOUND_STATUS_CODE", 404))

SEED_USERS = _flag("SEED_USERS", "true")
