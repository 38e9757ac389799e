import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./visit_planner.db")

# Postal code (CEP) directory - ViaCEP compatible JSON API
CEP_API_BASE_URL = os.getenv("CEP_API_BASE_URL", "https://viacep.com.br/ws").rstrip("/")
CEP_LOOKUP_TIMEOUT = float(os.getenv("CEP_LOOKUP_TIMEOUT", "8.0"))
# Positive lookups are cached in Redis; addresses behind a CEP rarely change
CEP_CACHE_SECONDS = int(os.getenv("CEP_CACHE_SECONDS", "86400"))
CEP_LOOKUP_RPM = int(os.getenv("CEP_LOOKUP_RPM", "60"))

# Frontend origins allowed by CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")

# Client-side settings (visit store and API client)
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000").rstrip("/")
LOCAL_STORAGE_PATH = os.getenv(
    "LOCAL_STORAGE_PATH", str(Path.home() / ".visit_planner" / "storage.json")
)
