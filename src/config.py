import os

from dotenv import load_dotenv

load_dotenv()

DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS")
DB_HOST = os.getenv("DB_HOST")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME")

if DB_HOST:
    DATABASE_URL = f"postgresql+asyncpg://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
else:
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./whisperlink.db")

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")

GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "0.2"))
LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "3"))

SHORT_ID_LENGTH = int(os.getenv("SHORT_ID_LENGTH", "8"))
SHORT_ID_MAX_ATTEMPTS = int(os.getenv("SHORT_ID_MAX_ATTEMPTS", "5"))

MAX_MESSAGES_FOR_SUMMARY = int(os.getenv("MAX_MESSAGES_FOR_SUMMARY", "50"))
SUMMARY_CACHE_SECONDS = int(os.getenv("SUMMARY_CACHE_SECONDS", "60"))

# Base for the shareable send/view URLs; falls back to the request's base URL
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
