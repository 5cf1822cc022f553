"""Configuration and environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from backend directory (one level up from portfo/)
load_dotenv(Path(__file__).parent.parent / ".env")

# --- API Keys ---
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "")

# --- GitHub Models ---
GITHUB_MODELS_URL = os.getenv("GITHUB_MODELS_URL", "https://models.inference.ai.azure.com")
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "gpt-4o-mini")
MODEL_TIMEOUT_S = float(os.getenv("MODEL_TIMEOUT_S", "60"))

# --- Chat orchestration ---
MAX_TOOL_ITERATIONS = int(os.getenv("MAX_TOOL_ITERATIONS", "5"))
MAX_CONTEXT_TOKENS = int(os.getenv("MAX_CONTEXT_TOKENS", "4000"))

# --- Supabase ---
SUPABASE_URL = os.getenv("SUPABASE_URL", "http://127.0.0.1:54321")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
MEDIA_BUCKET = os.getenv("MEDIA_BUCKET", "portfolio-media")

# --- Editor ---
UNDO_HISTORY_LIMIT = int(os.getenv("UNDO_HISTORY_LIMIT", "5"))
UNDO_DEBOUNCE_S = float(os.getenv("UNDO_DEBOUNCE_S", "0.5"))
RESIZE_DEBOUNCE_S = float(os.getenv("RESIZE_DEBOUNCE_S", "0.1"))

# --- Default grid ---
DEFAULT_GRID_COLUMNS = int(os.getenv("DEFAULT_GRID_COLUMNS", "4"))
DEFAULT_CELL_GAP = int(os.getenv("DEFAULT_CELL_GAP", "8"))
DEFAULT_ASPECT_RATIO = float(os.getenv("DEFAULT_ASPECT_RATIO", "1"))
