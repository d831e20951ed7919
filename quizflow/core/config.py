# /quizflow/core/config.py

"""
Central runtime configuration for the grading backend.

Values are read once from the environment (a local `.env` file is honoured via
python-dotenv). Grading functions take their delays and retry budgets as
explicit parameters and only fall back to these constants as defaults, so
tests can run the whole pipeline without sleeping.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# --- Persistence ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./quizflow.db")

# --- LLM judge ---
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_GRADING_MODEL = os.getenv("GEMINI_GRADING_MODEL", "gemini-2.5-flash")
AI_GRADING_TEMPERATURE = float(os.getenv("AI_GRADING_TEMPERATURE", "0.2"))

# --- AI grading pacing ---
AI_GRADING_MAX_RETRIES = int(os.getenv("AI_GRADING_MAX_RETRIES", "2"))
AI_GRADING_RETRY_DELAY_SECONDS = float(os.getenv("AI_GRADING_RETRY_DELAY_SECONDS", "1.0"))
AI_GRADING_INTER_CALL_DELAY_SECONDS = float(os.getenv("AI_GRADING_INTER_CALL_DELAY_SECONDS", "1.0"))
AI_FLAG_INTER_CALL_DELAY_SECONDS = float(os.getenv("AI_FLAG_INTER_CALL_DELAY_SECONDS", "0.5"))

# --- HTTP & logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]
