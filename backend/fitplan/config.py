import os
from dotenv import load_dotenv

load_dotenv(override=False)

SQLALCHEMY_DATABASE_URL = os.getenv("SQLALCHEMY_DATABASE_URL", "sqlite:///./fitplan.db")
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# LLM Selection Configuration
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "ollama").lower()  # Options: ollama, openrouter, openai
LLM_API_KEY = os.getenv("LLM_API_KEY") or os.getenv("OPENROUTER_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL")  # Optional override
OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434")

# Generation is expensive, so every user gets a sliding window of AI calls
AI_RATE_LIMIT_REQUESTS = int(os.getenv("AI_RATE_LIMIT_REQUESTS", "10"))
AI_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("AI_RATE_LIMIT_WINDOW_SECONDS", "3600"))

# Tiers that unlock auto-adjustment
PAID_TIERS = [t.strip() for t in os.getenv("PAID_TIERS", "paid,pro").split(",") if t.strip()]

# Template selection
SELECTOR_TOP_N = int(os.getenv("SELECTOR_TOP_N", "5"))

DEFAULT_DAILY_CALORIES = 2000
DEFAULT_MEAL_PER_UNIT_CALORIES = 500

MEAL_SLOTS = ["breakfast", "lunch", "dinner"]
MEAL_SLOT_DISTRIBUTION = {
    "breakfast": 0.25,
    "lunch": 0.35,
    "dinner": 0.40,
}

# workouts per week -> ISO weekdays (1 = Monday)
WORKOUT_DAY_MAPPING = {
    1: [1],
    2: [1, 4],
    3: [1, 3, 5],
    4: [1, 2, 4, 5],
    5: [1, 2, 3, 5, 6],
    6: [1, 2, 3, 4, 5, 6],
}

# Adjustment engine context
DEVIATION_LOOKBACK_LIMIT = 20
CHECKIN_LOOKBACK_LIMIT = 4
DEFAULT_DINING_OUT_IMPACT = 200

STREAK_MAX_DAYS = 365
