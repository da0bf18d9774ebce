from dotenv import load_dotenv
from pathlib import Path
import os

# Load environment variables from .env file
load_dotenv()

# ─── Session / categories ───────────────────────────────────────────
CATEGORY_COUNT = 5

SESSION_ID = os.getenv("CLASSPOLLS_SESSION_ID", "class_01")
CATEGORY_LABELS = [
    label.strip()
    for label in os.getenv(
        "CLASSPOLLS_CATEGORIES",
        "Section 1,Section 2,Section 3,Section 4,Section 5",
    ).split(",")
]
if len(CATEGORY_LABELS) != CATEGORY_COUNT:
    raise ValueError(
        f"CLASSPOLLS_CATEGORIES must name exactly {CATEGORY_COUNT} categories, "
        f"got {len(CATEGORY_LABELS)}"
    )

DEFAULT_VALUES = [20] * CATEGORY_COUNT

# ─── Store ──────────────────────────────────────────────────────────
# backend/classpolls/config.py -> backend/allocations.json
STORE_FILE = Path(
    os.getenv("CLASSPOLLS_STORE_FILE", Path(__file__).resolve().parents[1] / "allocations.json")
)

# ─── Timeouts (seconds) ─────────────────────────────────────────────
SUBMIT_TIMEOUT = float(os.getenv("CLASSPOLLS_SUBMIT_TIMEOUT", 10))
SUBSCRIBE_TIMEOUT = float(os.getenv("CLASSPOLLS_SUBSCRIBE_TIMEOUT", 8))

# ─── Server ─────────────────────────────────────────────────────────
HOST = os.getenv("CLASSPOLLS_HOST", "localhost")
PORT = int(os.getenv("CLASSPOLLS_PORT", 8000))
LOG_LEVEL = os.getenv("CLASSPOLLS_LOG_LEVEL", "INFO").upper()
