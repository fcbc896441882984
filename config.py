"""Hook pipeline configuration — LLM providers, per-stage models, deadlines."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
ROOT_DIR = Path(__file__).parent
OUTPUT_DIR = ROOT_DIR / os.getenv("OUTPUT_DIR", "outputs")

# ---------------------------------------------------------------------------
# LLM Provider API Keys
# ---------------------------------------------------------------------------
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "") or os.getenv("API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")

# ---------------------------------------------------------------------------
# Model names (centralized so they're easy to update)
# ---------------------------------------------------------------------------
OPENAI_FULL = "gpt-4o"
OPENAI_MINI = "gpt-4o-mini"
ANTHROPIC_FULL = "claude-sonnet-4-5"
ANTHROPIC_MINI = "claude-haiku-4-5"
GOOGLE_FULL = "gemini-2.5-pro"
GOOGLE_MINI = "gemini-2.5-flash"

# Model types a caller may request for the primary rung.
ALLOWED_MODEL_TYPES = (OPENAI_FULL, OPENAI_MINI)

# ---------------------------------------------------------------------------
# Hook generation pipeline
#
# Every stage can be pointed at a different provider/model via env:
#   HOOK_PROVIDER=anthropic
#   HOOK_MODEL_PRIMARY=claude-sonnet-4-5
# ---------------------------------------------------------------------------
HOOK_PROVIDER = os.getenv("HOOK_PROVIDER", "openai")
HOOK_MODEL_PRIMARY = os.getenv("HOOK_MODEL_PRIMARY", OPENAI_FULL)
HOOK_MODEL_SIMPLIFIED = os.getenv("HOOK_MODEL_SIMPLIFIED", OPENAI_MINI)
HOOK_MODEL_REPAIR = os.getenv("HOOK_MODEL_REPAIR", OPENAI_MINI)
HOOK_MODEL_JUDGE = os.getenv("HOOK_MODEL_JUDGE", OPENAI_MINI)

# Wall-clock deadlines per external call (seconds).
HOOK_PRIMARY_DEADLINE_SECONDS = float(os.getenv("HOOK_PRIMARY_DEADLINE_SECONDS", "25"))
HOOK_SIMPLIFIED_DEADLINE_SECONDS = float(os.getenv("HOOK_SIMPLIFIED_DEADLINE_SECONDS", "20"))
HOOK_REPAIR_DEADLINE_SECONDS = float(os.getenv("HOOK_REPAIR_DEADLINE_SECONDS", "10"))
HOOK_JUDGE_DEADLINE_SECONDS = float(os.getenv("HOOK_JUDGE_DEADLINE_SECONDS", "15"))

# Fallback ladder attempt caps. The static rung never calls out.
HOOK_PRIMARY_MAX_ATTEMPTS = int(os.getenv("HOOK_PRIMARY_MAX_ATTEMPTS", "2"))
HOOK_SIMPLIFIED_MAX_ATTEMPTS = int(os.getenv("HOOK_SIMPLIFIED_MAX_ATTEMPTS", "1"))
HOOK_RETRY_WAIT_SECONDS = float(os.getenv("HOOK_RETRY_WAIT_SECONDS", "1"))

# Minimum hooks a model response must carry to count as a success.
HOOK_MIN_GENERATED = int(os.getenv("HOOK_MIN_GENERATED", "8"))
HOOK_RESULT_SIZE = 10

# Bounded fan-out for per-candidate repair calls (upstream rate limits).
HOOK_REPAIR_MAX_PARALLEL = int(os.getenv("HOOK_REPAIR_MAX_PARALLEL", "4"))

# Optional LLM judge pass. Judge scores are informational only.
HOOK_JUDGE_ENABLED = os.getenv("HOOK_JUDGE_ENABLED", "false").strip().lower() in ("1", "true", "yes")

# Cosmetic score jitter (±0.15). Seed pins it for reproducible runs.
HOOK_SCORE_JITTER = os.getenv("HOOK_SCORE_JITTER", "true").strip().lower() in ("1", "true", "yes")
_seed_raw = os.getenv("HOOK_SCORE_SEED", "").strip()
HOOK_SCORE_SEED = int(_seed_raw) if _seed_raw else None

# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
