"""Hook Line Studio — Web Server.

Thin FastAPI layer over the hook pipeline: generate hooks, export them as
CSV, browse the taxonomy, check provider configuration.

Usage:
    python server.py
    # Then POST to http://localhost:8000/api/generate-hooks
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response
from pydantic import AliasChoices, BaseModel, Field

import config
from pipeline.hook_engine import InvalidHookRequest, generate_hooks
from pipeline.hook_export import export_filename, hooks_to_csv
from pipeline.hook_strategy import CATEGORY_SELECTION
from pipeline.hook_taxonomy import HOOK_TAXONOMY
from schemas.hooks import GenerationResult, Objective, Platform

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def _check_api_keys() -> list[str]:
    """Check which LLM provider API keys are configured. Returns list of warnings."""
    warnings = []
    if not config.OPENAI_API_KEY:
        warnings.append("OPENAI_API_KEY is not set")
    if not config.ANTHROPIC_API_KEY:
        warnings.append("ANTHROPIC_API_KEY is not set")
    if not config.GOOGLE_API_KEY:
        warnings.append("GOOGLE_API_KEY is not set")

    key_map = {
        "openai": config.OPENAI_API_KEY,
        "anthropic": config.ANTHROPIC_API_KEY,
        "google": config.GOOGLE_API_KEY,
    }
    provider = config.HOOK_PROVIDER
    if not key_map.get(provider):
        warnings.insert(
            0,
            f"HOOK_PROVIDER is '{provider}' but {provider.upper()}_API_KEY is not set; "
            "every request will fall back to static templates",
        )
    return warnings


@asynccontextmanager
async def lifespan(app: FastAPI):
    key_warnings = _check_api_keys()
    if key_warnings:
        logger.warning("=" * 60)
        logger.warning("API KEY WARNINGS:")
        for w in key_warnings:
            logger.warning("  • %s", w)
        logger.warning("=" * 60)
    else:
        logger.info("API keys: all providers configured")
    yield


app = FastAPI(title="Hook Line Studio", version="1.0.0", lifespan=lifespan)


# ---------------------------------------------------------------------------
# API Routes
# ---------------------------------------------------------------------------

class GenerateHooksRequest(BaseModel):
    topic: str = ""
    platform: str = ""
    objective: str = ""
    model_type: Optional[str] = Field(None, validation_alias=AliasChoices("modelType", "model_type"))
    brand: dict = {}


@app.post("/api/generate-hooks")
async def api_generate_hooks(req: GenerateHooksRequest):
    """Generate 10 ranked tri-modal hooks for a topic."""
    if not req.topic.strip() or not req.platform or not req.objective:
        return JSONResponse(
            {"error": "Missing required fields: platform, objective, topic"}, status_code=400
        )

    payload = {
        "topic": req.topic,
        "platform": req.platform,
        "objective": req.objective,
        "brand": req.brand,
        "model_type": req.model_type,
    }
    try:
        result = await asyncio.to_thread(generate_hooks, payload)
    except InvalidHookRequest as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    return result.model_dump(mode="json")


@app.post("/api/export-csv")
async def api_export_csv(result: GenerationResult):
    """Render a generation result as a CSV download."""
    filename = export_filename(result, int(time.time() * 1000))
    return Response(
        content=hooks_to_csv(result),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/taxonomy")
async def api_taxonomy():
    """The hook taxonomy plus the category mix used per content type."""
    return {
        "categories": HOOK_TAXONOMY,
        "selection": {k: list(v) for k, v in CATEGORY_SELECTION.items()},
        "platforms": [p.value for p in Platform],
        "objectives": [o.value for o in Objective],
    }


@app.get("/api/health")
async def api_health():
    """Check system health — API keys, config, etc."""
    providers = {
        "openai": bool(config.OPENAI_API_KEY),
        "anthropic": bool(config.ANTHROPIC_API_KEY),
        "google": bool(config.GOOGLE_API_KEY),
    }
    return {
        "ok": providers.get(config.HOOK_PROVIDER, False),
        "provider": config.HOOK_PROVIDER,
        "models": {
            "primary": config.HOOK_MODEL_PRIMARY,
            "simplified": config.HOOK_MODEL_SIMPLIFIED,
            "repair": config.HOOK_MODEL_REPAIR,
            "judge": config.HOOK_MODEL_JUDGE,
        },
        "judge_enabled": config.HOOK_JUDGE_ENABLED,
        "providers": providers,
        "warnings": _check_api_keys(),
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn
    print("\n  Hook Line Studio API")
    print("  http://localhost:8000\n")
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
