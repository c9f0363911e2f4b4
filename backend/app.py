"""
Camera Assistant Backend API
FastAPI server that answers questions about camera frames, routing each
request to Gemini (cloud) or Ollama (on-device) with a single fallback hop.
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from dotenv import load_dotenv

from errors import AnalysisError, ValidationError
from gemini_service import GeminiBackend, create_client
from models import BackendKind
from normalizer import normalize
from ollama_service import OllamaBackend
from orchestrator import FallbackOrchestrator
from reachability import ReachabilityProbe
from routing import get_policy, get_policy_name

logger = logging.getLogger(__name__)

# Load .env file (for GEMINI_API_KEY etc.)
load_dotenv()

app = FastAPI(
    title="Camera Assistant API",
    description="Multimodal question answering with local/cloud fallback",
    version="1.0.0"
)

# CORS for the browser camera client
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Built once in startup
orchestrator: Optional[FallbackOrchestrator] = None

PORT = int(os.environ.get("PORT", "3001"))


class AnalyzeRequest(BaseModel):
    """Request body sent by the camera client."""
    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = None
    # Base64 JPEG frame, optionally as a data URL
    image: Optional[str] = None
    # Base64 audio clip, optionally as a data URL
    audio: Optional[str] = None
    search_results: Optional[str] = Field(default=None, alias="searchResults")
    is_initial_analysis: bool = Field(default=False, alias="isInitialAnalysis")
    # Description returned by the initial analysis, echoed back on follow-ups
    prior_description: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("llavaDescription", "priorDescription", "prior_description"),
    )


class AnalyzeResponse(BaseModel):
    text: str


def build_orchestrator() -> FallbackOrchestrator:
    """Create the backend clients and the orchestrator for this process."""
    local = OllamaBackend()
    remote = GeminiBackend(create_client())
    probe = ReachabilityProbe(local_url=local.base_url)
    return FallbackOrchestrator(local, remote, probe, policy=get_policy())


def _error_response(error: AnalysisError) -> JSONResponse:
    return JSONResponse(status_code=error.http_status, content={"error": str(error)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies get the same 400 {"error"} shape as missing media."""
    problems = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body") or "body"
        problems.append(f"{field}: {err.get('msg', 'invalid value')}")
    problems = "; ".join(problems)
    logger.warning("Rejected malformed request: %s", problems)
    return _error_response(ValidationError(f"Invalid request: {problems}"))


@app.on_event("startup")
async def startup():
    """Build the orchestrator and its backend clients once."""
    global orchestrator

    orchestrator = build_orchestrator()

    local = orchestrator.backends[BackendKind.LOCAL]
    remote = orchestrator.backends[BackendKind.REMOTE]
    print(f"Camera Assistant API ready on port {PORT}")
    print(f"  Routing policy: {get_policy_name()}")
    print(f"  Local backend:  {local.base_url} "
          f"(vision={local.vision_model}, text={local.text_model})")
    print(f"  Remote backend: {remote.model} "
          f"({'API key configured' if remote.credentialed else 'no API key'})")
    print(f"  Endpoints:")
    print(f"    POST /api/analyze")
    print(f"    GET  /api/connectivity")
    print(f"    GET  /health")


@app.get("/health")
async def health_check():
    """Health check endpoint (static configuration, no probing)."""
    remote = orchestrator.backends[BackendKind.REMOTE] if orchestrator else None
    local = orchestrator.backends[BackendKind.LOCAL] if orchestrator else None
    return {
        "status": "ok",
        "routing_policy": get_policy_name(),
        "local_model_service": local.base_url if local else None,
        "remote_credential": bool(remote and remote.credentialed),
    }


@app.get("/api/connectivity")
async def connectivity():
    """Probe the local service and the network on demand."""
    reachability = await orchestrator.probe.check()
    remote = orchestrator.backends[BackendKind.REMOTE]
    return {
        "local": reachability.local,
        "network": reachability.network,
        "remote_credential": remote.credentialed,
    }


@app.post("/api/analyze", response_model=AnalyzeResponse)
@app.post("/analisar", response_model=AnalyzeResponse, include_in_schema=False)
async def analyze(body: AnalyzeRequest):
    """
    Answer a prompt about an optional camera frame and/or audio clip.

    Returns:
        {"text": ...} with markdown stripped, or {"error": ...} with 400/500
    """
    logger.info("Analysis request received (fields: %s)",
                ", ".join(sorted(body.model_dump(exclude_none=True))))
    try:
        request = normalize(
            prompt=body.prompt,
            image=body.image,
            audio=body.audio,
            search_results=body.search_results,
            prior_description=body.prior_description,
            is_initial_analysis=body.is_initial_analysis,
        )
    except ValidationError as e:
        logger.warning("Rejected request: %s", e)
        return _error_response(e)

    outcome = await orchestrator.run(request)
    if not outcome.ok:
        return _error_response(outcome.failure)
    return AnalyzeResponse(text=outcome.result.text)


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
