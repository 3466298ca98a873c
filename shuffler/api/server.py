"""
Story Shuffler: HTTP API Server
===============================

Request/response surface over the shuffle core. Each request is validated
and shuffled from scratch; the server keeps no manuscript state.

Endpoints:
- GET  /health                      -> Status
- POST /api/v1/validate             -> Validation report (windows, fixed slots)
- POST /api/v1/shuffle              -> Permutation of explicit sections
- POST /api/v1/manuscript/shuffle   -> Split, shuffle and reassemble text
- GET  /api/v1/metrics              -> Audit report

Error states:
- 422: invalid input (unknown section, cycle, fixed position conflict, ...)
- 500: internal engine error (INFEASIBLE after successful validation)

Environment:
- SHUFFLER_DELIMITER            default section delimiter ("* * *")
- SHUFFLER_DELIMITER_IS_REGEX   treat the delimiter as a regex ("1"/"true")
- SHUFFLER_SEED                 fixed default seed in [0, 2**64) (reproducible shuffles)

Usage:
    uvicorn shuffler.api.server:app --reload
"""
import os
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..contracts.base import Error
from ..contracts.events import AuditEventType
from ..contracts.sections import Constraint, Section
from ..core.shuffle import SEED_BITS
from ..engine import BackendConfig, ShuffleConfig, StoryShufflerBackend
from ..manuscript import DEFAULT_DELIMITER, ManuscriptConfig
from .mapper import error_to_dto, outcome_to_dto, permutation_to_dto, validated_to_dto

# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

MAX_SEED = 2 ** SEED_BITS

# Global Backend Instance
backend_instance: Optional[StoryShufflerBackend] = None


def config_from_env() -> BackendConfig:
    """Build backend configuration from SHUFFLER_* environment variables."""
    seed = os.environ.get("SHUFFLER_SEED")
    return BackendConfig(
        manuscript=ManuscriptConfig(
            delimiter=os.environ.get("SHUFFLER_DELIMITER", DEFAULT_DELIMITER),
            delimiter_is_regex=os.environ.get("SHUFFLER_DELIMITER_IS_REGEX", "").lower()
            in ("1", "true", "yes"),
        ),
        shuffle=ShuffleConfig(seed=int(seed) if seed else None),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the backend on startup."""
    global backend_instance

    print("[*] Initializing shuffler backend...")

    try:
        # A malformed or out-of-range SHUFFLER_SEED fails startup here
        config = config_from_env()
        print(f"[*] Delimiter={config.manuscript.delimiter!r}, "
              f"regex={config.manuscript.delimiter_is_regex}, seed={config.shuffle.seed}")
        backend_instance = StoryShufflerBackend(config)
        backend_instance.observability.log_audit(
            action="startup",
            event_type=AuditEventType.SYSTEM,
            layer="api"
        )
        print("[*] Backend initialized successfully.")
    except Exception as e:
        print(f"[!] FAILED to initialize backend: {e}")
        raise

    yield

    print("[*] Shutting down shuffler backend.")
    backend_instance = None

app = FastAPI(
    title="Story Shuffler API",
    version="1.0.0",
    description="Constraint-respecting reordering of manuscript sections",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class SectionModel(BaseModel):
    section_id: int
    text: str = ""
    fixed: bool = False
    fixed_position: Optional[int] = None


class ConstraintModel(BaseModel):
    before: int
    after: int


class ValidateRequest(BaseModel):
    sections: List[SectionModel]
    constraints: List[ConstraintModel] = []


class ShuffleRequest(ValidateRequest):
    seed: Optional[int] = Field(default=None, ge=0, lt=MAX_SEED)


class ManuscriptShuffleRequest(BaseModel):
    text: str
    delimiter: Optional[str] = None
    delimiter_is_regex: bool = False
    before: Dict[int, str] = {}
    pinned: List[int] = []
    fixed_positions: Dict[int, int] = {}
    seed: Optional[int] = Field(default=None, ge=0, lt=MAX_SEED)


# =============================================================================
# HELPERS
# =============================================================================

def _backend() -> StoryShufflerBackend:
    if not backend_instance:
        raise HTTPException(status_code=503, detail="Backend not initialized")
    return backend_instance


def _raise_for(error: Error):
    status_code = 500 if error.is_internal else 422
    raise HTTPException(status_code=status_code, detail=error_to_dto(error))


def _to_contracts(request: ValidateRequest):
    try:
        sections = [
            Section(
                section_id=model.section_id,
                original_index=index,
                text=model.text,
                fixed=model.fixed,
                fixed_position=model.fixed_position,
            )
            for index, model in enumerate(request.sections)
        ]
    except ValueError as e:
        raise HTTPException(status_code=422, detail={"code": "INVALID_SECTION", "message": str(e)})
    constraints = [Constraint(before=c.before, after=c.after) for c in request.constraints]
    return sections, constraints


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/health")
async def health_check():
    """System status."""
    _backend()
    return {"status": "online"}


@app.post("/api/v1/validate")
async def validate_constraints(request: ValidateRequest):
    """Check that the constraints admit at least one valid order."""
    backend = _backend()
    sections, constraints = _to_contracts(request)

    result = backend.validate(sections, constraints)
    if result.is_failure:
        _raise_for(result.error)
    return validated_to_dto(result.value)


@app.post("/api/v1/shuffle")
async def shuffle_sections(request: ShuffleRequest):
    """Validate, then shuffle explicit sections."""
    backend = _backend()
    sections, constraints = _to_contracts(request)

    validated = backend.validate(sections, constraints)
    if validated.is_failure:
        _raise_for(validated.error)

    shuffled = backend.shuffle(validated.value, request.seed)
    if shuffled.is_failure:
        _raise_for(shuffled.error)
    return permutation_to_dto(shuffled.value)


@app.post("/api/v1/manuscript/shuffle")
async def shuffle_manuscript(request: ManuscriptShuffleRequest):
    """Split a manuscript, shuffle its sections and reassemble the text."""
    backend = _backend()

    config = None
    if request.delimiter is not None:
        config = ManuscriptConfig(
            delimiter=request.delimiter,
            delimiter_is_regex=request.delimiter_is_regex
        )

    result = backend.shuffle_manuscript(
        request.text,
        before=request.before,
        pinned=request.pinned,
        fixed_positions=request.fixed_positions,
        seed=request.seed,
        config=config,
    )
    if result.is_failure:
        _raise_for(result.error)
    return outcome_to_dto(result.value)


@app.get("/api/v1/metrics")
async def get_metrics():
    """Audit report: entry counts by layer/type and metric aggregates."""
    return _backend().get_audit_report()
