"""
FastAPI server for the Study Match service.

Exposes:
  - GET /health - Health check
  - POST /matches - Rank study partners for a stored user
  - POST /matches/score - Score caller-supplied preferences (no store access)
  - GET /preferences/{user_id} - Read a user's matching preferences
  - PUT /preferences/{user_id} - Replace a user's matching preferences
  - GET /docs - Interactive API documentation (Swagger UI)
"""

from dotenv import load_dotenv
load_dotenv()

from fastapi import Depends, FastAPI, HTTPException, Request, status, Header
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import Dict, Any, List, Optional, Annotated
import sys
import time

# Import configuration (loads .env automatically)
from src.config import config, validate_config

# Import logging setup
from src.utils.logging_config import logger, setup_logging

from src.graphs.matching import create_matching_graph
from src.models.matching import DEFAULT_MATCHING_WEIGHTS, MatchingWeights, MatchScore
from src.models.preferences import Candidate, CandidateFilters, UserPreferences, parse_preferences
from src.tools.firestore_tools import get_matching_preferences, save_matching_preferences
from src.tools.scoring_tools import filter_candidates_by_preferences, find_best_matches
from src.utils.errors import (
    FirestoreUnavailableError,
    GraphExecutionError,
    InvalidInputError,
    InvalidPreferencesError,
)

# Setup logging
setup_logging(debug=config.DEBUG, log_file=config.LOG_FILE or None)

# ============================================================
# VALIDATE CONFIGURATION AT STARTUP
# ============================================================
try:
    config_status = validate_config()
    logger.info("Configuration validated successfully")
    for key, value in config_status.items():
        logger.info(f"  {key}: {value}")
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    sys.exit(1)

# ============================================================
# FASTAPI APPLICATION
# ============================================================
app = FastAPI(
    title="Study Match Service",
    description="Preference-based study partner matching for university courses",
    version="1.0.0",
)

origins = [
    "http://localhost:3000",  # Next.js dev
    "http://localhost:5173",  # Vite dev
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================
# REQUEST/RESPONSE MODELS
# ============================================================
class MatchRequest(BaseModel):
    """
    Request body for /matches.

    Attributes:
        userId (str): Requesting user; preferences are read from the store.
        course (str): Optional shortcut that keeps only candidates in this course.
        filters (CandidateFilters): Optional hard filters applied before scoring.
        minScore (int): Drop matches below this score. Defaults to MATCH_MIN_SCORE.
        limit (int): Maximum matches returned. Defaults to MATCH_LIMIT.
    """
    userId: str
    course: Optional[str] = None
    filters: Optional[CandidateFilters] = None
    minScore: Optional[int] = Field(default=None, ge=0, le=100)
    limit: Optional[int] = Field(default=None, ge=0)


class MatchResponse(BaseModel):
    success: bool
    matches: List[Dict[str, Any]] = []
    total: int = 0
    error: Optional[str] = None
    metadata: Dict[str, Any] = {}


class ScoreRequest(BaseModel):
    """
    Request body for /matches/score.

    Everything needed for scoring is in the body; nothing is read from Firestore.
    """
    user: UserPreferences
    candidates: List[Candidate]
    filters: Optional[CandidateFilters] = None
    minScore: Optional[int] = Field(default=None, ge=0, le=100)
    limit: Optional[int] = Field(default=None, ge=0)
    weights: Optional[MatchingWeights] = None


class ScoreResponse(BaseModel):
    matches: List[MatchScore]
    total: int


# ============================================================
# DEPENDENCIES & MIDDLEWARE
# ============================================================
def require_service_token(
    authorization: Annotated[Optional[str], Header()] = None,
) -> None:
    """Reject the request unless it carries the shared service token (when one is configured)."""
    if config.AI_SERVICE_TOKEN:
        expected = f"Bearer {config.AI_SERVICE_TOKEN}"
        if authorization != expected:
            logger.warning("Unauthorized request: invalid or missing token")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
            )


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """
    Middleware to track request processing time.

    Adds X-Process-Time header to all responses showing how long request took.
    """
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


# ============================================================
# ROUTES
# ============================================================

@app.get("/health", tags=["System"])
async def health_check() -> Dict[str, str]:
    """
    Health check endpoint.

    Returns:
        dict: {"status": "healthy"}
    """
    return {"status": "healthy"}


@app.get("/", tags=["System"])
async def root() -> Dict[str, str]:
    """Information about the API and where its documentation lives."""
    return {
        "service": "Study Match Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


@app.post(
    "/matches",
    response_model=MatchResponse,
    tags=["Matching"],
    dependencies=[Depends(require_service_token)],
)
def find_matches(request: MatchRequest) -> MatchResponse:
    """
    Rank study partners for a stored user.

    Matching is best-effort: when preferences are missing or the store is
    unavailable the response carries an empty list and an explanatory error
    instead of failing the request.
    """
    logger.info(f"Received match request for user {request.userId}")

    state = {
        "user_id": request.userId,
        "filters": request.filters.model_dump(by_alias=True, exclude_none=True, mode="json")
        if request.filters
        else {},
        "min_score": request.minScore,
        "limit": request.limit,
    }
    if request.course:
        state["course"] = request.course

    result = create_matching_graph().run(state)

    metadata = result.get("response_metadata", {})
    matches = result.get("final_matches", [])
    logger.info(
        "matches summary: user=%s success=%s total=%s",
        request.userId,
        metadata.get("success"),
        len(matches),
    )
    return MatchResponse(
        success=bool(metadata.get("success")),
        matches=matches,
        total=len(matches),
        error=result.get("error"),
        metadata=metadata,
    )


@app.post(
    "/matches/score",
    response_model=ScoreResponse,
    response_model_by_alias=True,
    tags=["Matching"],
    dependencies=[Depends(require_service_token)],
)
def score_candidates(request: ScoreRequest) -> ScoreResponse:
    """Filter, score and rank caller-supplied candidates."""
    candidates = request.candidates
    if request.filters:
        candidates = filter_candidates_by_preferences(candidates, request.filters)

    matches = find_best_matches(
        request.user,
        candidates,
        min_score=config.MATCH_MIN_SCORE if request.minScore is None else request.minScore,
        limit=config.MATCH_LIMIT if request.limit is None else request.limit,
        weights=request.weights or DEFAULT_MATCHING_WEIGHTS,
    )
    return ScoreResponse(matches=matches, total=len(matches))


@app.get(
    "/preferences/{user_id}",
    tags=["Preferences"],
    dependencies=[Depends(require_service_token)],
)
def read_preferences(user_id: str) -> Dict[str, Any]:
    """Return the stored matchingPreferences map for a user."""
    preferences = get_matching_preferences(user_id)
    if preferences is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {"preferences": preferences}


@app.put(
    "/preferences/{user_id}",
    tags=["Preferences"],
    dependencies=[Depends(require_service_token)],
)
def update_preferences(user_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and replace a user's matchingPreferences map.

    Academic year and major live on the user profile, not in this map, so
    they are not stored here.
    """
    prefs = parse_preferences(body)
    document = prefs.model_dump(
        mode="json",
        by_alias=True,
        exclude_none=True,
        exclude={"academic_year", "major"},
    )
    saved = save_matching_preferences(user_id, document)
    if saved is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {"message": "Preferences updated successfully", "preferences": saved}


# ============================================================
# ERROR HANDLERS
# ============================================================

def _error_response(status_code: int, error: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "status_code": status_code, **extra},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent error response format."""
    logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
    return _error_response(exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Body or parameter validation failed before the route ran."""
    details = [
        {
            "loc": ".".join(str(part) for part in err.get("loc", ())),
            "msg": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]
    logger.warning(f"Request validation failed: {details}")
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY, "Invalid request", details=details
    )


@app.exception_handler(InvalidPreferencesError)
async def invalid_preferences_handler(request: Request, exc: InvalidPreferencesError):
    """Malformed preference data is the caller's to fix; never retried."""
    logger.warning(f"Invalid preferences: {exc}")
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc), details=exc.errors
    )


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    logger.warning(f"Invalid input: {exc}")
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))


@app.exception_handler(FirestoreUnavailableError)
async def firestore_unavailable_handler(request: Request, exc: FirestoreUnavailableError):
    logger.error(f"Firestore unavailable: {exc}")
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE, "Preference store unavailable"
    )


@app.exception_handler(GraphExecutionError)
async def graph_error_handler(request: Request, exc: GraphExecutionError):
    logger.error(f"Graph execution failed: {exc}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Matching pipeline failed"
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle unexpected exceptions.

    Never returns the exception message to the client; it goes to the logs.
    """
    logger.error(f"Unhandled exception: {str(exc)}")
    logger.exception("Full traceback:")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


# ============================================================
# STARTUP EVENTS
# ============================================================

@app.on_event("startup")
async def startup_event():
    """Log startup info. Configuration was already validated at import."""
    logger.info("=" * 60)
    logger.info("Study Match Service Starting Up")
    logger.info("=" * 60)
    logger.info(f"Firebase Project: {config.FIREBASE_PROJECT_ID}")
    logger.info(f"Debug Mode: {config.DEBUG}")
    logger.info(f"Default minScore/limit: {config.MATCH_MIN_SCORE}/{config.MATCH_LIMIT}")
    logger.info(f"Max Candidates: {config.MAX_CANDIDATES}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Study Match Service Shutting Down")


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    """Run with: python -m uvicorn src.server:app --reload"""
    import uvicorn
    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level="info" if not config.DEBUG else "debug"
    )
