"""
HTTP API for Mindsort.

JSON endpoints over the chunk service. Every route needs a bearer token;
errors come back as {"error": ..., "code": ...} with no internals.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr

from mindsort import __version__
from mindsort.auth import Authenticator, CurrentUser, TokenAuthenticator
from mindsort.config import LOG_FORMAT, load_config
from mindsort.errors import (
    ClassificationUnavailable,
    InvalidInput,
    MalformedClassifierOutput,
    MindsortError,
    NotFound,
    PersistenceError,
    Unauthorized,
    ValidationError,
)
from mindsort.export import export_filename
from mindsort.models import ChunkProposal, EmotionalIntensity, Importance
from mindsort.service import ChunkService

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[MindsortError], int] = {
    InvalidInput: 400,
    ValidationError: 400,
    Unauthorized: 401,
    NotFound: 404,
    ClassificationUnavailable: 500,
    MalformedClassifierOutput: 500,
    PersistenceError: 500,
}


class CategorizeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: StrictStr
    emotional_intensity: EmotionalIntensity | None = Field(None, alias="emotionalIntensity")


class ChunkPayload(BaseModel):
    content: StrictStr
    category: StrictStr
    emotional_intensity: EmotionalIntensity | None = None


class SaveChunksRequest(BaseModel):
    chunks: list[ChunkPayload]


class UpdateChunkRequest(BaseModel):
    content: StrictStr
    category: StrictStr


class UpdateImportanceRequest(BaseModel):
    chunkId: StrictStr
    importance: Importance | None


class PinRequest(BaseModel):
    chunkId: StrictStr
    pinned: StrictBool


class StarRequest(BaseModel):
    chunkId: StrictStr
    starred: StrictBool


def get_service(request: Request) -> ChunkService:
    return request.app.state.service


def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
) -> CurrentUser:
    """Resolve the caller from the Authorization header or fail with 401."""
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()

    authenticator: Authenticator = request.app.state.authenticator
    user = authenticator.get_current_user(token)
    if user is None:
        raise Unauthorized()
    return user


router = APIRouter(prefix="/api")


@router.post("/categorize")
def categorize(
    body: CategorizeRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ChunkService = Depends(get_service),
) -> dict[str, Any]:
    if not body.text.strip():
        raise InvalidInput("Text is required")

    proposals = service.classify(body.text, body.emotional_intensity)
    return {"chunks": [p.model_dump(exclude_none=True) for p in proposals]}


@router.post("/chunks")
def save_chunks(
    body: SaveChunksRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ChunkService = Depends(get_service),
) -> dict[str, Any]:
    proposals = [ChunkProposal(**item.model_dump()) for item in body.chunks]
    chunks = service.confirm(user.id, proposals)
    return {"success": True, "chunks": [chunk.to_api() for chunk in chunks]}


@router.get("/chunks")
def list_chunks(
    user: CurrentUser = Depends(get_current_user),
    service: ChunkService = Depends(get_service),
) -> dict[str, Any]:
    return {"chunks": [chunk.to_api() for chunk in service.list_chunks(user.id)]}


@router.get("/chunks/count")
def count_chunks(
    user: CurrentUser = Depends(get_current_user),
    service: ChunkService = Depends(get_service),
) -> dict[str, Any]:
    return {"count": service.count(user.id)}


@router.get("/chunks/export-csv")
def export_chunks(
    user: CurrentUser = Depends(get_current_user),
    service: ChunkService = Depends(get_service),
) -> Response:
    return Response(
        content=service.export(user.id),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.put("/chunks/importance")
def update_importance(
    body: UpdateImportanceRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ChunkService = Depends(get_service),
) -> dict[str, Any]:
    chunk = service.rank(user.id, body.chunkId, body.importance)
    return {"success": True, "chunk": chunk.to_api()}


@router.patch("/chunks/pin")
def update_pin(
    body: PinRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ChunkService = Depends(get_service),
) -> dict[str, Any]:
    chunk = service.pin(user.id, body.chunkId, body.pinned)
    return {"success": True, "chunk": chunk.to_api()}


@router.patch("/chunks/star")
def update_star(
    body: StarRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ChunkService = Depends(get_service),
) -> dict[str, Any]:
    chunk = service.star(user.id, body.chunkId, body.starred)
    return {"success": True, "chunk": chunk.to_api()}


# Registered after the fixed /chunks/* paths so they are matched first
@router.patch("/chunks/{chunk_id}")
def update_chunk(
    chunk_id: str,
    body: UpdateChunkRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ChunkService = Depends(get_service),
) -> dict[str, Any]:
    chunk = service.edit(user.id, chunk_id, body.content, body.category)
    return {"success": True, "chunk": chunk.to_api()}


@router.delete("/chunks/{chunk_id}")
def delete_chunk(
    chunk_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ChunkService = Depends(get_service),
) -> dict[str, Any]:
    service.delete(user.id, chunk_id)
    return {"success": True}


async def handle_mindsort_error(request: Request, exc: MindsortError) -> JSONResponse:
    status = STATUS_CODES.get(type(exc), 500)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.code)
    return JSONResponse(exc.to_dict(), status_code=status)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    field = ".".join(str(part) for part in errors[0]["loc"][1:]) if errors else ""
    message = f"Invalid or missing field: {field}" if field else "Invalid request body"
    return JSONResponse(InvalidInput(message).to_dict(), status_code=400)


def create_app(
    service: ChunkService | None = None,
    authenticator: Authenticator | None = None,
    config: dict[str, Any] | None = None,
) -> FastAPI:
    """Build the API application around a service and an authenticator."""
    config = config or load_config()

    app = FastAPI(title="Mindsort", version=__version__)
    app.state.service = service or ChunkService(config=config)
    app.state.authenticator = authenticator or TokenAuthenticator(config=config)

    app.add_exception_handler(MindsortError, handle_mindsort_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.include_router(router)

    @app.get("/health")
    def health() -> dict[str, Any]:
        from mindsort.health import check_database

        status, message = check_database(app.state.service.db)
        return {"status": "ok" if status == "✓" else "degraded", "database": message}

    return app


def run_server(config: dict[str, Any] | None = None) -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    config = config or load_config()
    logging.basicConfig(
        format=LOG_FORMAT,
        level=config.get("logging", {}).get("level", "INFO"),
    )

    api_config = config.get("api", {})
    app = create_app(config=config)
    try:
        uvicorn.run(
            app,
            host=api_config.get("host", "127.0.0.1"),
            port=int(api_config.get("port", 8000)),
            log_level="info",
        )
    finally:
        app.state.service.close()
