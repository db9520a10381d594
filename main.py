"""
AutoFounder FastAPI Backend – questionnaire to pitch deck
=========================================================
POST answers -> build (best-effort AI enhancement, theme classification) -> publish
(store + broadcast + viewer URL) -> resolve a viewer URL back into a deck -> export .pptx.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException  # type: ignore[reportMissingImports]
from fastapi.middleware.cors import CORSMiddleware  # type: ignore[reportMissingImports]
from fastapi.responses import FileResponse  # type: ignore[reportMissingImports]
from pydantic import BaseModel, Field, ValidationInfo, field_validator  # type: ignore[reportMissingImports]
import uvicorn  # type: ignore[reportMissingImports]

from autofounder.broadcast import BroadcastHub
from autofounder.builder import DeckAnswers, DeckBuilder
from autofounder.codec import investors_url, parse_location
from autofounder.config import Settings
from autofounder.errors import DeckBuildError, DeckNotFoundError, ExportError
from autofounder.jobs import JobStatus, JobStore
from autofounder.ppt_builder import export_deck
from autofounder.stores import KeyValueStore, build_store
from autofounder.transport import DeckPublisher, DeckResolver, ResolvePolicy

logger = logging.getLogger(__name__)

PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

_CORS_ORIGINS = [
    "http://localhost:5173", "http://127.0.0.1:5173",
    "http://localhost:3000", "http://127.0.0.1:3000",
    "http://localhost:8000", "http://127.0.0.1:8000",
]


class GenerateRequest(DeckAnswers):
    startupName: str = Field(max_length=40)
    oneLiner: str = Field(max_length=120)
    textTone: Optional[Literal["light", "dark"]] = None
    slideFormat: Optional[Literal["w16x9", "w4x3"]] = None
    present: bool = False

    @field_validator("startupName", "oneLiner")
    @classmethod
    def required_not_blank(cls, v: str, info: ValidationInfo) -> str:
        cleaned = (v or "").strip()
        if not cleaned:
            raise ValueError(f"{info.field_name} cannot be empty")
        return cleaned


class GenerateResponse(BaseModel):
    jobId: str


class StatusResponse(BaseModel):
    status: str
    progress_message: str
    deckId: Optional[str] = None
    viewerUrl: Optional[str] = None
    persisted: Optional[bool] = None


class LocationRequest(BaseModel):
    location: str
    slideFormat: Optional[Literal["w16x9", "w4x3"]] = None


class DeckResponse(BaseModel):
    deck: Dict[str, Any]
    present: bool = False


class AppState:
    def __init__(
        self,
        settings: Settings,
        builder: DeckBuilder,
        store: KeyValueStore,
        hub: BroadcastHub,
    ):
        self.settings = settings
        self.builder = builder
        self.store = store
        self.hub = hub
        self.jobs = JobStore()
        self.publisher = DeckPublisher(
            store, hub, settings.origin, close_after=settings.broadcast_close_after
        )
        self.resolver = DeckResolver(ResolvePolicy.default(store, hub, settings.resolve_timeout))


async def run_generation_pipeline(state: AppState, job_id: str, request: GenerateRequest) -> None:
    jobs = state.jobs
    try:
        jobs.update(job_id, JobStatus.BUILDING, message="Building deck...")
        deck = await state.builder.build(
            request, text_tone=request.textTone, slide_format=request.slideFormat
        )

        jobs.update(job_id, JobStatus.PUBLISHING, message="Publishing deck...", deck_id=deck.id)
        result = await state.publisher.publish(deck, present=request.present)

        jobs.update(
            job_id, JobStatus.COMPLETED,
            message="Done. Deck ready to view.",
            viewer_url=result.target, persisted=result.persisted,
        )
    except DeckBuildError as e:
        jobs.update(job_id, JobStatus.FAILED, message=str(e), error=str(e))
    except Exception as e:
        logger.exception("Deck generation %s failed", job_id)
        jobs.update(job_id, JobStatus.FAILED, message=f"Deck generation failed: {e}", error=str(e))


def create_app(
    settings: Optional[Settings] = None,
    builder: Optional[DeckBuilder] = None,
    store: Optional[KeyValueStore] = None,
    hub: Optional[BroadcastHub] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    state = AppState(
        settings=settings,
        builder=builder or DeckBuilder.from_settings(settings),
        store=store if store is not None else build_store(settings),
        hub=hub or BroadcastHub(),
    )

    app = FastAPI(
        title="AutoFounder API",
        version="1.0.0",
        description="Founder questionnaire → themed pitch deck → shareable viewer link → .pptx.",
    )
    app.state.autofounder = state
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/api/generate", response_model=GenerateResponse)
    async def generate_deck(request: GenerateRequest, background_tasks: BackgroundTasks):
        job = state.jobs.create()
        background_tasks.add_task(run_generation_pipeline, state, job.id, request)
        return GenerateResponse(jobId=job.id)

    @app.get("/api/generate/{job_id}/status", response_model=StatusResponse)
    async def get_job_status(job_id: str):
        job = state.jobs.get(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        return StatusResponse(
            status=job.status.value,
            progress_message=job.message or job.status.value,
            deckId=job.deck_id,
            viewerUrl=job.viewer_url,
            persisted=job.persisted,
        )

    @app.post("/api/decks/resolve", response_model=DeckResponse)
    async def resolve_deck(request: LocationRequest):
        try:
            deck = await state.resolver.resolve(request.location)
        except DeckNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return DeckResponse(deck=deck.to_payload(), present=parse_location(request.location).present)

    @app.get("/api/decks/{deck_id}", response_model=DeckResponse)
    async def get_deck(deck_id: str):
        try:
            deck = await state.resolver.resolve_key(deck_id)
        except DeckNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return DeckResponse(deck=deck.to_payload())

    @app.post("/api/decks/export")
    async def export_pptx(request: LocationRequest):
        try:
            deck = await state.resolver.resolve(request.location)
        except DeckNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        try:
            path = await export_deck(
                deck,
                Path(settings.output_dir) / deck.id,
                slide_format=request.slideFormat,
                assets_dir=settings.assets_dir,
                watermark=settings.watermark,
            )
        except ExportError as e:
            raise HTTPException(status_code=502, detail=f"{e}. Please try again.")
        return FileResponse(path=str(path), filename=path.name, media_type=PPTX_MEDIA_TYPE)

    @app.post("/api/decks/investors-link")
    async def investors_link(request: LocationRequest):
        try:
            deck = await state.resolver.resolve(request.location)
        except DeckNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return {"url": investors_url(settings.origin, deck.to_payload())}

    return app


app = create_app()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
