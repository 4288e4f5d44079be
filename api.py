"""
FastAPI server exposing the movie ingestion API.
Endpoints:
- GET /health: basic health check
- POST /parse: detect the dialect of a paste and return the parsed fields
- POST /match: parse, match against the master-data registry and check for a duplicate code
- POST /save: replay the reviewer's decisions, backfill master data and persist the movie

Requests are stateless: /save re-runs the match for the same paste and applies the
decisions collected from the /match response.
"""

import time
from dataclasses import asdict
from typing import Any, Dict, List, Optional

import requests
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from movie_ingest.config import get_settings
from movie_ingest.engine import IngestEngine, camelize
from movie_ingest.errors import IngestError, InvalidTransitionError, ParseError, RegistryError

app = FastAPI(title="Movie Ingest API", version="1.0.0")

ENGINE: Optional[IngestEngine] = None
STARTUP_TIME_S: float = 0.0


class _CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PasteIn(_CamelModel):
	raw: str = Field(..., description="Pasted movie metadata (JSON export or text)")


class DecisionIn(_CamelModel):
	key: str  # actresses, actors, directors, studios, series, labels
	index: int = 0
	action: str
	candidate_id: Optional[str] = None
	english_name: Optional[str] = None


class SaveIn(PasteIn):
	decisions: List[DecisionIn] = Field(default_factory=list)
	merge: bool = False  # merge into the existing movie with the same code
	selected_fields: Optional[List[str]] = None
	movie_type: Optional[str] = None
	translate_title: bool = False


class ParseOut(BaseModel):
	source: str
	parsed: Dict[str, Any]


class SaveOut(BaseModel):
	movie: Dict[str, Any]
	merged: bool
	pending: List[str]
	elapsed_ms: float


def get_engine() -> IngestEngine:
	"""The process-wide engine, created from settings on first use."""
	global ENGINE
	if ENGINE is None:
		ENGINE = IngestEngine.from_settings(get_settings())
	return ENGINE


@app.on_event("startup")
async def startup_event():
	global STARTUP_TIME_S
	start = time.time()
	logger.info("[API] Startup: initializing ingest engine...")
	get_engine()
	STARTUP_TIME_S = time.time() - start
	logger.info(f"[API] Startup complete in {STARTUP_TIME_S:.2f}s")


@app.exception_handler(IngestError)
async def ingest_error_handler(request: Request, exc: IngestError):
	if isinstance(exc, RegistryError):
		status = 502
	elif isinstance(exc, (ParseError, InvalidTransitionError)):
		status = 422
	else:
		status = 400
	logger.warning(f"[API] {request.url.path} -> {status}: {exc}")
	return JSONResponse(status_code=status, content={"error": exc.user_message})


@app.exception_handler(requests.RequestException)
async def upstream_error_handler(request: Request, exc: requests.RequestException):
	logger.warning(f"[API] {request.url.path} -> 502: {exc}")
	return JSONResponse(status_code=502, content={"error": RegistryError.default_message})


@app.get("/health")
async def health():
	return {
		"status": "ok",
		"engine_ready": ENGINE is not None,
		"startup_seconds": round(STARTUP_TIME_S, 2),
	}


@app.post("/parse", response_model=ParseOut)
def parse_paste(body: PasteIn, engine: IngestEngine = Depends(get_engine)):
	"""Parse only; no registry access."""
	parsed = engine.parse(body.raw)
	logger.debug(f"[API] /parse {parsed.code} ({parsed.source.value})")
	return ParseOut(source=parsed.source.value, parsed=camelize(asdict(parsed)))


@app.post("/match")
def match_paste(body: PasteIn, engine: IngestEngine = Depends(get_engine)):
	start = time.time()
	session = engine.prepare(body.raw)
	payload = session.to_dict()
	payload["elapsedMs"] = round((time.time() - start) * 1000, 2)
	logger.info(f"[API] /match {session.parsed.code} served in {payload['elapsedMs']} ms")
	return payload


@app.post("/save", response_model=SaveOut)
def save_paste(body: SaveIn, engine: IngestEngine = Depends(get_engine)):
	start = time.time()
	session = engine.prepare(body.raw)
	engine.apply_decisions(session, [d.model_dump() for d in body.decisions])
	if body.translate_title:
		engine.translate_title(session)
	pending = [f"{key}-{index}" for key, index, _ in session.matched.pending()]
	if pending:
		logger.info(f"[API] /save {session.parsed.code} with undecided entries: {pending}")

	movie = engine.save(session, merge=body.merge, selected_fields=body.selected_fields, movie_type=body.movie_type)
	elapsed_ms = round((time.time() - start) * 1000, 2)
	logger.info(f"[API] /save {movie.code} ({'merged' if body.merge else 'created'}) in {elapsed_ms} ms")
	return SaveOut(movie=movie.to_wire(), merged=body.merge, pending=pending, elapsed_ms=elapsed_ms)
