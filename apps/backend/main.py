from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, List, NoReturn

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import AnyHttpUrl, BaseModel, Field

from agents.research_agent import ResearchAgent, ResearchAnswer
from retrieval_core.errors import ProviderError, RetrievalError, RetrievalInputError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

_log = logging.getLogger(__name__)

MAX_URLS = 5

app = FastAPI(title="News Research RAG API")

# CORS: allow public frontend and local dev without credentials
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ProcessRequest(BaseModel):
    urls: List[AnyHttpUrl] = Field(..., min_length=1, max_length=MAX_URLS)
    replace: bool = False


class ProcessResponse(BaseModel):
    count: Annotated[int, Field(ge=0)]


class AskRequest(BaseModel):
    question: str = Field(..., min_length=3)
    urls: List[AnyHttpUrl] = Field(default_factory=list, max_length=MAX_URLS)


@lru_cache(maxsize=1)
def get_agent() -> ResearchAgent:
    return ResearchAgent.from_settings()


def _raise_http(exc: Exception, action: str) -> NoReturn:
    if isinstance(exc, RetrievalInputError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(exc, ProviderError):
        _log.exception("%s failed in provider", action)
        raise HTTPException(status_code=502, detail=f"{action} failed: {exc}") from exc
    _log.exception("%s failed", action)
    raise HTTPException(status_code=500, detail=f"{action} failed: {exc}") from exc


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/process", response_model=ProcessResponse)
def process(req: ProcessRequest, agent: ResearchAgent = Depends(get_agent)) -> ProcessResponse:
    try:
        count = agent.ingest([str(u) for u in req.urls], replace=req.replace)
    except RetrievalError as exc:
        _raise_http(exc, "Processing")
    return ProcessResponse(count=count)


@app.post("/ask", response_model=ResearchAnswer)
def ask(req: AskRequest, agent: ResearchAgent = Depends(get_agent)) -> ResearchAnswer:
    try:
        return agent.ask(req.question, [str(u) for u in req.urls])
    except RetrievalError as exc:
        _raise_http(exc, "Answer")


__all__ = ["app", "get_agent", "ProcessRequest", "AskRequest"]
