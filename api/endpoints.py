# api/endpoints.py
"""
HTTP surface of the patent RAG service.

No authentication. Internal failures are logged with their traceback and
answered with a generic 500; error details never reach the client.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from api.schemas import (LivenessResponse, QueryRequest, QueryResponse,
                         SearchRequest, SearchResultItem, StatusResponse)
from config import settings
from core.exceptions import RAGError
from core.interfaces import IVectorStore
from services.answer_synthesizer import AnswerSynthesizer
from services.factory import (get_answer_synthesizer, get_retriever,
                              get_vector_store)
from services.retriever import Retriever

logger = logging.getLogger(settings.LOGGER_NAME)

router = APIRouter()

INTERNAL_ERROR_DETAIL = "Internal server error"


# ---------- Liveness ----------
@router.get("/", response_model=LivenessResponse)
async def root() -> LivenessResponse:
    return LivenessResponse(status="ok", service=settings.APP_TITLE)


# ---------- Search ----------
@router.post("/search", response_model=List[SearchResultItem])
async def search_endpoint(
    search_request: SearchRequest,
    retriever: Retriever = Depends(get_retriever),
) -> List[SearchResultItem]:
    try:
        results = await retriever.search(search_request.query, search_request.top_k)
    except RAGError:
        logger.exception("[API] /search failed")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_DETAIL)

    return [
        SearchResultItem(
            patent_id=r.patent_id,
            chunk_id=r.chunk_id,
            snippet=r.snippet,
            distance=r.distance,
        )
        for r in results
    ]


# ---------- Query (retrieval + synthesis) ----------
@router.post("/query", response_model=QueryResponse)
async def query_endpoint(
    query_request: QueryRequest,
    synthesizer: AnswerSynthesizer = Depends(get_answer_synthesizer),
) -> QueryResponse:
    try:
        result = await synthesizer.answer(query_request.question, query_request.top_k)
    except RAGError:
        logger.exception("[API] /query failed")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_DETAIL)

    return QueryResponse(answer=result.answer)


# ---------- Corpus status ----------
@router.get("/status", response_model=StatusResponse)
async def status_endpoint(
    vector_store: IVectorStore = Depends(get_vector_store),
) -> StatusResponse:
    try:
        total = await vector_store.count()
        embedded = await vector_store.count_embedded()
    except RAGError:
        logger.exception("[API] /status failed")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_DETAIL)

    return StatusResponse(chunks_total=total, chunks_embedded=embedded)
