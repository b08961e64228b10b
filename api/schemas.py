# api/schemas.py
from pydantic import BaseModel

from config import settings

class SearchRequest(BaseModel):
    query: str
    top_k: int = settings.DEFAULT_SEARCH_RESULTS  # <= 0 is clamped to 1 by the retriever

class QueryRequest(BaseModel):
    question: str
    top_k: int = settings.DEFAULT_SEARCH_RESULTS

class SearchResultItem(BaseModel):
    patent_id: str
    chunk_id: str
    snippet: str
    distance: float

class QueryResponse(BaseModel):
    answer: str

class LivenessResponse(BaseModel):
    status: str
    service: str

class StatusResponse(BaseModel):
    chunks_total: int = 0
    chunks_embedded: int = 0
