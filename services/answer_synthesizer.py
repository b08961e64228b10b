# services/answer_synthesizer.py
"""Grounded, citation-numbered answers over retrieved patent chunks"""
import logging
from typing import List, Sequence

from config import settings
from core.domain import Citation, QueryAnswer, SearchResult, chunk_sequence_label
from core.interfaces import IChatService
from services.retriever import Retriever

logger = logging.getLogger(settings.LOGGER_NAME)

SYSTEM_PROMPT = "You’re a precise, citation-driven patent assistant."

PROMPT_PREAMBLE = (
    "You are a patent expert. Answer using ONLY the context. "
    "Cite each point like [1], [2]."
)


def build_citations(results: Sequence[SearchResult]) -> List[Citation]:
    """citations[i] is marker [i + 1]; order is the retrieval rank, never re-sorted."""
    return [
        Citation(
            index=position + 1,
            patent_id=r.patent_id,
            chunk_id=r.chunk_id,
            sequence_label=chunk_sequence_label(r.chunk_id),
        )
        for position, r in enumerate(results)
    ]


def build_prompt(question: str, results: Sequence[SearchResult]) -> str:
    """
    Preamble, question, then one context block per result in rank order:

        [1] (US123-0): <snippet>
    """
    prompt = f"{PROMPT_PREAMBLE}\n\nQuestion: {question}\n\nContext:\n"
    for citation, result in zip(build_citations(results), results):
        prompt += f"[{citation.index}] ({citation.label}): {result.snippet}\n\n"
    return prompt


class AnswerSynthesizer:
    def __init__(self, retriever: Retriever, chat_service: IChatService):
        self.retriever = retriever
        self.chat_service = chat_service

    async def answer(self, question: str, top_k: int = settings.DEFAULT_SEARCH_RESULTS) -> QueryAnswer:
        """Retrieve, prompt, complete. Never cached; errors propagate unchanged."""
        results = await self.retriever.search(question, top_k)
        if not results:
            logger.warning("[ANSWER] No embedded chunks matched; asking the model with empty context")

        prompt = build_prompt(question, results)
        text = await self.chat_service.complete(SYSTEM_PROMPT, prompt)

        logger.info(f"[ANSWER] Synthesized answer from {len(results)} sources")
        return QueryAnswer(answer=text, citations=build_citations(results))
