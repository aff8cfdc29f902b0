from __future__ import annotations

import os
import re
from typing import Dict, List, Sequence

from dotenv import load_dotenv
from groq import Groq

from retrieval_core.errors import ProviderError
from retrieval_core.models import ScoredSegment

# Load .env once when module is imported so that GROQ_API_KEY/GROQ_MODEL_ID
# can be defined in a persisted config file rather than every shell session.
load_dotenv()

GROQ_MODEL_ID: str = os.getenv("GROQ_MODEL_ID", "openai/gpt-oss-120b")

SYSTEM_PROMPT = (
    "You are a helpful financial news assistant. Answer using the provided context. "
    "If unsure, say you don't know. Do NOT include a Sources section; "
    "the client will display sources separately."
)

_SOURCES_SECTION = re.compile(r"\n+Sources:[\s\S]*$", re.IGNORECASE)

# Lazily initialise the client so that missing credentials do not prevent the
# API server from starting. Errors surface at question time instead.
_client: Groq | None = None


def _get_client() -> Groq:
    """Return a singleton Groq client, initialising it on first use."""
    global _client
    if _client is None:
        if not os.getenv("GROQ_API_KEY"):
            raise ProviderError("Missing GROQ_API_KEY")
        _client = Groq()
    return _client


def build_context_block(contexts: Sequence[ScoredSegment]) -> str:
    """Format selected segments as `[#n <url>] <content>` entries."""
    return "\n\n".join(
        f"[#{i} {ctx.segment.source_url}] {ctx.segment.content}" for i, ctx in enumerate(contexts, 1)
    )


def build_messages(question: str, contexts: Sequence[ScoredSegment]) -> List[Dict[str, str]]:
    """System instruction plus one user turn carrying the question and context."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": f"Question: {question}\n\nContext:\n{build_context_block(contexts)}"},
    ]


def strip_sources_section(answer: str) -> str:
    """Drop a trailing 'Sources:' section the model may add despite instructions."""
    return _SOURCES_SECTION.sub("", answer).strip()


def ask_groq(messages: List[Dict[str, str]], temperature: float = 0.2) -> str:
    """Call Groq chat completion API with prepared chat turns."""
    client = _get_client()
    try:
        resp = client.chat.completions.create(
            model=GROQ_MODEL_ID,
            messages=messages,
            temperature=temperature,
            stream=False,
        )
    except Exception as exc:  # noqa: BLE001
        raise ProviderError(f"Groq completion failed: {exc}") from exc
    content = resp.choices[0].message.content
    return content or ""


__all__ = [
    "ask_groq",
    "build_context_block",
    "build_messages",
    "strip_sources_section",
    "GROQ_MODEL_ID",
    "SYSTEM_PROMPT",
]
