"""Prompt assembly for the completion gateway.

Builds the system prompt, the ordered message list and the temperature for
the two gateway operations: transcript correction and module analysis.
User-supplied text is interpolated as-is; JSON encoding by the transport is
the only escaping applied.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .modules import AnalysisModule

CORRECTION_TEMPERATURE = 0.2
ANALYSIS_TEMPERATURE = 0.5

NOT_PROVIDED = "(not provided)"
CORRECTION_LOG_HEADING = "### Correction Log"

CORRECTION_SYSTEM_PROMPT = f"""You are a meticulous transcript corrector. Your job is to turn a raw, fragmented and error-ridden recording transcript into a clear, accurate and readable complete record.

Core principles
1. Completeness first: never delete meaningful content.
2. Accuracy: fix recognition errors (homophones, typos); correct directly when confidence is above 90%.
3. Readability: improve sentence boundaries and structure, remove stutters.
4. Keep it spoken: do not over-formalise; keep natural speech particles and rhythm.
5. Transparency: when unsure keep the original wording and mark it [uncertain wording] or [uncertain meaning].

Five priorities
- Priority 1: misrecognition correction. Fix homophones and wrong words from context, using the domain terminology provided.
- Priority 2: speaker-turn consolidation. Merge adjacent timestamps of the same speaker less than 5 seconds apart and make sure every turn is attributed correctly.
- Priority 3: sentence-boundary cleanup. Re-split sentences by meaning.
- Priority 4: disfluency removal. Remove meaningless repetitions and stutters while preserving natural speech particles.
- Priority 5: timestamp simplification. Mark one start time per speaking turn.

Output format
1. Main output: the corrected transcript in Markdown.
   Format: **Speaker HH:MM:SS** (blank line) content...
2. Appendix: a section headed exactly "{CORRECTION_LOG_HEADING}" listing recognition fixes, terminology unification, speaker corrections, sentence-boundary changes and uncertain items.
Answer in the language of the transcript."""

ANALYSIS_SYSTEM_PROMPT = (
    "You are a professional meeting insight analyst. Analyse the transcript in depth according to "
    "the module task. Always answer in the same language as the transcript and format the output "
    "as Markdown. Ground every claim in the transcript and quote the relevant lines."
)


@dataclass
class GatewayRequest:
    system_prompt: str
    messages: List[Dict[str, str]] = field(default_factory=list)
    temperature: float = CORRECTION_TEMPERATURE


def _field(metadata: Optional[Dict[str, Any]], key: str) -> str:
    val = (metadata or {}).get(key)
    return val if val else NOT_PROVIDED


def correction_user_message(transcript: str, metadata: Optional[Dict[str, Any]]) -> str:
    return (
        "Run the transcript correction task now.\n\n"
        "[Meeting context]\n"
        f"Subject: {_field(metadata, 'subject')}\n"
        f"Keywords: {_field(metadata, 'keywords')}\n"
        f"Speakers: {_field(metadata, 'speakers')}\n"
        f"Terminology: {_field(metadata, 'terminology')}\n"
        f"Length: {_field(metadata, 'length')}\n\n"
        "[Raw transcript]\n"
        f"{transcript}"
    )


def seed_message(transcript: str, module: AnalysisModule) -> str:
    """The transcript-carrying user turn that opens every analysis thread."""
    return (
        "Here is the corrected meeting transcript:\n"
        "---\n"
        f"{transcript}\n"
        "---\n\n"
        "[Module task]\n"
        f"{module.task}\n\n"
        "Carry out the module task based on the transcript above."
    )


def build_correction_request(transcript: str, metadata: Optional[Dict[str, Any]],
                             temperature: float = CORRECTION_TEMPERATURE) -> GatewayRequest:
    return GatewayRequest(
        system_prompt=CORRECTION_SYSTEM_PROMPT,
        messages=[{"role": "user", "content": correction_user_message(transcript, metadata)}],
        temperature=temperature,
    )


def _gateway_role(role: str) -> str:
    return "user" if role == "user" else "assistant"


def build_analysis_request(transcript: str, module, history=None,
                           temperature: float = ANALYSIS_TEMPERATURE) -> GatewayRequest:
    """Build the analysis request for a fresh run or a follow-up chat turn.

    ``history`` is the stored message list of one module version (objects with
    ``role`` and ``text``). Stored threads start with the model's first
    analysis; the seeding user turn that produced it was never persisted, so
    it is rebuilt here and placed in front of the replayed history.
    """
    module = AnalysisModule.parse(module)
    history = list(history or [])
    messages = []
    if not history or history[0].role == "model":
        messages.append({"role": "user", "content": seed_message(transcript, module)})
    for msg in history:
        messages.append({"role": _gateway_role(msg.role), "content": msg.text})
    return GatewayRequest(
        system_prompt=ANALYSIS_SYSTEM_PROMPT,
        messages=messages,
        temperature=temperature,
    )


def split_correction_output(text: str) -> Tuple[str, Optional[str]]:
    """Split a correction result into (corrected transcript, correction log)."""
    idx = text.find(CORRECTION_LOG_HEADING)
    if idx <= 0:
        return text, None
    body = text[:idx].rstrip()
    log = text[idx:].strip()
    if not body:
        return text, None
    return body, log
