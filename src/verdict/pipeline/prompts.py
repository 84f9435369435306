"""Prompt builders for every pipeline phase.

Pure functions returning strings; the orchestrator decides which gateway
receives each prompt.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from verdict.pipeline.machine import Critique, ReasoningAudit
    from verdict.providers.base import ProviderId, ProviderResponse

CONCLUSION_PREVIEW_CHARS = 300
RESPONSE_PREVIEW_CHARS = 600
ELEVATED_RQS = 70

INITIAL_SYSTEM_PROMPT = (
    "You are one of several AI systems answering the same question "
    "independently. Other systems will review your reasoning critically.\n\n"
    "Use exactly this format:\n\n"
    "**Answer:**\n"
    "[Your direct, precise answer to the question]\n\n"
    "**Reasoning:**\n"
    "[Numbered, step-by-step reasoning. State your premises explicitly.]\n"
    "[If the answer cannot be derived from the information given, say so "
    "and explain why.]\n\n"
    "**Confidence:** [High / Medium / Low]\n\n"
    "**Uncertainties:**\n"
    "[Ambiguities, missing information or edge cases that affect the answer]\n\n"
    "RULES:\n"
    "- Do not guess when you are uncertain\n"
    "- Do not give the answer that merely seems most popular; reason on "
    "your own\n"
    '- If the question is ambiguous or lacks context, answer "Cannot be '
    'determined" and explain why\n'
    "- Aim to be correct, not to agree with anyone"
)

JUDGE_SYSTEM_PROMPT = (
    "You are a rigorous logic judge. You select answers based on reasoning "
    "quality, never popularity."
)


@dataclass(frozen=True, slots=True)
class ReviewTarget:
    """One answer put in front of a reviewer."""

    provider: ProviderId
    content: str
    rqs: int


def build_critique_prompt(question: str, others: Sequence[ReviewTarget]) -> str:
    """Ask a reviewer to judge the soundness of every other answer.

    The reply must be a bare JSON object with one review per answer.
    """
    blocks = "\n\n".join(
        f"--- Response {i} ({t.provider.upper()}, "
        f"Reasoning Score: {t.rqs}/100) ---\n{t.content}"
        for i, t in enumerate(others, start=1)
    )
    return (
        "You are a critical logic reviewer. Judge the QUALITY OF REASONING "
        "in each answer below, not whether you happen to agree with it.\n\n"
        f'Original question: "{question}"\n\n'
        f"Responses from {len(others)} other AI systems:\n\n"
        f"{blocks}\n\n"
        "For each response, evaluate:\n"
        "1. Are the premises correct and complete?\n"
        "2. Does the reasoning actually lead to the conclusion?\n"
        "3. Was ambiguity or uncertainty handled correctly?\n"
        "4. Is the stated confidence justified by the reasoning?\n"
        "5. Are there logical flaws, false assumptions or missing "
        "considerations?\n\n"
        'An answer of "Cannot be determined" or "insufficient information" '
        "may be the logically correct one; judge it on that basis.\n\n"
        "Vote agree only if the reasoning is sound, not because the answer "
        "matches yours. Vote disagree when the reasoning is flawed, even if "
        "the answer is popular.\n\n"
        "Reply with JSON only, no markdown fences:\n"
        "{\n"
        '  "reviews": [\n'
        "    {\n"
        '      "provider": "<provider_name>",\n'
        '      "vote": "agree|partial|disagree",\n'
        '      "reasoningQuality": "strong|adequate|weak",\n'
        '      "logicalFlaws": ["flaw1"],\n'
        '      "factualErrors": ["error1"],\n'
        '      "handledAmbiguityCorrectly": true,\n'
        '      "explanation": "Your evaluation"\n'
        "    }\n"
        "  ]\n"
        "}"
    )


def build_refinement_prompt(
    question: str,
    own_answer: str,
    critiques: Sequence[Critique],
    own_rqs: int,
) -> str:
    """Ask a provider to revise or defend its answer against peer reviews."""
    reviews = "\n".join(
        f"- {c.reviewer.upper()} voted {c.vote.upper()}: {c.explanation}"
        for c in critiques
    )
    return (
        "You are refining your answer after peer review of its logic.\n\n"
        f'Original question: "{question}"\n\n'
        f"Your original answer (Reasoning Quality Score: {own_rqs}/100):\n"
        f"{own_answer}\n\n"
        f"Peer reviews of your reasoning:\n{reviews}\n\n"
        "Instructions:\n"
        "1. Read each review carefully\n"
        "2. If a review identifies a real flaw in your reasoning, REVISE\n"
        "3. If a review disagrees without valid logical grounds, DEFEND "
        "with stronger reasoning\n"
        '4. If you answered "Cannot be determined", revise only if a '
        "reviewer shows why the question is in fact determinable\n"
        "5. Being in the minority is not a reason to revise\n\n"
        "Format:\n"
        "**Decision:** [REVISED / DEFENDED]\n"
        "**Why:** [Your reasoning for revising or defending]\n"
        "**Updated Answer:**\n"
        "[Your refined or defended answer in the full structured format]"
    )


def _audit_block(audit: ReasoningAudit, content: str) -> str:
    flags = ", ".join(audit.flags) or "none"
    return (
        f"=== {audit.provider.upper()} | Reasoning Quality Score: "
        f"{audit.rqs}/100 ===\n"
        f"Flags: {flags}\n"
        f"Acknowledged ambiguity: {str(audit.uncertainty_flag).lower()}\n"
        f"Detected paradox: {str(audit.paradox_flag).lower()}\n"
        f"Conclusion: {audit.conclusion[:CONCLUSION_PREVIEW_CHARS]}\n"
        "---\n"
        f"Full response:\n{content[:RESPONSE_PREVIEW_CHARS] or 'N/A'}\n"
    )


def build_adjudication_prompt(
    question: str,
    audits: Sequence[ReasoningAudit],
    responses: Sequence[ProviderResponse],
) -> str:
    """Ask the judge to pick the most logically sound answer.

    Providers with RQS above 70, or that acknowledged ambiguity, are
    named as elevated candidates.
    """
    content_by_provider = {r.provider: r.content for r in responses}
    blocks = "\n\n".join(
        _audit_block(a, content_by_provider.get(a.provider, "")) for a in audits
    )
    elevated = ", ".join(
        a.provider for a in audits if a.uncertainty_flag or a.rqs > ELEVATED_RQS
    )
    return (
        "You are the final reasoning judge. Select the MOST LOGICALLY "
        "CORRECT answer, not the majority answer.\n\n"
        f'ORIGINAL QUESTION: "{question}"\n\n'
        f"RESPONSES WITH REASONING QUALITY SCORES:\n{blocks}\n\n"
        "ELEVATED FOR CONSIDERATION (strong reasoning or correctly flagged "
        f"ambiguity):\n{elevated or 'none'}\n\n"
        "RULES:\n"
        "1. Do not pick an answer because most systems gave it\n"
        "2. Pick the answer with the strongest chain of reasoning\n"
        '3. "Cannot be determined" is a valid answer when the question '
        "cannot be answered from the information given\n"
        "4. Prefer a minority answer with RQS above 70 over a majority "
        "answer with RQS below 50\n"
        "5. If the question is ambiguous or lacks context, say so\n\n"
        "REPLY IN EXACTLY THIS FORMAT:\n"
        "WINNER: [openai|gemini|perplexity|openrouter]\n"
        "IS_AMBIGUOUS: [YES|NO]\n"
        "FINAL_ANSWER: [The complete best answer, copied or synthesized from "
        "the winner]\n"
        "CONFIDENCE: [0-100]\n"
        "REASONING: [2-3 sentences on why this answer has the best "
        "reasoning]\n"
        "DISSENT_NOTE: [What the other answers got wrong]"
    )
