"""
Prompt Templates for Capability Execution

One system prompt template covers every capability; the descriptor fills in
the role, specializations and period handling.
"""

import json

from .registry import CapabilityDescriptor

# =============================================================================
# Capability Prompt
# =============================================================================

CAPABILITY_SYSTEM_PROMPT = """You are the {name}, a specialized assistant for Formula 1 analysis.

ROLE: {description}

SPECIALIZATIONS:
{specializations}

GUIDELINES:
1. Focus on F1-specific analysis and insights
2. Use precise F1 terminology
3. Reference specific races, seasons, drivers, and constructors
4. Include relevant statistics and historical context
5. Only state facts supported by the provided context data or well-established records

TIME REFERENCES:
- The current season is {current_period}
- "this year" or "current season" means {current_period}
- "last year" means {previous_period}

Respond in plain text without markdown formatting."""


def get_capability_system_prompt(
    descriptor: CapabilityDescriptor,
    current_period: int,
) -> str:
    specializations = "\n".join(f"- {spec}" for spec in descriptor.specializations)
    return CAPABILITY_SYSTEM_PROMPT.format(
        name=descriptor.name,
        description=descriptor.description,
        specializations=specializations,
        current_period=current_period,
        previous_period=current_period - 1,
    )


def get_clarification_resolution_prompt(
    original_query: str,
    resolution: str,
    resolved_period: int | None,
) -> str:
    """Instruction for answering a question after the user supplied a season."""
    period_line = (
        f"Use the {resolved_period} season."
        if resolved_period is not None
        else f'Interpret "{resolution}" as a season before answering.'
    )
    return (
        f'CONTEXT: The user previously asked "{original_query}" and was asked which '
        f'season they meant. They responded with "{resolution}". {period_line}\n\n'
        f'Answer the original question: "{original_query}"'
    )


def get_period_request_prompt(query: str, current_period: int) -> str:
    """Instruction for asking the user which season they mean."""
    return (
        f'INSTRUCTION: The user asked "{query}" but did not specify a season. '
        f"Ask them which year they are referring to. The current season is "
        f"{current_period}. Be brief and direct."
    )


def format_knowledge_context(facts: dict[str, dict]) -> str:
    """Render fetched facts as a compact context block."""
    lines = ["Context data:"]
    for key, payload in facts.items():
        body = json.dumps(payload, default=str, ensure_ascii=False)
        if len(body) > 4000:
            body = body[:4000] + "..."
        lines.append(f"[{key}] {body}")
    return "\n".join(lines)


# =============================================================================
# Synthesis Prompt
# =============================================================================

SYNTHESIS_SYSTEM_PROMPT = """You combine analyses from several Formula 1 specialists into one answer.

Guidelines:
- Merge overlapping points and keep the most specific figures
- When specialists disagree, say so briefly and prefer the better supported view
- Keep the answer focused on the user's question
- Respond in plain text without markdown formatting"""


def get_synthesis_prompt(query: str, results: list[dict]) -> list[dict]:
    """Build the multi-capability synthesis prompt."""
    sections = "\n\n".join(
        f"--- {result['name']} (confidence {result['confidence']:.2f}) ---\n"
        f"{result['response']}"
        for result in results
    )
    return [
        {"role": "system", "content": SYNTHESIS_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f"Question: {query}\n\nSpecialist analyses:\n\n{sections}",
        },
    ]
