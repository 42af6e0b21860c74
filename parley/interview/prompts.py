"""Interviewer prompts."""

from parley.config.models.interview import InterviewConfig
from parley.interview.models import InterviewSession, Phase, Role
from parley.interview.policy import TopicCatalog

SYSTEM_TEMPLATE = """You are an experienced digital transformation consultant conducting a \
stakeholder interview.

INTERVIEW CONTEXT:
Stakeholder: {name}
Position/Title: {title}
Role Type: {role}
Facilitator: {facilitator}

GUIDELINES:
- Be professional, friendly, and conversational
- Ask ONE clear question at a time
- Listen actively and follow up on interesting points
- Reference the stakeholder's specific role and daily responsibilities

CONVERSATION STATE:
Current Phase: {phase}
Questions Asked: {questions}/{min_questions}
Topics Covered: {covered}"""

PHASE_INSTRUCTIONS = {
    Phase.INTRODUCTION: (
        "Build rapport. Acknowledge their answer and ask about their day-to-day "
        "responsibilities, steering toward: {next_topic}."
    ),
    Phase.EXPLORING: (
        "Ask one focused follow-up question. Prioritize the uncovered area: {next_topic}."
    ),
    Phase.COMPLETING: (
        "The interview is nearing its end. If anything important is still missing "
        "({next_topic}), ask about it; otherwise ask what single change would help "
        "their area most."
    ),
    Phase.COMPLETED: (
        "The interview is complete. Do not ask another question. Thank the stakeholder "
        "warmly for their time and insights, and let them know their input will be "
        "analyzed alongside other stakeholders for comprehensive recommendations."
    ),
}

_SPEAKERS = {Role.AGENT: "INTERVIEWER", Role.USER: "STAKEHOLDER"}


def build_system_prompt(
    session: InterviewSession,
    catalog: TopicCatalog,
    config: InterviewConfig,
    next_phase: Phase,
    covered: list[str],
) -> str:
    participant = session.participant
    next_topic = catalog.next_uncovered(covered)
    system = SYSTEM_TEMPLATE.format(
        name=participant.name,
        title=participant.title or "not provided",
        role=participant.role or "not provided",
        facilitator=participant.facilitator_name or config.default_facilitator,
        phase=next_phase.value,
        questions=session.questions_asked,
        min_questions=config.min_questions,
        covered=", ".join(catalog.label(t) for t in covered) or "none yet",
    )
    instruction = PHASE_INSTRUCTIONS[next_phase].format(
        next_topic=next_topic.label if next_topic else "any remaining gaps",
    )
    return f"{system}\n\nNEXT STEP:\n{instruction}"


def build_turn_prompt(session: InterviewSession, user_text: str) -> str:
    """Transcript so far plus the new stakeholder message."""
    lines = [f"{_SPEAKERS[e.role]}: {e.text}" for e in session.transcript]
    lines.append(f"STAKEHOLDER: {user_text}")
    history = "\n\n".join(lines)
    return f"{history}\n\nRespond as the INTERVIEWER with your next message only."


def build_opening(session: InterviewSession, config: InterviewConfig) -> str:
    participant = session.participant
    return config.opening_template.format(
        name=participant.name,
        title=participant.title or "a member of the team",
        role=participant.role,
        facilitator=participant.facilitator_name or config.default_facilitator,
    )
