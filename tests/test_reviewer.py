"""
Tests for the decision summary.
Run with: pytest tests/test_reviewer.py
"""

from unittest.mock import patch

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from boardroom.reviewer import build_summary_prompt, parse_summary, summarize_decision
from boardroom.states import ConversationTurn, Persona

ANALYSIS = """RECOMMENDATION: Accept the offer but negotiate a remote trial first.

CONFIDENCE_SCORE: 82

KEY_INSIGHTS:
• [PRO] Higher salary covers the cost of living
• [CON] Further from family
• [RISK] Startup funding is uncertain
• [OPPORTUNITY] Larger professional network

ACTION_PLAN:
1. Ask for a three month remote trial
2. Compare rent in two neighbourhoods

RISKS:
- Funding round falls through
- Partner cannot relocate

NEXT_STEPS:
• Email the recruiter
• Book a visit"""


def _turns():
    return [
        ConversationTurn.from_user("I need help with this decision: job offer in Berlin"),
        ConversationTurn.create("• What does your gut say?", Persona.MODERATOR),
    ]


def test_parse_summary_sections():
    summary = parse_summary(ANALYSIS)

    assert summary.recommendation == "Accept the offer but negotiate a remote trial first."
    assert summary.confidence == 82
    assert [i.type for i in summary.key_insights] == ["pro", "con", "risk", "opportunity"]
    assert summary.key_insights[0].content == "Higher salary covers the cost of living"
    assert summary.action_plan == ["Ask for a three month remote trial", "Compare rent in two neighbourhoods"]
    assert summary.risks == ["Funding round falls through", "Partner cannot relocate"]
    assert summary.next_steps == ["Email the recruiter", "Book a visit"]


def test_parse_summary_defaults():
    summary = parse_summary("")
    assert summary.recommendation == ""
    assert summary.confidence == 75
    assert summary.key_insights == []
    assert summary.action_plan == []


def test_parse_summary_clamps_confidence():
    assert parse_summary("CONFIDENCE_SCORE: 140").confidence == 100


def test_summary_prompt_lists_conversation():
    prompt = build_summary_prompt("job offer in Berlin", _turns())
    assert "PROBLEM: job offer in Berlin" in prompt
    assert "moderator: • What does your gut say?" in prompt


@pytest.mark.asyncio
async def test_summarize_decision():
    out = await summarize_decision("job offer in Berlin", _turns(), llm=FakeListChatModel(responses=[ANALYSIS]))

    assert out["raw_analysis"] == ANALYSIS
    assert out["summary"].confidence == 82
    assert out["summary"].to_dict()["key_insights"][2]["type"] == "risk"


@pytest.mark.asyncio
async def test_summarize_decision_requires_input():
    llm = FakeListChatModel(responses=[ANALYSIS])
    with pytest.raises(ValueError):
        await summarize_decision("", _turns(), llm=llm)
    with pytest.raises(ValueError):
        await summarize_decision("topic", [], llm=llm)


@pytest.mark.asyncio
async def test_summarize_decision_without_model():
    with patch("boardroom.reviewer.get_chat_model", return_value=None):
        with pytest.raises(RuntimeError):
            await summarize_decision("topic", _turns())
