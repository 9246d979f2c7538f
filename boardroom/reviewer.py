from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from .llm import get_chat_model
from .states import ConversationTurn


_ANALYST_PROMPT = (
    "You are an expert decision analyst who provides clear, actionable summaries of complex discussions."
)

_INSIGHT_TYPES = ("PRO", "CON", "RISK", "OPPORTUNITY")
_ITEM_PREFIX = re.compile(r"^(?:[•\-\*]|\d+[.)])\s*")


@dataclass
class Insight:
    type: str
    content: str
    confidence: float = 0.8
    source: str = "AI Analysis"


@dataclass
class DecisionSummary:
    recommendation: str = ""
    confidence: int = 75
    key_insights: List[Insight] = field(default_factory=list)
    action_plan: List[str] = field(default_factory=list)
    risks: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_summary_prompt(topic: str, turns: Sequence[ConversationTurn]) -> str:
    conversation = "\n\n".join(f"{t.speaker.value}: {t.content}" for t in turns)
    return (
        "You are an expert decision analyst. Based on the following conversation between AI personas "
        "about a decision, provide a comprehensive summary.\n\n"
        f"PROBLEM: {topic}\n\n"
        f"CONVERSATION:\n{conversation}\n\n"
        "Please provide a structured analysis in the following format:\n\n"
        "RECOMMENDATION: [One clear, actionable recommendation based on the conversation]\n\n"
        "CONFIDENCE_SCORE: [0-100 score based on consensus and depth of analysis]\n\n"
        "KEY_INSIGHTS: [List 4-6 key insights, each marked as PRO, CON, RISK, or OPPORTUNITY]\n\n"
        "ACTION_PLAN: [5 specific, actionable steps the person should take]\n\n"
        "RISKS: [3-4 main risks or concerns identified]\n\n"
        "NEXT_STEPS: [4 immediate next steps for implementation]\n\n"
        "Format your response as a structured analysis that helps the user make an informed decision."
    )


def _section(text: str, pattern: str) -> Optional[str]:
    m = re.search(pattern, text, re.S)
    return m.group(1) if m else None


def _items(block: Optional[str]) -> List[str]:
    if not block:
        return []
    return [_ITEM_PREFIX.sub("", ln.strip()).strip() for ln in block.splitlines() if ln.strip()]


def _insight(line: str) -> Insight:
    kind = "opportunity"
    for label in _INSIGHT_TYPES[:3]:
        if label in line:
            kind = label.lower()
            break
    content = re.sub(r"^[•\-\*]\s*", "", line)
    content = re.sub(r"\[(PRO|CON|RISK|OPPORTUNITY)\]\s*", "", content)
    return Insight(type=kind, content=content.strip())


def parse_summary(text: str) -> DecisionSummary:
    """Parse the analyst's sectioned answer; missing sections keep defaults."""
    summary = DecisionSummary()
    text = text or ""

    rec = _section(text, r"RECOMMENDATION:\s*(.*?)(?=\n\n|\nCONFIDENCE|$)")
    if rec:
        summary.recommendation = rec.strip()

    conf = re.search(r"CONFIDENCE_SCORE:\s*(\d+)", text)
    if conf:
        summary.confidence = max(0, min(100, int(conf.group(1))))

    insights = _section(text, r"KEY_INSIGHTS:\s*(.*?)(?=\n\nACTION_PLAN|$)")
    if insights:
        summary.key_insights = [_insight(ln.strip()) for ln in insights.splitlines() if ln.strip()]

    summary.action_plan = _items(_section(text, r"ACTION_PLAN:\s*(.*?)(?=\n\nRISKS|$)"))
    summary.risks = _items(_section(text, r"RISKS:\s*(.*?)(?=\n\nNEXT_STEPS|$)"))
    summary.next_steps = _items(_section(text, r"NEXT_STEPS:\s*(.*?)$"))
    return summary


async def summarize_decision(
    topic: str,
    turns: Sequence[ConversationTurn],
    llm: Optional[BaseChatModel] = None,
) -> Dict[str, Any]:
    if not topic or not turns:
        raise ValueError("topic and at least one conversation turn are required")
    model = llm if llm is not None else get_chat_model(temperature=0.3)
    if model is None:
        raise RuntimeError("PERPLEXITY_API_KEY not set; cannot summarize decision")

    sys_msg = SystemMessage(content=_ANALYST_PROMPT)
    usr_msg = HumanMessage(content=build_summary_prompt(topic, turns))
    logger.info(f"decision:start | turns={len(turns)}")
    res = await model.ainvoke([sys_msg, usr_msg])
    raw = res.content if isinstance(res.content, str) else ""
    summary = parse_summary(raw)
    logger.info(
        f"decision:done | confidence={summary.confidence} insights={len(summary.key_insights)} "
        f"actions={len(summary.action_plan)}"
    )
    return {"summary": summary, "raw_analysis": raw}
