from __future__ import annotations

import argparse
import asyncio
import json
import random
import re
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List

from loguru import logger

from boardroom.agents import PersonaResponder, UtteranceRequest
from boardroom.config import EngineConfig
from boardroom.factcheck import should_verify
from boardroom.llm import get_chat_model
from boardroom.manager import AutoConversationEngine
from boardroom.reviewer import summarize_decision
from boardroom.states import DEFAULT_ROSTER, ConversationTurn, EngineState, Persona


ROOT = Path(__file__).resolve().parent
RESULTS_DIR = ROOT / "chat_results"


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run an auto-conversation between the boardroom personas")
    p.add_argument("--topic", type=str, required=True, help="Decision or problem the personas should discuss")
    p.add_argument("--rounds", type=int, default=6, help="Stop after this many persona turns")
    p.add_argument("--interval-ms", type=int, default=None, help="Delay between turns (overrides AUTO_SPEAKING_INTERVAL_MS)")
    p.add_argument("--max-rounds-per-topic", type=int, default=None, help="Inject a topic evolution every N rounds")
    p.add_argument("--no-topic-evolution", action="store_true", help="Disable topic evolution prompts")
    p.add_argument("--seed", type=int, default=None, help="Seed for topic evolution selection")
    p.add_argument(
        "--ask",
        type=str,
        default=None,
        choices=[persona.value for persona in DEFAULT_ROSTER],
        help="Ask one persona directly instead of running the auto-conversation",
    )
    p.add_argument("--summary", action="store_true", help="Run the decision summary after the conversation")
    p.add_argument("--out", type=str, default=None, help="Output JSON path (default: chat_results/<topic>.json)")
    p.add_argument("--log-level", type=str, default="INFO", help="Loguru level for stdout")
    return p.parse_args(argv)


def slugify(text: str, limit: int = 60) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", (text or "").lower()).strip("_")
    return slug[:limit] or "conversation"


def build_config(args: argparse.Namespace) -> EngineConfig:
    cfg = EngineConfig.from_env()
    changes: Dict[str, Any] = {}
    if args.interval_ms is not None:
        changes["speaking_interval_ms"] = args.interval_ms
    if args.max_rounds_per_topic is not None:
        changes["max_rounds_per_topic"] = args.max_rounds_per_topic
    if args.no_topic_evolution:
        changes["topic_evolution_enabled"] = False
    if changes:
        cfg = replace(cfg, **changes)
    return cfg


async def run(args: argparse.Namespace) -> Dict[str, Any]:
    llm = get_chat_model()
    if llm is None:
        raise RuntimeError("PERPLEXITY_API_KEY not set")

    transcript: List[ConversationTurn] = []
    done = asyncio.Event()

    def on_message(turn: ConversationTurn) -> None:
        transcript.append(turn)

    def on_state_change(state: EngineState) -> None:
        if state.round >= args.rounds or (state.paused and not engine.generating):
            done.set()

    def on_error(exc: BaseException) -> None:
        logger.warning(f"auto_chat_failed | {exc}")
        done.set()

    engine = AutoConversationEngine(
        PersonaResponder(llm=llm),
        build_config(args),
        rng=random.Random(args.seed),
        on_message=on_message,
        on_state_change=on_state_change,
        on_error=on_error,
    )

    opening = ConversationTurn.from_user(f"I need help with this decision: {args.topic}")
    transcript.append(opening)
    engine.start_conversation(args.topic, [opening])

    t0 = time.perf_counter()
    await done.wait()
    engine.stop_conversation()
    await engine.idle()
    logger.info(f"Conversation finished in {time.perf_counter() - t0:.2f}s with {len(transcript)} messages")

    state = engine.get_state()
    result: Dict[str, Any] = {
        "topic": args.topic,
        "rounds": state.round,
        "state": state.to_dict(),
        "conversation": [t.to_dict() for t in transcript],
    }
    if args.summary:
        await add_summary(result, args.topic, transcript)
    return result


async def ask(args: argparse.Namespace) -> Dict[str, Any]:
    """One direct answer from a single persona; no auto-conversation."""
    llm = get_chat_model()
    if llm is None:
        raise RuntimeError("PERPLEXITY_API_KEY not set")

    persona = Persona.parse(args.ask)
    opening = ConversationTurn.from_user(f"I need help with this decision: {args.topic}")
    history = [opening]
    request = UtteranceRequest(
        history=history,
        persona=persona,
        topic=args.topic,
        auto_mode=False,
        verify=should_verify(persona, args.topic, history),
    )
    utterance = await PersonaResponder(llm=llm)(request)
    reply = ConversationTurn.create(utterance.text, persona, verified=utterance.verified)
    logger.info(f"ask_done | persona={persona.value} verified={reply.verified}")

    transcript = [opening, reply]
    result: Dict[str, Any] = {
        "topic": args.topic,
        "persona": persona.value,
        "conversation": [t.to_dict() for t in transcript],
    }
    if args.summary:
        await add_summary(result, args.topic, transcript)
    return result


async def add_summary(result: Dict[str, Any], topic: str, transcript: List[ConversationTurn]) -> None:
    logger.info("Running decision summary ...")
    review = await summarize_decision(topic, transcript, llm=get_chat_model(temperature=0.3))
    result["summary"] = review["summary"].to_dict()
    result["raw_analysis"] = review["raw_analysis"]


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    logger.remove()
    logger.add(sys.stdout, level=args.log_level.upper(), colorize=True, format="{time:HH:mm:ss} | {level} | {message}")

    try:
        result = asyncio.run(ask(args) if args.ask else run(args))
    except RuntimeError as e:
        logger.error(f"{e}")
        return 1

    out = Path(args.out) if args.out else RESULTS_DIR / f"{slugify(args.topic)}.json"
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(result, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info(f"Wrote conversation to {out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
