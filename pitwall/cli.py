"""
Pitwall command line

Ask a single question or hold a conversation against the configured LLM and
the Ergast knowledge API:
  python -m pitwall.cli ask "Who won the 2021 championship?"
  python -m pitwall.cli chat --session my-session
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

import structlog

from pitwall.config import get_settings
from pitwall.log_config import configure_logging
from pitwall.orchestrator import QueryOrchestrator, QueryResponse, build_orchestrator
from pitwall.providers import ErgastKnowledgeProvider, LiteLLMResponder

logger = structlog.get_logger()

EXIT_COMMANDS = {"exit", "quit"}
ACTIONS = ("confirm", "refine", "alternative", "cancel")


def build_default_orchestrator() -> tuple[QueryOrchestrator, ErgastKnowledgeProvider | None]:
    settings = get_settings()
    knowledge = ErgastKnowledgeProvider(settings)
    orchestrator = build_orchestrator(
        LiteLLMResponder(settings),
        knowledge,
        settings=settings,
        synthesizer=LiteLLMResponder(settings, model=settings.llm_synthesis_model),
    )
    return orchestrator, knowledge


def _print_json(data: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(data, default=str) + "\n")
    sys.stdout.flush()


def _say(text: str) -> None:
    sys.stdout.write(text + "\n")
    sys.stdout.flush()


async def _read_line(prompt: str) -> str | None:
    sys.stdout.write(prompt)
    sys.stdout.flush()
    line = await asyncio.to_thread(sys.stdin.readline)
    if not line:
        return None
    return line.strip()


async def cmd_ask(args: argparse.Namespace, orchestrator: QueryOrchestrator) -> int:
    response = await orchestrator.process_query(args.query, session_id=args.session)
    _print_json(response.model_dump(mode="json"))
    return 0 if response.success else 1


async def _settle_confirmation(orchestrator: QueryOrchestrator, response: QueryResponse) -> None:
    confirmation = response.confirmation or {}
    _say(f"  preview: {confirmation.get('tentative', {}).get('preview', '')}")
    _say(f"  options: {', '.join(ACTIONS)}")

    action = await _read_line("action> ")
    if action is None:
        return

    outcome = await orchestrator.process_confirmation(confirmation["confirmation_id"], action)
    if not outcome.get("success"):
        _say(f"  {outcome.get('error')}")
        return

    if outcome["action"] == "confirmed":
        _say(outcome["response"])
    elif outcome["action"] == "refine":
        for suggestion in outcome.get("suggestions", []):
            _say(f"  - {suggestion}")
    elif outcome["action"] == "alternative":
        retried = await orchestrator.process_query(**outcome["retry"])
        _say(retried.response)
    else:
        _say(outcome.get("message", ""))


async def cmd_chat(args: argparse.Namespace, orchestrator: QueryOrchestrator) -> int:
    session_id = args.session
    orchestrator.start_maintenance()
    try:
        while True:
            query = await _read_line("you> ")
            if query is None or query.lower() in EXIT_COMMANDS:
                break
            if not query:
                continue

            response = await orchestrator.process_query(query, session_id=session_id)
            session_id = response.session_id
            _say(response.response)

            if response.requires_confirmation:
                await _settle_confirmation(orchestrator, response)
    finally:
        await orchestrator.stop_maintenance()

    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pitwall", description="Ask Formula 1 questions")
    sub = parser.add_subparsers(dest="cmd", required=True)

    ask_p = sub.add_parser("ask", help="Answer one question and print the response as JSON")
    ask_p.add_argument("query")
    ask_p.add_argument("--session", default=None)
    ask_p.set_defaults(func=cmd_ask)

    chat_p = sub.add_parser("chat", help="Interactive conversation with confirmations")
    chat_p.add_argument("--session", default=None)
    chat_p.set_defaults(func=cmd_chat)

    return parser


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    args = _build_parser().parse_args(argv)
    configure_logging()

    async def _run() -> int:
        orchestrator, knowledge = build_default_orchestrator()
        try:
            return await args.func(args, orchestrator)
        finally:
            if knowledge is not None:
                await knowledge.close()

    return asyncio.run(_run())


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
