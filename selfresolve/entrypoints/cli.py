"""Admin command line for the market engine.

Examples:
    selfresolve init-db
    selfresolve register alice
    selfresolve create-question "Will it rain tomorrow?" --R 10 --k 2 --alpha 0.2
    selfresolve submit 1 1 65
    selfresolve results 1
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, Awaitable, Callable, Sequence

from dotenv import load_dotenv
from pydantic import BaseModel

from selfresolve.config import Settings, load_settings, sanitize_dict
from selfresolve.database import DBM, initialize
from selfresolve.market.types import MarketError
from selfresolve.protocol.models.v1 import ParticipantTotal, error_response
from selfresolve.service import MarketService
from selfresolve.shared.logging import configure_logging, setup_events_logger

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="selfresolve", description=__doc__.splitlines()[0])
    parser.add_argument("--config", default=None, help="YAML settings file")
    parser.add_argument("--env-file", default=".env", help="dotenv file loaded before settings")
    parser.add_argument("--log-level", default=None, help="Override logging.level")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the database and apply migrations")

    p = sub.add_parser("register", help="Register a participant identity")
    p.add_argument("username")
    p.add_argument("--admin", action="store_true")

    p = sub.add_parser("create-question", help="Create an open question")
    p.add_argument("text")
    p.add_argument("--R", dest="reward", type=float, required=True)
    p.add_argument("--k", type=int, required=True)
    p.add_argument("--alpha", type=float, required=True)

    p = sub.add_parser("submit", help="Submit an estimate (integer percentage 1..99)")
    p.add_argument("question_id", type=int)
    p.add_argument("participant_id", type=int)
    p.add_argument("value", type=int)

    p = sub.add_parser("show", help="Show a question, or list open questions")
    p.add_argument("question_id", type=int, nargs="?")
    p.add_argument("--all", action="store_true", help="Include resolved questions when listing")

    p = sub.add_parser("results", help="Show rewards of a resolved question")
    p.add_argument("question_id", type=int)

    p = sub.add_parser("total", help="Show a participant's accumulated reward")
    p.add_argument("participant_id", type=int)

    p = sub.add_parser("leaderboard", help="Top participants by total reward")
    p.add_argument("--limit", type=int, default=10)

    p = sub.add_parser("curve", help="Score of every estimate 1..99 against a reference")
    p.add_argument("reference", type=int)

    return parser


def _dump(payload: Any) -> str:
    if isinstance(payload, BaseModel):
        return payload.model_dump_json(indent=2)
    if isinstance(payload, list):
        return json.dumps([p.model_dump(mode="json") if isinstance(p, BaseModel) else p for p in payload], indent=2)
    return json.dumps(payload, indent=2, default=str)


async def _run(args: argparse.Namespace, settings: Settings, url: str) -> Any:
    dbm = DBM(settings, url)
    service = MarketService(dbm, settings)
    try:
        handlers: dict[str, Callable[[], Awaitable[Any]]] = {
            "register": lambda: _with_key("participant_id", service.register_participant(args.username, args.admin)),
            "create-question": lambda: _with_key(
                "question_id", service.create_question(args.text, args.reward, args.k, args.alpha)
            ),
            "submit": lambda: service.submit_estimate(args.question_id, args.participant_id, args.value),
            "show": lambda: (
                service.get_question(args.question_id)
                if args.question_id is not None
                else service.list_questions(open_only=not args.all)
            ),
            "results": lambda: service.get_results(args.question_id),
            "total": lambda: _total(service, args.participant_id),
            "leaderboard": lambda: service.get_leaderboard(args.limit),
        }
        if args.command == "init-db":
            return {"database": sanitize_dict({"url": url})["url"]}
        if args.command == "curve":
            return service.score_curve(args.reference)
        return await handlers[args.command]()
    finally:
        await dbm.dispose()


async def _with_key(key: str, coro: Awaitable[Any]) -> dict[str, Any]:
    return {key: await coro}


async def _total(service: MarketService, participant_id: int) -> ParticipantTotal:
    total = await service.get_participant_total(participant_id)
    return ParticipantTotal(participant_id=participant_id, total=total)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.env_file and os.path.exists(args.env_file):
        load_dotenv(args.env_file, override=False)

    settings = load_settings(args.config)
    configure_logging(args.log_level or settings.logging.level)
    setup_events_logger(
        os.path.join(settings.resolved_data_dir(), "logs"),
        settings.logging.events_retention_size,
    )
    logger.debug({"settings": sanitize_dict(settings.model_dump())})

    # alembic upgrade is synchronous; it must not run inside the event loop.
    url = initialize(settings)

    try:
        result = asyncio.run(_run(args, settings, url))
    except MarketError as e:
        print(error_response(e).model_dump_json(indent=2), file=sys.stderr)
        return 1
    print(_dump(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
