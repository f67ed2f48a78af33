from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from loguru import logger

from .agents import AgentBackend
from .config import ForumConfig
from .errors import ForumError
from .helpers import format_timestamp
from .llm import get_chat_model
from .manager import ConversationManager
from .ratelimit import RateLimiter
from .states import format_transcript
from .store import ConversationStore


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="agent-forum", description="Create and run conversations between LLM agents")
    sub = p.add_subparsers(dest="command", required=True)

    start = sub.add_parser("start", help="Start a new conversation")
    start.add_argument("-a", "--agents", type=int, required=True, help="Number of agents")
    start.add_argument("-t", "--topic", type=str, required=True, help="Conversation topic")
    start.add_argument("-r", "--turns", type=int, default=3, help="Number of turns")

    load = sub.add_parser("load", help="Load and continue an existing conversation")
    load.add_argument("-i", "--id", type=str, required=True, help="Conversation ID")
    load.add_argument("-r", "--turns", type=int, required=True, help="Number of additional turns")

    show = sub.add_parser("show", help="Print a stored conversation")
    show.add_argument("-i", "--id", type=str, required=True, help="Conversation ID")
    show.add_argument("--private", action="store_true", help="Include each agent's private thoughts")
    show.add_argument("--json", action="store_true", help="Print the full conversation as JSON")

    sub.add_parser("list", help="List stored conversations")
    return p.parse_args(argv)


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level, colorize=True, format="{time:HH:mm:ss} | {level} | {message}")


def build_manager(config: ForumConfig, store: ConversationStore) -> ConversationManager:
    chat = get_chat_model(config.provider, config.llm_model, config.api_key)
    backend = AgentBackend(chat, RateLimiter(config.rate_limit), provider_label=config.provider.value)
    return ConversationManager(store, backend)


async def _run(args: argparse.Namespace, config: ForumConfig, store: ConversationStore) -> int:
    if args.command == "list":
        for c in store.list_conversations():
            print(f"{c.id}  {format_timestamp(c.updated_at)}  {c.topic}")
        return 0

    if args.command == "show":
        conversation = store.load_conversation(args.id)
        if conversation is None:
            logger.error(f"Conversation with ID {args.id} not found")
            return 1
        if args.json:
            print(json.dumps(conversation.to_dict(), ensure_ascii=False, indent=2))
        else:
            print(format_transcript(conversation, include_private=args.private))
        return 0

    manager = build_manager(config.validate(), store)
    if args.command == "start":
        logger.info(f"Starting a new conversation with {args.agents} agents on topic: \"{args.topic}\"")
        conversation = manager.create_conversation(args.topic, args.agents)
        await manager.run_conversation(conversation, args.turns)
        logger.info(f"Conversation completed. Conversation ID: {conversation.id}")
        return 0

    conversation = manager.load_conversation(args.id)
    if conversation is None:
        logger.error(f"Conversation with ID {args.id} not found")
        return 1
    logger.info(f"Continuing conversation on topic: \"{conversation.topic}\" with {len(conversation.agents)} agents")
    await manager.run_conversation(conversation, args.turns)
    logger.info("Conversation completed.")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = ForumConfig.from_env()
        configure_logging(config.log_level)
        with ConversationStore(config.database_path) as store:
            return asyncio.run(_run(args, config, store))
    except (ForumError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
