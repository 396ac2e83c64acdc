import argparse
import asyncio
import json
import logging
import sys

from taskparse.config import settings


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def parse_text(text: str, history: str | None = None, use_inference: bool = True) -> int:
    from taskparse.services.dispatcher import IntentDispatcher
    from taskparse.services.errors import InvalidInputError

    kwargs = {} if use_inference else {"inference": None}
    async with await IntentDispatcher.create(**kwargs) as dispatcher:
        if history:
            with open(history, encoding="utf-8") as handle:
                await dispatcher.preload(line.strip() for line in handle if line.strip())

        try:
            outcome = await dispatcher.parse(text)
        except InvalidInputError as exc:
            print(f"Error: {exc}")
            return 1

    print(json.dumps(outcome.to_dict(), indent=2))
    return 0


async def check_config() -> None:
    from taskparse.services.llm_parser import InferenceParser

    print("Taskparse Configuration Check\n")
    print(f"  Inference service: {settings.ollama_base_url}")
    print(f"  Model: {settings.ollama_model}")
    print(f"  Timeout: {settings.inference_timeout:g}s")
    print(f"  Strategy mode: {settings.strategy_mode}")
    print(f"  Cache capacity: {settings.cache_capacity}")
    print(f"  Timezone: {settings.user_timezone}")
    print()

    if not settings.has_inference:
        print("  [-] Inference: DISABLED")
        print("\nRule-based parsing only.")
        return

    parser = InferenceParser()
    try:
        reachable = await parser.health_check()
    finally:
        await parser.aclose()

    symbol = "+" if reachable else "-"
    status = "OK" if reachable else "UNREACHABLE"
    print(f"  [{symbol}] Inference: {status}")
    print()
    if reachable:
        print("Inference service reachable. Ready to run.")
    else:
        print("Inference service not reachable. Rule-based parsing only.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Natural language task and event parser")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    parse_cmd = subparsers.add_parser("parse", help="Interpret text and print the result as JSON")
    parse_cmd.add_argument("text", nargs="+", help="Text to interpret")
    parse_cmd.add_argument("--history", help="File of past inputs, one per line, to preload the cache")
    parse_cmd.add_argument(
        "--no-inference", action="store_true", help="Skip the inference service"
    )
    subparsers.add_parser("check", help="Check configuration and inference reachability")

    args = parser.parse_args()

    setup_logging()

    if args.command == "parse":
        status = asyncio.run(
            parse_text(" ".join(args.text), history=args.history, use_inference=not args.no_inference)
        )
        if status:
            sys.exit(status)
    elif args.command == "check":
        asyncio.run(check_config())
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
