"""
CLI entry point: ask the assistant one question from a terminal.

    python -m src.infrastructure.entrypoints.ask_cli "gold price on 22 feb"
    python -m src.infrastructure.entrypoints.ask_cli --stream "explain the gold trend"
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from src.domain.errors import StoreUnavailableError
from src.infrastructure.config.settings import get_settings
from src.infrastructure.entrypoints.composition import Components, build_components


async def run(components: Components, question: str, stream: bool) -> int:
    try:
        if stream:
            async for event in components.use_case.stream(question):
                if event["type"] == "token":
                    print(event["content"], end="", flush=True)
            print()
        else:
            answer = await components.use_case.execute(question)
            print(answer.answer_text)
    except StoreUnavailableError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await components.aclose()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Ask the metal price assistant a question.")
    parser.add_argument("question", nargs="+", help="the question to ask")
    parser.add_argument("--stream", action="store_true", help="print the answer as it streams")
    args = parser.parse_args(argv)

    load_dotenv()
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    components = build_components(settings)
    return asyncio.run(run(components, " ".join(args.question), args.stream))


if __name__ == "__main__":
    sys.exit(main())
