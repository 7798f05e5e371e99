"""Main entry point for the natural-language query console."""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from nlquery.config import get_settings
from nlquery.errors import QueryEngineError
from nlquery.query import ConversationContext, build_engine

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"exit", "quit", ":q"}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask questions about a Qdrant vector database")
    parser.add_argument("--collection", help="Collection to query, inferred from questions if omitted")
    parser.add_argument("--provider", help="Preferred LLM provider (openai or gemini)")
    parser.add_argument("--model", help="Chat model id, e.g. gpt-4o-mini or gemini-2.0-flash")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> None:
    """Main application entry point."""
    args = parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(f"Starting query console in {settings.environment.value} mode")
    logger.info(f"Using LLM provider: {settings.llm_provider.value}")

    # Validate configuration
    try:
        settings.validate_provider_config()
    except ValueError as e:
        logger.warning(f"Configuration warning: {e}. Falling back to rule-based parsing.")

    engine = build_engine(settings)
    provider = args.provider or settings.llm_provider.value
    context = ConversationContext()

    print("Ask a question about your vector database (type 'exit' to quit).")
    try:
        while True:
            try:
                question = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            if question.strip().lower() in EXIT_COMMANDS:
                break
            if not question.strip():
                continue

            try:
                response = await engine.process(
                    args.collection,
                    question,
                    provider=provider,
                    model=args.model,
                    context=context,
                )
            except QueryEngineError as e:
                print(f"Error: {e.message}")
                continue

            context = response.context
            print(response.answer)
            print(f"({response.query_type}, {response.execution_time_ms}ms)")
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        await engine.store.close()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()
