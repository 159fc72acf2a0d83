"""Entry point: open a guarded session, load a page and report on it."""

import argparse
import asyncio
import logging
import sys

logger = logging.getLogger("selenium_guard")


async def probe(url: str) -> int:
    """Navigate to ``url`` through a guarded session and print what was loaded."""
    from .actions import navigate, title
    from .core import BrowserContext, SeleniumGuardError, use_context

    context = BrowserContext.from_settings()
    with use_context(context):
        try:
            loaded = await navigate(url)
            page_title = await title()
            print(f"Loaded {loaded}")
            print(f"Title: {page_title}")
            print(f"Session state: {context.state.value}")
            return 0
        except SeleniumGuardError as e:
            print(f"Error: {e}", file=sys.stderr)
            print(f"Session state: {context.state.value}", file=sys.stderr)
            return 1
        finally:
            await context.close()


def main(argv=None) -> int:
    """Main entry point."""
    from .config import configure_logging, settings

    parser = argparse.ArgumentParser(
        prog="selenium_guard",
        description="Open a guarded browser session on the configured grid and load a page.",
    )
    parser.add_argument("url", nargs="?", default="about:blank", help="URL to load")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (TRACE, DEBUG, INFO...)")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    logger.info(f"Using Selenium Grid at {settings.grid_url}")

    try:
        return asyncio.run(probe(args.url))
    except KeyboardInterrupt:
        print("\nShutdown requested...")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
