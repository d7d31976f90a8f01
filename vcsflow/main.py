"""CLI entry point for vcsflow."""

import asyncio
import shlex
import sys

import structlog

from vcsflow.app import build_service, load_config
from vcsflow.exceptions import ConfigError
from vcsflow.git.handler import GitCommandHandler

logger = structlog.get_logger()


async def _run_repl(handler: GitCommandHandler) -> None:
    print("vcsflow ready. Type 'help' for commands (Ctrl+D to exit).\n")
    try:
        while True:
            try:
                line = input("> ")
            except EOFError:
                break

            if not line.strip():
                continue
            if line.strip() in ("exit", "quit"):
                break

            response = await handler.handle_command(line)
            print(f"{response}\n")
    except KeyboardInterrupt:
        pass
    finally:
        logger.info("cli_shutting_down")


async def main(argv: list[str] | None = None) -> None:
    try:
        config = load_config()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print("Check VCSFLOW_* environment variables or the .env file.", file=sys.stderr)
        sys.exit(1)

    service = build_service(config)
    handler = GitCommandHandler(service, repo_path=config.default_repo_path)

    args = sys.argv[1:] if argv is None else argv
    if not args:
        await _run_repl(handler)
        return

    print(await handler.handle_command(shlex.join(args)))


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
