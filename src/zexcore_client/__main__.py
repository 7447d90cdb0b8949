from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, List, NoReturn, Optional

from .config import ZexcoreOptions
from .errors import ZexcoreError
from .models import LogMessageKind
from .session import ZexcoreSession

COMMANDS = {"project", "send", "event"}


def main(argv: Optional[List[str]] = None) -> NoReturn:
  argv = list(sys.argv[1:] if argv is None else argv)

  if not argv or argv[0] not in COMMANDS:
    print("Usage: python -m zexcore_client {project|send|event}", file=sys.stderr)
    print("  project       - Connect and print the configured project", file=sys.stderr)
    print("  send          - Send a single log message", file=sys.stderr)
    print("  event         - Send a single event", file=sys.stderr)
    sys.exit(1)

  if argv[0] == "project":
    code = _run_project(argv[1:])
  elif argv[0] == "send":
    code = _run_send(argv[1:])
  else:
    code = _run_event(argv[1:])
  sys.exit(code)


def _connection_parser(prog: str, description: str) -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(prog=prog, description=description)
  parser.add_argument("--api-key", help="API key (default: ZEXCORE_API_KEY)")
  parser.add_argument("--project-id", help="Project id (default: ZEXCORE_PROJECT_ID)")
  parser.add_argument("--endpoint", help="RTM endpoint, ws:// or wss:// (default: ZEXCORE_ENDPOINT)")
  return parser


def _run_project(argv: List[str]) -> int:
  parser = _connection_parser("python -m zexcore_client project", "Print the configured project")
  args = parser.parse_args(argv)

  async def action(session: ZexcoreSession) -> None:
    project = session.project
    print(json.dumps(project.model_dump(mode="json", exclude_none=True), indent=2))

  return _with_session(args, action)


def _run_send(argv: List[str]) -> int:
  parser = _connection_parser("python -m zexcore_client send", "Send a single log message")
  parser.add_argument("message", help="Message text")
  parser.add_argument(
    "--kind",
    choices=[kind.value for kind in LogMessageKind],
    default=LogMessageKind.Information.value,
    help="Message kind (default: information)",
  )
  parser.add_argument("--tag", action="append", dest="tags", help="Tag (repeatable)")
  parser.add_argument("--stack", help="Stack trace or extra detail")
  args = parser.parse_args(argv)

  async def action(session: ZexcoreSession) -> None:
    await session.log_message(args.message, kind=args.kind, tags=args.tags, stack=args.stack)
    print("Message sent.")

  return _with_session(args, action)


def _run_event(argv: List[str]) -> int:
  parser = _connection_parser("python -m zexcore_client event", "Send a single event")
  parser.add_argument("name", help="Event name")
  parser.add_argument("--data", help="Event data as a JSON object")
  parser.add_argument("--tag", action="append", dest="tags", help="Tag (repeatable)")
  args = parser.parse_args(argv)

  data: Any = {}
  if args.data:
    try:
      data = json.loads(args.data)
    except ValueError as exc:
      parser.error(f"--data is not valid JSON: {exc}")
    if not isinstance(data, dict):
      parser.error("--data must be a JSON object")

  async def action(session: ZexcoreSession) -> None:
    await session.log_event(args.name, data=data, tags=args.tags)
    print("Event sent.")

  return _with_session(args, action)


def _with_session(
  args: argparse.Namespace,
  action: Callable[[ZexcoreSession], Awaitable[None]],
) -> int:
  async def run() -> None:
    options = ZexcoreOptions.from_params_or_env(
      api_key=args.api_key,
      project_id=args.project_id,
      endpoint=args.endpoint,
    )
    session = ZexcoreSession()
    try:
      await session.initialize(options)
      await action(session)
    finally:
      await session.close()

  try:
    asyncio.run(run())
  except ZexcoreError as exc:
    print(f"Error: {exc}", file=sys.stderr)
    return 1
  return 0


if __name__ == "__main__":
  main()
