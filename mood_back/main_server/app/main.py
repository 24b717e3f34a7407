# main_server/app/main.py
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import signal
import sys
import uuid
from contextlib import suppress
from typing import Optional

import uvicorn

from mood_back.main_server.app.api.app import create_app
from mood_back.main_server.app.api.v1.deps import Container, build_container
from mood_back.main_server.app.config import PipelineConfig, load_config
from mood_back.main_server.app.domain.errors_domain import (
    PipelineFailedError,
    PollCancelledError,
    ProvenanceLogNotFoundError,
    RetryPreconditionError,
    TransportError,
)
from mood_back.main_server.app.domain.jobs_domain import JobKind
from mood_back.main_server.app.domain.pipeline_domain import PipelineEvent, SessionInput

log = logging.getLogger("mood")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PIPELINE_FAILED = 2
EXIT_CANCELLED = 130


# -------------------------
# Logging
# -------------------------
def _setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def _install_cancel_handlers(cancel: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def _handler(sig: signal.Signals) -> None:
        log.info("Cancel requested by signal: %s", sig.name)
        cancel.set()

    for s in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(s, _handler, s)


def _print_event(event: PipelineEvent) -> None:
    if event.kind == "state":
        print(f"[{event.state.value}]", file=sys.stderr)
    elif event.kind == "job_status":
        print(f"  {event.job_kind.value} {event.job_id}: {event.job_status.value}", file=sys.stderr)
    elif event.kind == "stage_error":
        print(f"  ! {event.stage}: {event.message}", file=sys.stderr)


# -------------------------
# Commands
# -------------------------
async def _cmd_run(container: Container, args: argparse.Namespace) -> int:
    session = SessionInput.now(
        session_id=args.session_id or f"cli_{uuid.uuid4().hex[:12]}",
        mood=args.mood,
        duration=args.duration,
        free_text=args.free_text,
        style_preset=args.style_preset,
        seed=args.seed,
        title=args.title,
    )
    cancel = asyncio.Event()
    _install_cancel_handlers(cancel)

    try:
        outcome = await container.orchestrator.run(session, on_event=_print_event, cancel=cancel)
    except PollCancelledError:
        log.info("Run cancelled")
        return EXIT_CANCELLED
    except PipelineFailedError as e:
        print(json.dumps({
            "stage": e.stage,
            "errorCode": e.error_code,
            "message": e.message,
            "logId": e.log_id,
        }))
        return EXIT_PIPELINE_FAILED

    print(json.dumps({
        "logId": outcome.log_id,
        "albumId": outcome.album_id,
        "state": outcome.state.value,
        "degraded": outcome.degraded,
        "musicAvailable": outcome.music_available,
    }))
    return EXIT_OK


async def _cmd_logs(container: Container, args: argparse.Namespace) -> int:
    summaries = container.provenance.summaries()
    if not summaries:
        print("no provenance logs")
        if container.config.provenance_backend == "memory":
            print("memory backend keeps logs only for one process; use --provenance-backend redis")
    for s in summaries:
        print(
            f"{s.id}  session={s.session_id}  created={s.created_at.isoformat()}  "
            f"success={s.success}  total={s.total_duration:.0f}ms  album={s.album_id or '-'}"
        )
    return EXIT_OK


async def _cmd_export(container: Container, args: argparse.Namespace) -> int:
    try:
        document = container.provenance.export(args.log_id)
    except ProvenanceLogNotFoundError as e:
        log.error("%s", e)
        return EXIT_ERROR
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(document)
        log.info("Exported %s to %s", args.log_id, args.output)
    else:
        print(document)
    return EXIT_OK


async def _cmd_retry(container: Container, args: argparse.Namespace) -> int:
    try:
        receipt = await container.retries[JobKind(args.kind)].retry(args.job_id)
    except (RetryPreconditionError, TransportError) as e:
        log.error("Retry failed: %s", e)
        return EXIT_ERROR
    print(json.dumps({"jobId": receipt.job_id, "status": receipt.status.value, "message": receipt.message}))
    return EXIT_OK


COMMANDS = {
    "run": _cmd_run,
    "logs": _cmd_logs,
    "export": _cmd_export,
    "retry": _cmd_retry,
}


async def _run(config: PipelineConfig, args: argparse.Namespace) -> int:
    container = await build_container(config)
    try:
        return await COMMANDS[args.command](container, args)
    finally:
        await container.aclose()


def _serve(config: PipelineConfig, args: argparse.Namespace) -> int:
    uvicorn.run(create_app(config), host=args.host, port=args.port, log_level=args.log_level.lower())
    return EXIT_OK


# -------------------------
# Parser
# -------------------------
def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mood", description="Mood album pipeline (analysis -> image || music -> album)")
    p.add_argument("--gen-server-url", default=None, help="Generation server base url (env GEN_SERVER_URL)")
    p.add_argument(
        "--provenance-backend",
        default=None,
        choices=["memory", "redis"],
        help="Where provenance logs live (env PROVENANCE_BACKEND). memory is per process; use redis to keep logs across commands",
    )
    p.add_argument("--redis-url", default=None, help="Redis connection URL (env REDIS_URL)")
    p.add_argument("--log-level", default="INFO", help="Logging level (DEBUG/INFO/WARNING/ERROR)")

    sub = p.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the pipeline for one mood session")
    run.add_argument("--mood", required=True)
    run.add_argument("--duration", type=int, required=True, help="Session length in seconds")
    run.add_argument("--free-text", default=None)
    run.add_argument("--style-preset", default=None)
    run.add_argument("--seed", type=int, default=None)
    run.add_argument("--title", default=None)
    run.add_argument("--session-id", default=None)

    sub.add_parser("logs", help="List provenance logs")

    export = sub.add_parser("export", help="Export one provenance log as JSON")
    export.add_argument("log_id")
    export.add_argument("-o", "--output", default=None, help="Write to this file instead of stdout")

    retry = sub.add_parser("retry", help="Resubmit a failed job with its recorded input")
    retry.add_argument("kind", choices=[k.value for k in JobKind])
    retry.add_argument("job_id")

    serve = sub.add_parser("serve", help="Serve the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return p


def _config_from_args(args: argparse.Namespace) -> PipelineConfig:
    config = load_config()
    overrides = {}
    if args.gen_server_url:
        overrides["gen_server_url"] = args.gen_server_url
    if args.provenance_backend:
        overrides["provenance_backend"] = args.provenance_backend
    if args.redis_url:
        overrides["redis_url"] = args.redis_url
    return dataclasses.replace(config, **overrides)


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.log_level)
    config = _config_from_args(args)

    if args.command == "serve":
        return _serve(config, args)

    try:
        return asyncio.run(_run(config, args))
    except KeyboardInterrupt:
        log.info("KeyboardInterrupt -> exit")
        return EXIT_CANCELLED
    except Exception:
        log.exception("Command crashed")
        return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
