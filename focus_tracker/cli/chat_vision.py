from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

if __package__ in {None, ""}:
    sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from focus_tracker.config.runtime import get_runtime_config
from focus_tracker.engines import (
    JsonVisionRepository,
    MistralChatConfig,
    MistralChatGateway,
    VisionInterview,
    VisionStructurer,
)
from focus_tracker.models.schemas import VisionTile

_runtime = get_runtime_config()
_chat_runtime = _runtime.mistral_chat


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run the vision interview in the terminal using Mistral."
    )
    parser.add_argument("--user-id", required=True, help="Owner of the vision record")
    parser.add_argument(
        "--storage-root",
        default=_runtime.storage.path,
        help="Storage root for vision records",
    )
    parser.add_argument(
        "--api-key",
        default=os.getenv("MISTRAL_API_KEY", ""),
        help="Mistral API key (defaults to MISTRAL_API_KEY)",
    )
    parser.add_argument(
        "--model",
        default=os.getenv("MISTRAL_MODEL", _chat_runtime.model),
        help="Mistral model name",
    )
    parser.add_argument(
        "--no-structured",
        action="store_true",
        help="Skip the schema-enforced structurer and parse tiles from markers only",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    return parser


def build_interview(args: argparse.Namespace) -> VisionInterview:
    gateway = MistralChatGateway(
        api_key=args.api_key,
        config=MistralChatConfig(model=args.model),
    )
    structurer = None if args.no_structured else VisionStructurer(api_key=args.api_key)
    return VisionInterview(
        user_id=args.user_id,
        gateway=gateway,
        repository=JsonVisionRepository(args.storage_root),
        structurer=structurer,
    )


async def run(args: argparse.Namespace) -> int:
    try:
        interview = build_interview(args)
    except ValueError as exc:
        print(f"[setup error] {exc}")
        return 1

    interview.load()
    _print_banner(interview)

    while True:
        try:
            user_text = (await asyncio.to_thread(input, "You > ")).strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            await interview.save_vision()
            return 0

        if not user_text:
            continue

        if user_text in {"/exit", "/quit"}:
            await interview.save_vision()
            print("Exiting.")
            return 0

        if user_text == "/save":
            saved = await interview.save_vision()
            print(f"Saved vision {interview.vision_id}." if saved else "Save failed (see log).")
            continue

        was_complete = interview.is_complete
        seen = len(interview.messages)
        await interview.send_message(user_text)

        for message in interview.messages[seen + 1:]:
            print(f"Guide > {message.content}\n")
        print(f"[{interview.phase} | {interview.progress}%]")

        if interview.is_complete and not was_complete:
            _print_tiles(interview.tiles)


def _print_banner(interview: VisionInterview) -> None:
    print("Vision interview (type /save to save, /quit to exit)")
    if interview.has_existing_vision:
        print(f"Resuming vision {interview.vision_id} at phase '{interview.phase}'.")
        if interview.is_complete:
            _print_tiles(interview.tiles)
    last = interview.messages[-1] if interview.messages else None
    if last is not None and last.role == "assistant":
        print(f"Guide > {last.content}\n")


def _print_tiles(tiles: list[VisionTile]) -> None:
    if not tiles:
        print("No vision tiles were extracted.")
        return
    print("Vision board:")
    for idx, tile in enumerate(tiles, start=1):
        print(f"{idx}. {tile.name}")
        if tile.snapshot:
            print(f"   snapshot: {tile.snapshot}")
        for action in tile.actions:
            print(f"   - {action}")
        if tile.routine:
            print(f"   routine: {tile.routine}")


def main() -> int:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
