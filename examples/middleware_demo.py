#!/usr/bin/env python3
"""
Middleware pipeline demo.

This example demonstrates:
1. Timing middleware - wraps the rest of the pipeline (onion order)
2. Filter middleware - stops the pipeline for non-text files
3. Handler middleware - reads shared state set by earlier stages

Usage:
    python examples/middleware_demo.py

The demo will:
- Create a temporary directory
- Start watching it with a 100 ms debounce window
- Create, rewrite and delete a few files
- Print each change as it is delivered
- Clean up after the last change
"""

import asyncio
import shutil
import tempfile
import time
from pathlib import Path

from fsrelay import SemanticKind, Watcher, WatchOptions, ignore_patterns


def build_watcher(demo_dir: Path) -> Watcher:
    options = WatchOptions(
        base=demo_dir,
        debounce_ms=100,
        ignore=ignore_patterns(["*.swp", "*~"]),
    )
    watcher = Watcher(options, ["."])

    @watcher.use
    async def timing(ctx, call_next):
        started = time.perf_counter()
        await call_next()
        elapsed = (time.perf_counter() - started) * 1000
        print(f"[TIMING]  {Path(ctx.path).name}: {elapsed:.1f} ms")

    @watcher.use
    async def text_only(ctx, call_next):
        if not ctx.path.endswith(".txt"):
            print(f"[FILTER]  skipping {Path(ctx.path).name}")
            return
        ctx.state["label"] = ctx.event.value.upper()
        await call_next()

    @watcher.use
    async def handler(ctx, call_next):
        size = ctx.file.st_size if ctx.file is not None else 0
        print(f"[EVENT]   {ctx.state['label']:<6} {Path(ctx.path).name} ({size} bytes)")
        if ctx.event == SemanticKind.REMOVE and ctx.path.endswith("last.txt"):
            watcher.stop()
        await call_next()

    watcher.on_error(lambda exc, event: print(f"[ERROR]   {event.path}: {exc}"))
    return watcher


async def make_changes(demo_dir: Path) -> None:
    await asyncio.sleep(0.3)

    notes = demo_dir / "notes.txt"
    for i in range(5):
        notes.write_text(f"draft {i}\n")
    await asyncio.sleep(0.3)

    (demo_dir / "image.png").write_bytes(b"\x89PNG")
    (demo_dir / "scratch.swp").write_text("ignored")
    await asyncio.sleep(0.3)

    last = demo_dir / "last.txt"
    last.write_text("bye\n")
    await asyncio.sleep(0.3)
    last.unlink()


async def main():
    demo_dir = Path(tempfile.mkdtemp(prefix="fsrelay_demo_"))
    print(f"Watching {demo_dir}")

    watcher = build_watcher(demo_dir)
    changes = asyncio.ensure_future(make_changes(demo_dir))

    try:
        await asyncio.wait_for(watcher.watch(), timeout=30)
        await changes
        print("\nDemo completed successfully!")
    finally:
        print(f"Cleaning up demo directory: {demo_dir}")
        shutil.rmtree(demo_dir, ignore_errors=True)


if __name__ == "__main__":
    asyncio.run(main())
