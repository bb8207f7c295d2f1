#!/usr/bin/env python3
"""
Terminal client for /ws/listings

Prints the selected view every time the dashboard refreshes.

Usage examples:
  python scripts/watch_listings.py
  python scripts/watch_listings.py --host 127.0.0.1 --port 8000 --view gainers --duration 600
"""

import asyncio
import argparse
import json
import sys
from typing import Optional

import websockets


VIEWS = ("all", "favorites", "hot", "new", "gainers", "meme")


def render(message: dict) -> str:
    """Format one WebSocket message as a plain-text table."""
    status = message.get("status", {})
    view = message.get("view", {})
    lines = [
        f"== {view.get('view', '?')} ({view.get('count', 0)}) "
        f"| {message.get('type')} | last fetch: {status.get('last_fetch_at') or 'never'}"
    ]
    if status.get("error"):
        lines.append(f"!! {status['error']}")
    for card in view.get("cards", []):
        arrow = "+" if card.get("direction") == "up" else "-"
        star = "*" if card.get("is_favorite") else " "
        lines.append(
            f"{star} {card.get('symbol', ''):<8} {card.get('name', '')[:20]:<20} "
            f"{card.get('price', ''):>16} {arrow}{card.get('change_24h', ''):>8} "
            f"vol {card.get('volume', '')}"
        )
    if view.get("empty_message"):
        lines.append(view["empty_message"])
    return "\n".join(lines)


async def stream_loop(url: str, duration: Optional[int] = None) -> None:
    """
    Connect to the listings stream and print each message.
    Reconnects on error with exponential backoff.
    """
    attempt = 0
    end_time = (asyncio.get_running_loop().time() + duration) if duration else None

    while True:
        if end_time is not None and asyncio.get_running_loop().time() >= end_time:
            print("[listings] Duration reached; stopping.")
            return

        try:
            async with websockets.connect(url) as ws:
                attempt = 0
                print(f"[listings] Connected: {url}")
                while True:
                    msg = await asyncio.wait_for(ws.recv(), timeout=300)
                    try:
                        print(render(json.loads(msg)))
                    except ValueError:
                        print(f"[listings] {msg}")
                    print()
        except asyncio.TimeoutError:
            print("[listings] No messages for 300s; reconnecting...")
        except (OSError, websockets.exceptions.WebSocketException) as e:
            attempt += 1
            backoff = min(2 ** (attempt - 1), 30)
            print(f"[listings] Disconnected/error ({e}); reconnecting in {backoff}s...")
            await asyncio.sleep(backoff)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Print dashboard views as they refresh")
    parser.add_argument("--host", default="localhost", help="Server host (default: localhost)")
    parser.add_argument("--port", type=int, default=8000, help="Server port (default: 8000)")
    parser.add_argument("--view", default="all", choices=VIEWS, help="View to follow (default: all)")
    parser.add_argument("--duration", type=int, default=0, help="Seconds to run (0 = run indefinitely)")
    args = parser.parse_args()

    url = f"ws://{args.host}:{args.port}/ws/listings?view={args.view}"
    duration = args.duration if args.duration and args.duration > 0 else None

    await stream_loop(url, duration)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n[Info] Interrupted. Bye.")
        sys.exit(0)
