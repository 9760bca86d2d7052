from __future__ import annotations

import argparse
import asyncio
import logging
import time
from typing import Any

from shared.config.loader import load_scanner_settings

from apps.scanner.compose import ScannerApp, build_ipc
from apps.scanner.settings import ScannerSettings


def _apply_cli(settings: ScannerSettings, args: argparse.Namespace) -> ScannerSettings:
    camera: dict[str, Any] = {}
    if args.camera is not None:
        camera["selector"] = args.camera
    if args.torch:
        camera["torch"] = True
    if args.target is not None:
        camera["target"] = args.target
    if args.adapter is not None:
        camera["adapter"] = args.adapter

    update: dict[str, Any] = {}
    if camera:
        update["camera"] = settings.camera.model_copy(update=camera)
    if args.no_track:
        update["scan"] = settings.scan.model_copy(update={"tracking": "off"})
    if args.snapshot_dir is not None:
        update["display"] = settings.display.model_copy(update={"snapshot_dir": args.snapshot_dir})
    return settings.model_copy(update=update) if update else settings


async def _run(settings: ScannerSettings, args: argparse.Namespace) -> int:
    cmd_server, event_pub = build_ipc(settings)
    app = ScannerApp(settings, event_pub=event_pub)

    if not args.quiet:
        print(
            f"[scanner] ipc_impl={settings.ipc_impl} "
            f"cmd_bind={settings.cmd_bind} "
            f"event_bind={settings.event_bind} "
            f"scanner_id={settings.scanner_id} "
            f"camera={settings.camera.adapter}:{settings.camera.selector}"
        )

    app.start()

    hb_period_s = 1.0 / max(settings.heartbeat_hz, 0.1)
    next_hb = time.monotonic()
    tick_s = max(args.tick_ms, 1) / 1000.0
    deadline = time.monotonic() + args.duration if args.duration else None

    try:
        while deadline is None or time.monotonic() < deadline:
            try:
                cmd_server.poll_once(app.handle_command)
            except Exception as ex:
                if not args.quiet:
                    print(f"[scanner] handler error: {ex!r}")

            now = time.monotonic()
            if now >= next_hb:
                app.publish_state()
                next_hb = now + hb_period_s

            await asyncio.sleep(tick_s)
    finally:
        if settings.display.snapshot_dir:
            for path in app.snapshot(settings.display.snapshot_dir):
                if not args.quiet:
                    print(f"[scanner] wrote {path}")
        app.close()
        cmd_server.close()
        closer = getattr(event_pub, "close", None)
        if callable(closer):
            closer()
    if not args.quiet:
        print(f"[scanner] {app.detections} detection(s)")
    return 0


def main() -> int:
    ap = argparse.ArgumentParser(prog="livescan-scanner")
    ap.add_argument("--profile", default=None, help="Config profile under configs/profiles/.")
    ap.add_argument("--camera", choices=["auto", "rear", "front", "off"], default=None)
    ap.add_argument("--adapter", choices=["opencv", "mss"], default=None)
    ap.add_argument("--target", default=None, help="Device index, video file or stream URL.")
    ap.add_argument("--torch", action="store_true", help="Ask for the torch if the camera has one.")
    ap.add_argument("--no-track", action="store_true", help="Detect only; no tracking overlay.")
    ap.add_argument("--duration", type=float, default=0.0, help="Stop after N seconds (0 = run).")
    ap.add_argument("--snapshot-dir", default=None, help="Save surface PNGs here on exit.")
    ap.add_argument("--tick-ms", type=int, default=10, help="Loop sleep between command polls.")
    ap.add_argument("--quiet", action="store_true", help="Reduce console output.")
    args = ap.parse_args()

    settings = _apply_cli(load_scanner_settings(profile=args.profile), args)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(_run(settings, args))
    except KeyboardInterrupt:
        if not args.quiet:
            print("\n[scanner] shutting down...")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
