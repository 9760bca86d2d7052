from __future__ import annotations

import argparse
import logging
import time

from shared.config.loader import load_monitor_settings
from shared.contracts.v1.commands import ScanCommand

from apps.monitor.compose import build_ipc


def main() -> int:
    ap = argparse.ArgumentParser(prog="livescan-monitor")
    ap.add_argument("--profile", default=None, help="Config profile under configs/profiles/.")
    ap.add_argument(
        "--send",
        nargs="+",
        metavar="ARG",
        help="SCANNER COMMAND [ARG]: send one command and exit (e.g. scan1 CAMERA front).",
    )
    ap.add_argument("--watch", action="store_true", help="Print scanner events until Ctrl+C.")
    ap.add_argument("--quiet", action="store_true", help="Reduce console output.")
    ap.add_argument(
        "--connect-wait-ms", type=int, default=100, help="PUB/SUB settle time before first recv."
    )
    ap.add_argument(
        "--topics",
        default="",
        help="Comma-separated list of topic filters (e.g., init,detect,state).",
    )
    ap.add_argument("--tui", action="store_true", help="Run the Textual TUI.")
    args = ap.parse_args()
    topics = {t.strip() for t in args.topics.split(",") if t.strip()} if args.topics else set()

    if args.tui:
        from apps.monitor.tui import MonitorTUI

        MonitorTUI(load_monitor_settings(profile=args.profile)).run()
        return 0

    settings = load_monitor_settings(profile=args.profile)
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.WARNING))
    cmd_port, event_sub = build_ipc(settings, topics)

    if not args.quiet:
        print(
            f"[monitor] ipc_impl={settings.ipc_impl} "
            f"scanners_cmd={settings.scanners_cmd} "
            f"event_subs={settings.event_subs}"
        )

    time.sleep(max(args.connect_wait_ms, 0) / 1000.0)

    if args.send:
        if len(args.send) < 2:
            ap.error("--send needs SCANNER COMMAND [ARG]")
        scanner, verb = args.send[0], args.send[1].upper()
        arg = args.send[2] if len(args.send) > 2 else None
        ep = settings.scanners_cmd.get(scanner)
        if not ep:
            print(
                f"[monitor] unknown scanner '{scanner}'. "
                f"Known: {sorted(settings.scanners_cmd.keys())}"
            )
            return 2
        try:
            cmd = ScanCommand(type=verb, arg=arg)  # type: ignore[arg-type]
        except ValueError as ex:
            print(f"[monitor] bad command {verb!r}: {ex}")
            return 2
        resp = cmd_port.send(ep, cmd)
        if not args.quiet:
            print(f"[monitor] {verb}->{scanner} @ {ep} :: {resp}")
        else:
            print(resp)
        if not args.watch:
            return 0 if resp.get("ok") else 1

    if args.watch:
        try:
            while True:
                msg = event_sub.recv(timeout_ms=250)
                if not msg:
                    continue
                print(f"[monitor] EVENT <- {msg}")
        except KeyboardInterrupt:
            if not args.quiet:
                print("\n[monitor] exiting.")
            return 0

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
