#!/usr/bin/env python3
"""
main.py – JVM probe CLI
=======================
Entry point: describe a Java home (or the current one) and report which
security manager flags, plus any extra flags, it accepts.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console
from rich.table import Table

import launcher_messages
from jvm import Jvm, is_package_available
from launcher_messages import LauncherError
from settings import Settings, load_settings

logger = logging.getLogger("jvm_probe")


# ──────────────────────────────────────────────
#  Logging
# ──────────────────────────────────────────────

def setup_logging(settings: Settings) -> None:
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_dir / "launcher.log", encoding="utf-8"),
            logging.StreamHandler(sys.stderr),
        ],
        force=True,
    )


# ──────────────────────────────────────────────
#  CLI
# ──────────────────────────────────────────────

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Describe a Java home and the launcher flags it accepts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("--config", default="config.json", help="Path to config.json")
    p.add_argument("--java-home", default=None, help="Java home to probe (default: current)")
    p.add_argument(
        "--check-flag", action="append", default=[], metavar="FLAG",
        help="Extra JVM flag to test with '<java> FLAG -version' (repeatable)",
    )
    p.add_argument("--locale", default=None, help="Message locale (en, zh-CN)")
    p.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    return p.parse_args(argv)


def _render_table(console: Console, jvm: Jvm, flags: Dict[str, bool]) -> None:
    t = Table(title="JVM")
    t.add_column("Property", style="cyan")
    t.add_column("Value", style="white")
    t.add_row("Path", str(jvm.path) if jvm.path else "(not found)")
    t.add_row("Command", jvm.command)
    t.add_row("Security manager", _yes_no(jvm.security_manager_supported))
    t.add_row("Enhanced security manager", _yes_no(jvm.enhanced_security_manager_available))
    for flag, accepted in flags.items():
        t.add_row(flag, _yes_no(accepted))
    console.print(t)


def _yes_no(value: bool) -> str:
    return "[green]yes[/]" if value else "[red]no[/]"


# ──────────────────────────────────────────────
#  Entry Point
# ──────────────────────────────────────────────

def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = load_settings(args.config)
    setup_logging(settings)
    launcher_messages.set_locale(args.locale or settings.locale)

    console = Console()
    java_home = args.java_home or settings.java_home
    try:
        jvm = Jvm.of(java_home, timeout=settings.probe_timeout)
    except LauncherError as exc:
        logger.error("Invalid Java home (%s): %s", exc.kind, exc)
        console.print(exc.message, style="bold red", markup=False, soft_wrap=True)
        return 2

    flags = {
        flag: is_package_available(jvm.path, flag, settings.probe_timeout)
        for flag in args.check_flag
    }

    if args.json:
        data = jvm.to_dict()
        data["flags"] = flags
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        _render_table(console, jvm, flags)
    return 0


if __name__ == "__main__":
    sys.exit(main())
