#!/usr/bin/env python3
"""
Verification Map - Demo Entry Point

═══════════════════════════════════════════════════════════════════════════════
ARCHITECTURAL OVERVIEW
═══════════════════════════════════════════════════════════════════════════════

Responsibility: Act as a minimal host for the compositor. Builds a compositor
on an asyncio loop with the deck.gl backend, optionally plays the time series
for a while, then writes a standalone HTML snapshot of the scene.

Usage:
    python -m Verification_Map.main
    python -m Verification_Map.main --zones zones.geojson --play-seconds 6

Output:
    Output/verification_map.html (default)

For Navigation: Use VS Code outline (Ctrl+Shift+O)

═══════════════════════════════════════════════════════════════════════════════
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from Verification_Map.backends import DeckGLBackend
from Verification_Map.compositor import LayerCompositor
from Verification_Map.config_types import get_map_config
from Verification_Map.geojson_loader import (
    boundary_from_geodataframe,
    load_vector_file,
    zones_from_geodataframe,
)
from Verification_Map.scheduling import AsyncioScheduler

# Fix Windows console encoding for emoji support
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")


# ═══════════════════════════════════════════════════════════════════════════════
# 📋 LOGGING SETUP
# ═══════════════════════════════════════════════════════════════════════════════


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure console logging for the package logger.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("Verification_Map")
    logger.setLevel(level)
    logger.handlers.clear()

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(ch)

    return logger


# ═══════════════════════════════════════════════════════════════════════════════
# 🚀 MAIN
# ═══════════════════════════════════════════════════════════════════════════════


async def run_demo(
    output_path: str,
    zones_path: Optional[str] = None,
    boundary_path: Optional[str] = None,
    play_seconds: float = 0.0,
    enable_3d: bool = False,
) -> str:
    """Build a compositor, exercise it, and export the scene.

    Returns:
        Absolute path of the written HTML file
    """
    logger = logging.getLogger("Verification_Map")
    config = get_map_config()

    kwargs: Dict[str, Any] = {}
    if zones_path:
        kwargs["zones"] = zones_from_geodataframe(load_vector_file(zones_path))
    if boundary_path:
        kwargs["boundary"] = boundary_from_geodataframe(
            load_vector_file(boundary_path), default_name=config.boundary.name
        )

    backend = DeckGLBackend(config)
    with LayerCompositor(
        backend,
        surface="deckgl-container",
        scheduler=AsyncioScheduler(asyncio.get_running_loop()),
        config=config,
        **kwargs,
    ) as compositor:
        if enable_3d:
            compositor.toggle_3d()
            await asyncio.sleep(config.camera.transition_s + 0.1)

        if play_seconds > 0:
            compositor.play()
            await asyncio.sleep(play_seconds)
            compositor.pause()

        frame = compositor.current_frame
        summary = compositor.analysis_summary()
        logger.info("=" * 60)
        logger.info(f"🌍 Project: {compositor.project_id}")
        logger.info(f"   🟢 Healthy areas: {summary.healthy_count}")
        logger.info(f"   🔴 Concern areas: {summary.concern_count}")
        logger.info(f"   📊 Mean confidence: {summary.mean_confidence_pct}%")
        logger.info(f"   ⏱️ Frame: {frame.date} - {frame.description}")
        logger.info(f"   🏷️ Badges: {', '.join(compositor.status_badges())}")
        logger.info("=" * 60)

        return backend.write_html(output_path, title=f"Verification Map - {compositor.project_id}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Render a verification map snapshot")
    parser.add_argument("--output", default="Output/verification_map.html")
    parser.add_argument("--zones", help="Vector file with analysis zones")
    parser.add_argument("--boundary", help="Vector file with the project boundary")
    parser.add_argument("--play-seconds", type=float, default=0.0)
    parser.add_argument("--3d", dest="enable_3d", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logger = setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    html_path = asyncio.run(
        run_demo(
            output_path=args.output,
            zones_path=args.zones,
            boundary_path=args.boundary,
            play_seconds=args.play_seconds,
            enable_3d=args.enable_3d,
        )
    )
    logger.info(f"📄 Output: {html_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
