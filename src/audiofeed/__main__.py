"""AudioFeed - package entry point.

    python -m audiofeed [--config PATH] [--host HOST] [--port PORT] [--verbose]

Resolves configuration, prepares the library and covers directories, then
serves the feed through the web_server plugin.
"""

from __future__ import annotations

import argparse
import importlib.util
import os
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

from audiofeed.core import (
    AudioFeedError,
    ConfigResolver,
    FeedSettings,
    apply_logging_level,
    get_logger,
    set_colors,
)


def _find_plugins_dir() -> Path:
    """Find the repository plugins directory.

    Preference order:
    1) AUDIOFEED_PLUGINS_DIR
    2) Search from current working directory upwards.
    3) Search from this file's location upwards (editable installs).
    """
    env_dir = os.environ.get("AUDIOFEED_PLUGINS_DIR")
    if env_dir:
        return Path(env_dir)

    def _search_up(start: Path) -> Path | None:
        p = start.resolve()
        for _ in range(8):
            cand = p / "plugins"
            if (cand / "web_server" / "plugin.py").exists():
                return cand
            if p.parent == p:
                break
            p = p.parent
        return None

    return _search_up(Path.cwd()) or _search_up(Path(__file__)) or Path.cwd() / "plugins"


def _load_web_server_module(plugins_dir: Path) -> ModuleType:
    """Load plugins/web_server/plugin.py under a unique module name."""
    if str(plugins_dir.parent) not in sys.path:
        sys.path.insert(0, str(plugins_dir.parent))
    plugin_py = plugins_dir / "web_server" / "plugin.py"
    spec = importlib.util.spec_from_file_location("plugins.web_server.plugin", plugin_py)
    if spec is None or spec.loader is None:
        raise ImportError(f"Failed to load spec for {plugin_py}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="audiofeed", description="Serve a folder of audio files as a podcast feed")
    p.add_argument("--config", type=Path, help="YAML config file (replaces the user config)")
    p.add_argument("--host", help="Bind address")
    p.add_argument("--port", type=int, help="Bind port")
    p.add_argument("--tracks-dir", help="Library directory")
    p.add_argument("--verbose", action="store_true", help="Verbose logging")
    return p.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.host:
        overrides["server.host"] = args.host
    if args.port:
        overrides["server.port"] = args.port
    if args.tracks_dir:
        overrides["paths.tracks_dir"] = args.tracks_dir
    if args.verbose:
        overrides["logging.level"] = "verbose"
    return overrides


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = _parse_args(argv)
    logger = get_logger("audiofeed")

    try:
        resolver = ConfigResolver(cli_args=_cli_overrides(args), user_config_path=args.config)
        settings = FeedSettings.from_resolver(resolver)
        apply_logging_level(settings.logging_level)
        set_colors(settings.log_colors)

        for directory in (settings.tracks_dir, settings.covers_cache_dir):
            directory.mkdir(parents=True, exist_ok=True)
            logger.verbose(f"Directory ready: {directory}")
    except (AudioFeedError, OSError) as e:
        logger.error(str(e))
        return 1

    try:
        module = _load_web_server_module(_find_plugins_dir())
    except (ImportError, OSError) as e:
        logger.error(f"Failed to load web_server plugin: {e}")
        return 1

    logger.info(f"Serving {settings.tracks_dir} on http://{settings.host}:{settings.port}")
    logger.info(f"Feed: {settings.base_url or '[auto-detected on first request]'}/rss.xml")
    try:
        module.WebServerPlugin(settings).run()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
