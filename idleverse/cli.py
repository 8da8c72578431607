"""
Idleverse CLI - Command-line interface for the engine.

Usage:
    idleverse status                    Show the saved universe
    idleverse simulate --seconds 3600   Fast-forward an idle period
    idleverse click --count 50          Click the core
    idleverse buy <building_id>         Buy one building
    idleverse unlock <helper_id>        Unlock a helper
    idleverse prestige                  Collapse the universe for shards
    idleverse export                    Print the save code
    idleverse import <code>             Replace the save with a save code
    idleverse reset                     Delete the local save
    idleverse serve                     Run the REST API

The universe lives in the local save file (--save, or IDLEVERSE_SAVE_PATH).
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Idleverse - Idle Universe Simulation Engine",
        prog="idleverse",
    )
    parser.add_argument("--save", help="Path to the local save file")
    parser.add_argument("--seed", type=int, help="Seed for evolution and content")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("status", help="Show the saved universe")

    simulate_parser = subparsers.add_parser("simulate", help="Fast-forward an idle period")
    simulate_parser.add_argument("--seconds", type=float, default=60.0, help="Idle time to simulate")
    simulate_parser.add_argument("--step-ms", type=float, default=1000.0, help="Simulation step")
    simulate_parser.add_argument("--research", action="store_true", help="Start research first if affordable")
    simulate_parser.add_argument("--dry-run", action="store_true", help="Do not write the result back")

    click_parser = subparsers.add_parser("click", help="Click the core")
    click_parser.add_argument("--count", type=int, default=1, help="Number of clicks")

    buy_parser = subparsers.add_parser("buy", help="Buy one building")
    buy_parser.add_argument("building_id", help="Building id, e.g. b_cursor")

    unlock_parser = subparsers.add_parser("unlock", help="Unlock an automation helper")
    unlock_parser.add_argument("helper_id", help="Helper id, e.g. h_clicker")

    subparsers.add_parser("prestige", help="Collapse the universe for shards")
    subparsers.add_parser("export", help="Print the save code")

    import_parser = subparsers.add_parser("import", help="Replace the save with a save code")
    import_parser.add_argument("code", help="Save code, or @path to read it from a file")

    subparsers.add_parser("reset", help="Delete the local save")

    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "status": cmd_status,
        "simulate": cmd_simulate,
        "click": cmd_click,
        "buy": cmd_buy,
        "unlock": cmd_unlock,
        "prestige": cmd_prestige,
        "export": cmd_export,
        "import": cmd_import,
        "reset": cmd_reset,
        "serve": cmd_serve,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)
    handler(args)


def _config(args):
    from .config import EngineConfig

    config = EngineConfig.from_env()
    if args.save:
        config.save_path = Path(args.save).expanduser()
    if args.seed is not None:
        config.seed = args.seed
    return config


def _restore(args, clock=None, autosave=True):
    """Load the saved universe, exiting on a corrupt save."""
    from .persistence import SnapshotCorruptionError
    from .session import GameLoop

    config = _config(args)
    try:
        return GameLoop.restore(config, clock=clock, autosave=autosave)
    except SnapshotCorruptionError as e:
        print(f"Error: save at {config.save_path} is corrupt: {e}")
        print("Run 'idleverse reset' to start over.")
        sys.exit(1)


def _save(loop):
    if not loop.snapshot_store.save(loop.state):
        print(f"Warning: could not write {loop.snapshot_store.path}")


def _print_universe(loop):
    from .engine_core import economy

    state = loop.state
    print(f"{state.galaxy_name} [{state.theme}] - tier {state.current_tier.value}")
    print(f"  {state.resource_name}: {state.resources:,.1f}"
          f" (+{economy.total_production(state):,.1f}/s)")
    print(f"  Generated this run: {state.total_resources_generated:,.0f}"
          f"  lifetime: {state.lifetime_total_resources:,.0f}")
    print(f"  Clicks: {state.total_clicks}  click value: {economy.click_value(state):g}")
    print(f"  Shards: {state.prestige_currency:g} (x{state.prestige_multiplier:g})"
          f"  prestige now: +{economy.prestige_gain(state.total_resources_generated)}")

    print("\nBuildings:")
    for b in state.buildings:
        print(f"  {b.id:<12} {b.name:<24} x{b.count:<5} next: {economy.building_cost(b):,}")

    print("\nHelpers:")
    for h in state.helpers:
        status = ("active" if h.active else "paused") if h.unlocked else f"locked ({h.base_cost:,.0f})"
        print(f"  {h.id:<14} {h.name:<18} {status}")

    unlocked = [a for a in state.achievements if a.unlocked]
    print(f"\nAchievements: {len(unlocked)}/{len(state.achievements)}")

    if state.logs:
        print("\nRecent log:")
        for entry in state.logs[-5:]:
            print(f"  [{entry.log_type.value}] {entry.message}")


def cmd_status(args):
    """Show the saved universe."""
    loop = _restore(args)
    _print_universe(loop)


def cmd_simulate(args):
    """Fast-forward an idle period on a manual clock."""
    from .engine_core import ManualClock

    if args.seconds <= 0 or args.step_ms <= 0:
        print("Error: --seconds and --step-ms must be positive")
        sys.exit(1)

    # Start at wall time so saved helper stamps stay comparable
    clock = ManualClock(time.time() * 1000.0)
    loop = _restore(args, clock=clock, autosave=not args.dry_run)

    async def run():
        if args.research:
            if loop.begin_research():
                print(f"Research started ({loop.research.job.duration_ms / 1000:g}s)")
            else:
                print(f"Research unavailable (needs {loop.research.cost():,.0f})")
        await loop.simulate(args.seconds, args.step_ms)
        await loop.settle()
        loop.step()

    before = loop.state.total_resources_generated
    asyncio.run(run())
    gained = loop.state.total_resources_generated - before

    print(f"Simulated {args.seconds:g}s: +{gained:,.1f} {loop.state.resource_name}\n")
    _print_universe(loop)
    if not args.dry_run:
        _save(loop)


def cmd_click(args):
    """Click the core."""
    loop = _restore(args)
    for _ in range(max(0, args.count)):
        loop.click()
    print(f"{loop.state.resource_name}: {loop.state.resources:,.1f}")
    _save(loop)


def cmd_buy(args):
    """Buy one building."""
    loop = _restore(args)
    result = loop.buy(args.building_id)
    if not result.success:
        print(f"Error: {result.error}")
        sys.exit(1)
    for change in result.state_changes:
        print(change)
    _save(loop)


def cmd_unlock(args):
    """Unlock an automation helper."""
    loop = _restore(args)
    result = loop.unlock_helper(args.helper_id)
    if not result.success:
        print(f"Error: {result.error}")
        sys.exit(1)
    for change in result.state_changes:
        print(change)
    _save(loop)


def cmd_prestige(args):
    """Collapse the universe for shards."""
    loop = _restore(args)
    gain = loop.prestige_engine.potential_gain()
    if gain <= 0:
        print("Nothing to gain yet: generate at least 1,000 this run.")
        sys.exit(1)

    result = asyncio.run(loop.prestige())
    if result is None or not result.success:
        print("Prestige did not happen.")
        sys.exit(1)
    print(f"+{gain} shards. Welcome to {loop.state.theme}.")
    _save(loop)


def cmd_export(args):
    """Print the save code."""
    loop = _restore(args)
    print(loop.export_save())


def cmd_import(args):
    """Replace the local save with a save code."""
    from .persistence import SnapshotCorruptionError

    code = args.code
    if code.startswith("@"):
        try:
            code = Path(code[1:]).read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            print(f"Error: File not found: {code[1:]}")
            sys.exit(1)

    loop = _restore(args)
    try:
        loop.import_save(code)
    except SnapshotCorruptionError as e:
        print(f"Error: {e}")
        sys.exit(1)
    _save(loop)
    print(f"Imported {loop.state.galaxy_name}.")


def cmd_reset(args):
    """Delete the local save."""
    from .persistence import LocalSnapshotStore

    store = LocalSnapshotStore(_config(args).save_path)
    if store.clear():
        print(f"Removed {store.path}")
    else:
        sys.exit(1)


def cmd_serve(args):
    """Run the REST API."""
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn not installed. Install with: pip install uvicorn")
        sys.exit(1)
    uvicorn.run("idleverse.api.app:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
