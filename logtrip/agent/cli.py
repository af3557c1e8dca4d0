"""
logtrip.agent.cli
=================
Command-line entrypoint for the log watcher.

This module wires up:
- Argument parsing for subcommands: `run`, `check` and `report`
- Config loading from `config.yaml`
- SIGINT/SIGTERM handling for the monitor loop
- The counter store, reaper thread, dispatcher and monitor loop
"""

import argparse, sys

from ..engine.counters import CounterStore
from ..engine.dispatcher import Dispatcher
from ..engine.reaper import Reaper
from ..siem.report import run_report
from .config import ConfigError, build_rules, load_cfg
from .logging import emit_ops
from .monitor import Monitor
from .signals import install_stop_handlers, restore_handlers

VERSION = "1.0.0"

def _load(args):
    """Load config and apply the shared command-line overrides."""
    cfg = load_cfg(args.config)
    if getattr(args, "rules", None):
        cfg["rules_file"] = args.rules
    if getattr(args, "debug", False):
        cfg["logging"]["level"] = "DEBUG"
    return cfg

# --- Subcommand implementations ---------------------------------------------

def cmd_run(args):
    """
    Watch the configured files until SIGINT/SIGTERM.
    - `--test` runs every trigger but only logs the commands
    - `--full` reads each file from the start instead of tailing it
    - Always writes a shutdown line to the ops log
    """
    cfg = _load(args)
    dispatch = cfg["dispatch"]
    timing = cfg["timing"]
    dry_run = bool(args.test or dispatch.get("dry_run"))
    tail_mode = not args.full

    emit_ops(cfg, "INFO", "runner", "start",
             {"version": VERSION, "dry_run": dry_run, "tail_mode": tail_mode, "config": args.config})

    rules = build_rules(cfg, tail_mode=tail_mode)
    if not rules.patterns:
        emit_ops(cfg, "ERROR", "runner", "no_patterns", {"actions": len(rules.actions)})
        emit_ops(cfg, "INFO", "runner", "shutdown", {"reason": "no_patterns"})
        return 1

    store = CounterStore(forget_fired_after=float(dispatch.get("forget_fired_after_sec", 0)))
    dispatcher = Dispatcher(cfg, dry_run=dry_run, max_workers=dispatch.get("max_workers", 4))
    reaper = Reaper(cfg, store,
                    initial_delay=timing["reaper_initial_delay_sec"],
                    min_delay=timing.get("reaper_min_delay_sec", 1))
    monitor = Monitor(cfg, rules, store, dispatcher)
    stop = install_stop_handlers()

    emit_ops(cfg, "INFO", "runner", "reaper_start", {"initial_delay_sec": reaper.initial_delay})
    reaper.start()
    emit_ops(cfg, "INFO", "runner", "monitor_start",
             {"patterns": monitor.active_patterns(), "actions": len(rules.actions),
              "pause_sec": monitor.pause})
    rc = 0
    reason = "max_ticks"
    try:
        monitor.run(stop, max_ticks=args.max_ticks)
        if stop["flag"]:
            reason = "signal"
    except Exception as e:
        # Anything escaping a tick is fatal; restarting is the supervisor's job.
        emit_ops(cfg, "ERROR", "runner", "fatal", {"error": repr(e)})
        reason = "fatal"
        rc = 1
    finally:
        reaper.stop()
        dispatcher.shutdown(wait=True)
        monitor.close()
        restore_handlers()
        emit_ops(cfg, "INFO", "runner", "shutdown", {"reason": reason, "counters_held": len(store)})
    return rc

def cmd_check(args):
    """Load and validate the rules, print what would run, exit 1 if nothing is usable."""
    cfg = _load(args)
    rules = build_rules(cfg, tail_mode=True)
    bound = 0
    for p in rules.patterns:
        print(p)
        for a in rules.actions_for(p.name):
            print(f"  {a}")
            bound += 1
        p.tailer.close()
    print(f"{len(rules.patterns)} pattern(s), {len(rules.actions)} action(s), {bound} bound")
    return 0 if rules.patterns and bound else 1

def cmd_report(args):
    cfg = _load(args)
    run_report(cfg, timeline=args.timeline, top=args.top, stats=args.rule_stats)
    return 0

def main(argv=None):
    """
    CLI definition.
    """
    p = argparse.ArgumentParser(prog="logtrip")
    sub = p.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default="config.yaml", help="Path to YAML config")
    common.add_argument("--debug", action="store_true", help="Log every line checked")

    rules = argparse.ArgumentParser(add_help=False)
    rules.add_argument("--rules", help="Classic pattern/action rules file (adds to config.yaml)")

    p_run = sub.add_parser("run", parents=[common, rules], help="Watch log files and fire actions")
    p_run.add_argument("--test", action="store_true", help="Log commands instead of running them")
    p_run.add_argument("--full", action="store_true", help="Process whole files first instead of tailing")
    p_run.add_argument("--max-ticks", type=int, default=None, help="Stop after N sweeps (smoke tests)")
    p_run.set_defaults(func=cmd_run)

    p_check = sub.add_parser("check", parents=[common, rules], help="Validate rules and exit")
    p_check.set_defaults(func=cmd_check)

    p_report = sub.add_parser("report", parents=[common], help="Summarise recorded fires")
    p_report.add_argument("--timeline", action="store_true")
    p_report.add_argument("--top", action="store_true")
    p_report.add_argument("--rule-stats", action="store_true")
    p_report.set_defaults(func=cmd_report)

    args = p.parse_args(argv)
    try:
        return args.func(args)
    except ConfigError as e:
        print(f"logtrip: {e}", file=sys.stderr)
        return 2

if __name__ == "__main__":
    sys.exit(main())
