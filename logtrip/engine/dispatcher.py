"""
logtrip.engine.dispatcher
=========================
Runs an action's command once its counter fires.

- `build_command(template, token)`: first `%s` replaced by the token.
- `build_argv(template, token)`: the same substitution applied after shell-style
  splitting, so the token lands in exactly one argument and never reaches a shell.
- `Dispatcher.fire(...)`: logs the fire, then runs the command on a bounded
  worker pool (or only logs it in dry-run mode).
"""

from concurrent.futures import ThreadPoolExecutor
import shlex
import subprocess

from ..agent.logging import emit_event, emit_ops

PLACEHOLDER = "%s"


def build_command(template: str, token: str) -> str:
    return template.replace(PLACEHOLDER, token, 1)


def build_argv(template: str, token: str) -> list:
    argv = shlex.split(template)
    for i, arg in enumerate(argv):
        if PLACEHOLDER in arg:
            argv[i] = arg.replace(PLACEHOLDER, token, 1)
            break
    return argv


class Dispatcher:

    def __init__(self, cfg, dry_run: bool = False, max_workers: int = 4, runner=subprocess.run):
        self.cfg = cfg
        self.dry_run = dry_run
        self._runner = runner
        self._pool = ThreadPoolExecutor(max_workers=max(1, int(max_workers)),
                                        thread_name_prefix="logtrip-dispatch")

    def fire(self, action, token: str):
        """Dispatch one fired action. Returns a Future for the exit code, or None in dry-run."""
        command = build_command(action.command, token)
        emit_ops(self.cfg, "INFO", "dispatcher", "fire",
                 {"action": action.ordinal, "pattern": action.pattern, "token": token, "command": command})
        emit_event(
            self.cfg,
            src=token,
            pattern=action.pattern,
            action=action.ordinal,
            rule_id=action.rule_id,
            severity="high",
            summary=f"{action.threshold} matches of {action.pattern} within {action.window_sec}s from {token}",
            metadata={
                "command": command,
                "threshold": action.threshold,
                "window_sec": action.window_sec,
                "dry_run": self.dry_run,
            },
        )
        if self.dry_run:
            emit_ops(self.cfg, "INFO", "dispatcher", "dry_run", {"command": command, "executed": False})
            return None
        return self._pool.submit(self._execute, command, action.command, token)

    def _execute(self, command: str, template: str, token: str):
        try:
            proc = self._runner(build_argv(template, token), check=False)
        except Exception as e:
            # one-shot: the key already fired, so a failed launch is only logged
            emit_ops(self.cfg, "ERROR", "dispatcher", "command_error", {"command": command, "error": str(e)})
            return None
        level = "INFO" if proc.returncode == 0 else "WARNING"
        emit_ops(self.cfg, level, "dispatcher", "command_exit", {"command": command, "exit_code": proc.returncode})
        return proc.returncode

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)
