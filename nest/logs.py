"""
Execution log entries (`logs: txt <path>` / `logs: json <path>`).

txt entries

    [2024-05-01T10:00:00+00:00] Command: build web
      Args: target=x86, verbose=true
      Status: FAILED
      Error: exit code 2

json entries are one object per line:
{"timestamp", "command", "args", "success", "error"}.

write() appends one entry, creating parent directories; callers turn OSError
into a warning so logging never changes a command's outcome.
"""
import json
from datetime import datetime, timezone
from pathlib import Path


def entry(format, /, *, path, args, success, error=None, timestamp=None):
    """render one log entry (text ends with a blank line, json with a newline)."""
    timestamp = (timestamp or datetime.now(timezone.utc)).isoformat()
    if format == "json":
        return json.dumps({
            "timestamp": timestamp,
            "command": " ".join(path),
            "args": dict(args),
            "success": success,
            "error": error,
        }) + "\n"

    lines = ["[%s] Command: %s" % (timestamp, " ".join(path))]
    if args:
        lines.append("  Args: %s" % ", ".join("%s=%s" % item for item in args.items()))
    lines.append("  Status: %s" % ("SUCCESS" if success else "FAILED"))
    if error:
        lines.append("  Error: %s" % error)
    return "\n".join(lines) + "\n\n"


def write(target, format, /, **fields):
    """append an entry to target."""
    target = Path(target).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as stream:
        stream.write(entry(format, **fields))


__all__ = (
    "entry",
    "write",
)
