"""Open one file against its configured language server and print diagnostics.

Usage: python -m texteditor <file> [--wait-ms N] [--log-traffic]
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from texteditor.lsp.event_loop import LspEventLoop
from texteditor.lsp.scheduler import monotonic_ms
from texteditor.lsp.workspace import LspWorkspace
from texteditor.settings_store import load_editor_settings

DEFAULT_WAIT_MS = 3000
_USAGE = "usage: python -m texteditor <file> [--wait-ms N] [--log-traffic]"


def _split_cli_args(argv: list[str]) -> tuple[str, int, bool] | None:
    file_arg = ""
    wait_ms = DEFAULT_WAIT_MS
    log_traffic = False
    index = 0
    while index < len(argv):
        arg = argv[index]
        if arg == "--log-traffic":
            log_traffic = True
        elif arg == "--wait-ms":
            index += 1
            if index >= len(argv):
                return None
            try:
                wait_ms = max(0, int(argv[index]))
            except ValueError:
                return None
        elif arg.startswith("-") or file_arg:
            return None
        else:
            file_arg = arg
        index += 1
    if not file_arg:
        return None
    return file_arg, wait_ms, log_traffic


def main(argv: list[str] | None = None) -> int:
    parsed = _split_cli_args(list(sys.argv[1:] if argv is None else argv))
    if parsed is None:
        print(_USAGE, file=sys.stderr)
        return 2
    file_arg, wait_ms, log_traffic = parsed

    logging.basicConfig(level=logging.DEBUG if log_traffic else logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    path = Path(file_arg).expanduser()
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        print(f"cannot read {path}: {exc}", file=sys.stderr)
        return 1

    workspace = LspWorkspace(load_editor_settings(), workspace_root=str(path.resolve().parent))
    workspace.session.set_log_traffic(log_traffic)
    workspace.statusMessage.connect(lambda message: print(f"[status] {message}", file=sys.stderr))

    received: list[tuple[str, list]] = []
    workspace.diagnosticsUpdated.connect(lambda file_path, items: received.append((file_path, list(items))))

    if not workspace.attach_editor(editor_id="cli", file_path=str(path), source_text=text):
        print(f"no language server available for {path}", file=sys.stderr)
        workspace.shutdown()
        return 1

    loop = LspEventLoop(workspace.session)
    deadline = monotonic_ms() + wait_ms
    while workspace.session.is_running():
        remaining = deadline - monotonic_ms()
        if remaining <= 0:
            break
        loop.run_once(min(remaining, 50))

    for file_path, items in received:
        print(f"{file_path}: {len(items)} diagnostic(s)")
        for diag in items:
            print(f"  {diag.line + 1}:{diag.col + 1} {diag.severity.name.lower()}: {diag.message}")

    workspace.shutdown()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
