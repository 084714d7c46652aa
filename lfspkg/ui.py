# lfspkg/ui.py
"""
Terminal output for lfspkg: status lines and the download spinner.

Uses rich for output; colour and animation are switched off through the
config (logging.color / ui.spinner) or the --no-color / --no-spinner flags.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, List, Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.text import Text

from lfspkg.config import Config

POLL_INTERVAL = 0.1


class UI:
    def __init__(self, color: bool = True, spinner: bool = True, file=None, err_file=None):
        self.color = color
        self.spinner = spinner
        self.out = Console(file=file, no_color=not color, highlight=False, soft_wrap=True)
        self.err = Console(file=err_file, stderr=err_file is None, no_color=not color, highlight=False, soft_wrap=True)

    @classmethod
    def from_config(cls, config: Config) -> "UI":
        return cls(color=config.color, spinner=config.spinner)

    # -----------------------
    # Small pretty helpers
    # -----------------------
    def msg(self, text: str):
        self.out.print(Text.assemble(("==> ", "bold blue"), text))

    def ok(self, text: str):
        self.out.print(Text.assemble(("✔ ", "bold green"), text))

    def warn(self, text: str):
        self.err.print(Text.assemble(("! ", "bold yellow"), text))

    def error(self, text: str):
        self.err.print(Text.assemble(("✘ ", "bold red"), text))

    def line(self, text: str):
        self.out.print(Text(text))

    # -----------------------
    # Spinner / run wrapper
    # -----------------------
    def run_with_spinner(self, func: Callable[..., Any], args: Optional[List[Any]] = None,
                         kwargs: Optional[Dict[str, Any]] = None, text: str = "working") -> Any:
        """
        Run func in a worker thread while a spinner animates. The worker is always
        joined before returning; its exception, if any, is re-raised here.
        """
        args = args or []
        kwargs = kwargs or {}
        result: Dict[str, Any] = {"result": None, "exception": None}

        def target():
            try:
                result["result"] = func(*args, **kwargs)
            except BaseException as e:  # re-raised in the calling thread
                result["exception"] = e

        th = threading.Thread(target=target, name="lfspkg-worker", daemon=True)
        th.start()
        if self.spinner:
            with Progress(SpinnerColumn(), TextColumn("{task.description}"), TimeElapsedColumn(),
                          console=self.err, transient=True) as prog:
                prog.add_task(description=text, total=None)
                while th.is_alive():
                    time.sleep(POLL_INTERVAL)
        th.join()
        if result["exception"] is not None:
            raise result["exception"]
        return result["result"]
