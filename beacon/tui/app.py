#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Main TUI application for figma-beacon.

The app is a thin shell around the session controller:
- key presses become ``Key`` events passed to ``dispatch``
- commands returned by ``dispatch`` run on worker threads via the
  CommandRunner, and their result events are dispatched back on the
  main thread
- after every transition the three Static widgets are re-rendered
"""

from typing import Optional

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Static

from beacon.debug_logger import get_logger
from beacon.models import Config, StoreError
from beacon.tui.app_state import Session, initial_session
from beacon.tui.controller import dispatch
from beacon.tui.events import Batch, Key, Quit, ScheduleTick, Tick
from beacon.tui.formatting import APP_TITLE, render_body, render_header, render_hints
from beacon.tui.runner import CommandRunner


class BeaconApp(App):
    """
    Textual application hosting the menu-driven reporting session.

    All state lives in ``self.state`` (a Session value); widgets only
    display it.
    """

    TITLE = APP_TITLE
    CSS_PATH = "styles/app.tcss"

    BINDINGS = [
        Binding("ctrl+c", "interrupt", "Quit", show=False, priority=True),
    ]

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        session: Optional[Session] = None,
    ) -> None:
        """
        Initialize the app.

        Args:
            runner: Command runner (defaults to the real gateway and stores)
            session: Initial session (defaults to one loaded from disk on mount)
        """
        super().__init__()
        self.runner = runner or CommandRunner()
        self.state: Optional[Session] = session

    def compose(self) -> ComposeResult:
        """Compose the app layout."""
        yield Static(id="header")
        yield Vertical(Static(id="body"), id="body-pane")
        yield Static(id="hints")

    def on_mount(self) -> None:
        """Load config and profiles, then show the main menu."""
        if self.state is None:
            self.state = self._load_session()
        self._render()

    def _load_session(self) -> Session:
        try:
            config = self.runner.config_store.load()
        except StoreError as e:
            get_logger().error("load_config", e)
            self.notify(str(e), severity="error")
            config = Config()
        try:
            profiles = self.runner.profile_store.list_profiles()
        except StoreError as e:
            get_logger().error("load_profiles", e)
            self.notify(str(e), severity="error")
            profiles = []
        return initial_session(config, profiles)

    def on_key(self, event) -> None:
        """Forward every key press to the controller."""
        event.prevent_default()
        event.stop()
        self.handle_event(Key(event.key, event.character))

    def action_interrupt(self) -> None:
        self.handle_event(Key("ctrl+c"))

    def handle_event(self, event: object) -> None:
        """Apply one event, re-render, and start the resulting command."""
        if self.state is None:
            return
        self.state, command = dispatch(self.state, event)
        self._render()
        if command is not None:
            self._execute(command)

    def _execute(self, command: object) -> None:
        if isinstance(command, Quit):
            self.exit()
        elif isinstance(command, Batch):
            for inner in command.commands:
                self._execute(inner)
        elif isinstance(command, ScheduleTick):
            self.set_timer(command.delay, lambda: self.handle_event(Tick(command.request_id)))
        else:
            get_logger().command_dispatched(type(command).__name__, type(self.state.screen).__name__)
            self._run_command(command)

    @work(thread=True)
    def _run_command(self, command: object) -> None:
        """Run a command off the main thread and dispatch its result back."""
        result = self.runner.run(command)
        self.call_from_thread(self.handle_event, result)

    def _render(self) -> None:
        self.query_one("#header", Static).update(render_header(self.state))
        self.query_one("#body", Static).update(render_body(self.state))
        self.query_one("#hints", Static).update(render_hints(self.state))


def run_app(runner: Optional[CommandRunner] = None) -> None:
    """
    Run the TUI application.

    Args:
        runner: Override the command runner (optional)
    """
    app = BeaconApp(runner=runner)
    app.run()


if __name__ == "__main__":
    run_app()
