"""
Synology Update Checker - Installation Controller
Interactive select / confirm / install loop over the downloaded packages.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from resolver.models import DownloadTask, RunningState, TaskStatus

logger = logging.getLogger(__name__)

QUIT_REPLIES = {"q", "quit"}
YES_REPLIES = {"y", "yes"}


class ControllerState(Enum):
    IDLE = "idle"
    PRESENTING = "presenting"
    AWAITING_SELECTION = "awaiting_selection"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    INSTALLING = "installing"
    COMPLETED = "completed"


class Event(Enum):
    QUIT = "quit"
    ALL = "all"
    INDEX = "index"
    YES = "yes"
    NO = "no"
    INVALID = "invalid"


@dataclass
class TaskOutcome:
    """What happened to one task once it left the pending set."""
    task: DownloadTask
    installed: bool
    error_code: Optional[int] = None
    message: Optional[str] = None
    restarted: Optional[bool] = None
    start_error_code: Optional[int] = None


class InstallationController:
    """
    State machine driving the interactive installation.

    The controller never reads a terminal itself: feed() takes one reply
    and run() loops over an injected prompt callable, so every transition
    can be exercised in tests.
    """

    def __init__(
        self,
        tasks: list[DownloadTask],
        package_manager,
        dry_run: bool = False,
        echo: Callable[[str], None] = print,
        prompt: Callable[[str], str] = input,
    ):
        self.pending: list[DownloadTask] = list(tasks)
        self.package_manager = package_manager
        self.dry_run = dry_run
        self.echo = echo
        self.prompt = prompt
        self.state = ControllerState.IDLE
        self.outcomes: list[TaskOutcome] = []
        self._selection: list[DownloadTask] = []
        self._batch = False

        self._transitions = {
            (ControllerState.AWAITING_SELECTION, Event.QUIT): self._quit,
            (ControllerState.AWAITING_SELECTION, Event.ALL): self._select_all,
            (ControllerState.AWAITING_SELECTION, Event.INDEX): self._select_one,
            (ControllerState.AWAITING_SELECTION, Event.INVALID): self._reject,
            (ControllerState.AWAITING_CONFIRMATION, Event.QUIT): self._quit,
            (ControllerState.AWAITING_CONFIRMATION, Event.YES): self._confirm,
            (ControllerState.AWAITING_CONFIRMATION, Event.NO): self._decline,
        }

    @property
    def completed(self) -> bool:
        return self.state is ControllerState.COMPLETED

    def start(self) -> ControllerState:
        if self.state is ControllerState.IDLE:
            self._present()
        return self.state

    def classify(self, reply: Optional[str]) -> tuple[Event, Optional[int]]:
        """Turn raw input into an event for the current state."""
        text = (reply or "").strip().lower()
        if text in QUIT_REPLIES:
            return Event.QUIT, None

        if self.state is ControllerState.AWAITING_CONFIRMATION:
            return (Event.YES, None) if text in YES_REPLIES else (Event.NO, None)

        if text == "all":
            return Event.ALL, None
        if text.isdigit():
            index = int(text)
            if 1 <= index <= len(self.pending):
                return Event.INDEX, index
            if index == len(self.pending) + 1:
                return Event.ALL, None
        return Event.INVALID, None

    def feed(self, reply: Optional[str]) -> ControllerState:
        """Apply one user reply and return the resulting state."""
        if self.state is ControllerState.IDLE:
            self.start()
        if self.completed:
            return self.state

        event, index = self.classify(reply)
        handler = self._transitions.get((self.state, event))
        if handler is None:
            logger.debug(f"Ignoring {event.name} in state {self.state.name}")
            return self.state
        handler(index)
        return self.state

    def run(self) -> list[TaskOutcome]:
        """Prompt until every task is handled or the user quits."""
        self.start()
        while not self.completed:
            try:
                reply = self.prompt(self._prompt_text())
            except (EOFError, KeyboardInterrupt):
                self.echo("")
                reply = "q"
            self.feed(reply)
        return self.outcomes

    def _prompt_text(self) -> str:
        if self.state is ControllerState.AWAITING_CONFIRMATION:
            if self._batch:
                return "Are you sure you want to update ALL packages? (y/n): "
            return "Are you sure you want to update this package? (y/n): "
        return "Select the operation (or 'q' to quit): "

    def _present(self, _=None) -> None:
        if not self.pending:
            self._finish("All packages processed. Exiting.")
            return
        self.state = ControllerState.PRESENTING
        self.echo("")
        for number, task in enumerate(self.pending, start=1):
            self.echo(f"{number}) {task.item_name} ({task.version})")
        self.echo(f"{len(self.pending) + 1}) all")
        self.state = ControllerState.AWAITING_SELECTION

    def _finish(self, message: Optional[str] = None) -> None:
        if message:
            self.echo("")
            self.echo("================================")
            self.echo(message)
        self._selection = []
        self.state = ControllerState.COMPLETED

    def _quit(self, _=None) -> None:
        for task in self.pending:
            task.status = TaskStatus.CANCELLED
        logger.info(f"Quit with {len(self.pending)} package(s) not installed")
        self._finish()

    def _reject(self, _=None) -> None:
        self.echo("==> Wrong input, please retry...")
        self._present()

    def _select_one(self, index: int) -> None:
        task = self.pending[index - 1]
        self._selection = [task]
        self._batch = False
        self.echo(f"You selected to update package: {task.item_name}")
        self.state = ControllerState.AWAITING_CONFIRMATION

    def _select_all(self, _=None) -> None:
        self._selection = list(self.pending)
        self._batch = True
        self.echo("You selected to update all packages.")
        self.state = ControllerState.AWAITING_CONFIRMATION

    def _decline(self, _=None) -> None:
        if self._batch:
            self.echo("Installation of all packages cancelled by user.")
        else:
            self.echo("Installation cancelled by user.")
            self.echo("Starting over selection.")
        self._selection = []
        self._present()

    def _confirm(self, _=None) -> None:
        self.state = ControllerState.INSTALLING
        for task in self._selection:
            self.outcomes.append(self.install(task))
            self.pending.remove(task)

        if self._batch:
            self._finish("All packages processed. Exiting.")
        else:
            self._selection = []
            self._present()

    def install(self, task: DownloadTask) -> TaskOutcome:
        """Install one task; failures are recorded, never raised."""
        self.echo("")
        self.echo(f"Package to update: {task.item_name}")

        if self.dry_run:
            self.echo(f"Dry run mode: Skipping installation of {task.filename}")
            task.status = TaskStatus.CANCELLED
            return TaskOutcome(task=task, installed=False, message="dry run")

        if not task.destination_path.is_file():
            message = f"File {task.destination_path} does not exist."
            self.echo(f"Error: {message}")
            task.status = TaskStatus.FAILED
            task.error_message = message
            return TaskOutcome(task=task, installed=False, message=message)

        try:
            return self._install(task)
        except Exception as e:
            message = f"Installation error: {e}"
            self.echo(f"Error: {message}")
            task.status = TaskStatus.FAILED
            task.error_message = message
            logger.error(f"Failed to install {task.item_name}: {e}")
            return TaskOutcome(task=task, installed=False, message=message)

    def _install(self, task: DownloadTask) -> TaskOutcome:
        pm = self.package_manager
        previous = pm.status(task.item_name)
        self.echo(f"Installing package from file: {task.destination_path}")
        result = pm.install(task.destination_path)

        if not result.success:
            self.echo(f"Installation failed (error code: {result.error_code})")
            task.status = TaskStatus.FAILED
            task.error_message = result.error_message or f"error code {result.error_code}"
            logger.error(f"Failed to install {task.item_name}: {task.error_message}")
            return TaskOutcome(task=task, installed=False, error_code=result.error_code,
                               message=result.error_message)

        self.echo(f"Installation successful (error code: {result.error_code or 0})")
        task.status = TaskStatus.INSTALLED
        logger.info(f"Installed {task.item_name} {task.version}")
        outcome = TaskOutcome(task=task, installed=True, error_code=result.error_code)

        try:
            self._restart_if_stopped(task, previous, outcome)
        except Exception as e:
            self.echo(f"Start failed: {e}")
            outcome.restarted = False
            logger.warning(f"Failed to start {task.item_name}: {e}")
        return outcome

    def _restart_if_stopped(self, task: DownloadTask, previous: RunningState,
                            outcome: TaskOutcome) -> None:
        """Start the package again when the update stopped a running service."""
        if previous is not RunningState.RUNNING:
            self.echo("Application was not running before the update. Not starting.")
            return

        current = self.package_manager.status(task.item_name)
        logger.debug(f"{task.item_name}: status before {previous.value}, after {current.value}")
        if current is RunningState.RUNNING:
            self.echo("Application was running before and is already running after update. Not starting.")
            return

        self.echo(f"Starting application: {task.item_name}")
        started = self.package_manager.start(task.item_name)
        outcome.restarted = started.success
        outcome.start_error_code = started.error_code
        if started.success:
            self.echo(f"Start successful (error code: {started.error_code or 0})")
        else:
            self.echo(f"Start failed (error code: {started.error_code})")
            logger.warning(f"Failed to start {task.item_name}: error code {started.error_code}")
