"""PRP lifecycle state machine using transitions library.

A PRP moves todo -> implementing -> done. Entering implementing creates
the implementation branch; entering done moves the file into PRPs/done/.
Persistent state is the file location itself, so a fresh machine always
starts from where the file currently lives.

Usage:
    from prpkit.workflow.lifecycle import PRPLifecycle

    lifecycle = PRPLifecycle(repo, "PRPs/todo/add-auth.md")
    lifecycle.start_implementation()  # git checkout -b implement/add-auth-<ts>
    lifecycle.complete()              # mv to PRPs/done/add-auth.md
"""

import logging
import time
from pathlib import Path
from typing import Callable

from transitions import Machine

from prpkit.git.branch import create_branch
from prpkit.lib import prp as prp_files

logger = logging.getLogger(__name__)


STATES = ["todo", "implementing", "done"]

TRANSITIONS = [
    {"trigger": "start_implementation", "source": "todo", "dest": "implementing",
     "before": "_create_branch"},
    {"trigger": "complete", "source": "implementing", "dest": "done", "before": "_move_to_done"},
    {"trigger": "complete", "source": "todo", "dest": "done", "before": "_move_to_done"},
    {"trigger": "reopen", "source": "done", "dest": "todo", "before": "_move_to_todo"},
]


class LifecycleError(Exception):
    """A side effect of a lifecycle transition failed."""
    pass


class PRPLifecycle:
    """State machine for a single PRP file.

    Wraps the transitions library with PRP-specific side effects:
    - Derives the initial state from the file location
    - Creates the implementation branch on start_implementation
    - Moves the file between PRPs/todo and PRPs/done
    - Logs all transitions
    """

    def __init__(
        self,
        repo: Path,
        path: str,
        prp_dir: str = prp_files.DEFAULT_PRP_DIR,
        create_branch: bool = True,
        move_files: bool = True,
        now: float | None = None,
        on_transition: Callable[[str, str, str], None] | None = None,
    ):
        """Initialize the lifecycle for one PRP.

        Args:
            repo: Repository root
            path: Repo-relative PRP path
            prp_dir: PRP root directory inside the repo
            create_branch: Run git checkout -b when implementation starts
            move_files: Move the file on complete/reopen
            now: Timestamp for the branch name (defaults to current time)
            on_transition: Optional callback(from_state, to_state, trigger)
        """
        self.repo = repo
        self.path = path
        self.prp_dir = prp_dir
        self.name = prp_files.prp_name_from_path(path)
        self.branch_name = prp_files.make_branch_name(self.name, time.time() if now is None else now)
        self.create_branch_enabled = create_branch
        self.move_files = move_files
        self.on_transition = on_transition

        initial = "done" if prp_files.state_of(path, prp_dir) == prp_files.DONE_DIR else "todo"

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=initial,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    @classmethod
    def from_ref(cls, repo: Path, ref: prp_files.PRPRef, **kwargs) -> "PRPLifecycle":
        """Build a lifecycle that reuses the branch name already chosen for ref."""
        lifecycle = cls(repo, ref.path, **kwargs)
        lifecycle.branch_name = ref.branch_name
        return lifecycle

    def _create_branch(self, event) -> None:
        if self.create_branch_enabled:
            self.create_implementation_branch()

    def create_implementation_branch(self) -> None:
        """git checkout -b <branch_name>, independent of the current state."""
        result = create_branch(self.repo, self.branch_name)
        if not result.success:
            raise LifecycleError(
                f"Failed to create branch {self.branch_name}: {result.error}"
            )
        logger.info(f"Created branch: {self.branch_name}")

    def _move(self, state: str) -> None:
        if not self.move_files:
            return
        dest = prp_files.state_path(self.name, state, self.prp_dir)
        try:
            moved = prp_files.move_prp(self.repo, self.path, dest)
        except ValueError as e:
            raise LifecycleError(str(e)) from e
        if moved is not None:
            self.path = dest

    def _move_to_done(self, event) -> None:
        self._move(prp_files.DONE_DIR)

    def _move_to_todo(self, event) -> None:
        self._move(prp_files.TODO_DIR)

    def on_state_change(self, event) -> None:
        """Callback after any state transition."""
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        logger.info(f"[PRP] {self.name}: {from_state} -> {to_state} ({trigger})")

        if self.on_transition:
            self.on_transition(from_state, to_state, trigger)

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)

    def get_available_triggers(self) -> list[str]:
        """Get list of triggers available in current state."""
        return self.machine.get_triggers(self.state)
