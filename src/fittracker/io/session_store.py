"""
JSON-file storage for templates, scheduled instances and workout progress.

Four independent collections live as JSON documents in one data directory:

- session_templates.json   list of templates
- session_instances.json   list of scheduled instances
- workout_progress.json    flat list of (session, exercise) progress records
- active_workout.json      singleton resume record (absent when idle)

Every mutation is a synchronous read-modify-write of one whole file, held
under the store lock so a timer thread and the caller never interleave.
"""

import functools
import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Any, TypeVar

from ..core import progress as set_rules
from ..core.calendar import utc_now_iso
from ..core.config import (
    ACTIVE_WORKOUT_FILENAME,
    INSTANCES_FILENAME,
    PROGRESS_FILENAME,
    TEMPLATES_FILENAME,
)
from ..core.models import (
    ActiveWorkoutState,
    SessionInstance,
    SessionStatus,
    SessionTemplate,
    WorkoutProgress,
)
from ..core.sessions import (
    build_session_instance,
    generate_id,
    reschedule,
    stamp_template,
    transition_status,
)
from .serializers import (
    ValidationError,
    active_workout_to_dict,
    dict_to_active_workout,
    dict_to_session_instance,
    dict_to_session_template,
    dict_to_workout_progress,
    session_instance_to_dict,
    session_template_to_dict,
    workout_progress_to_dict,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreError(Exception):
    """Raised when a storage file cannot be read, decoded or written."""

    pass


class NotFoundError(LookupError):
    """Raised when a template or session id does not exist."""

    pass


def _locked(method):
    """Run a store mutation under the instance lock."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)

    return wrapper


class SessionStore:
    """
    Manages the fittracker collections stored as JSON files.

    Records that fail validation on load are skipped with a warning so one
    damaged entry does not hide the rest; a file that is not valid JSON
    raises StoreError.
    """

    def __init__(self, data_dir: str | Path, clock: Callable[[], str] = utc_now_iso):
        """
        Initialize the store.

        Args:
            data_dir: Directory holding the JSON files
            clock: Returns the current ISO 8601 timestamp
        """
        self.data_dir = Path(data_dir)
        self.templates_path = self.data_dir / TEMPLATES_FILENAME
        self.instances_path = self.data_dir / INSTANCES_FILENAME
        self.progress_path = self.data_dir / PROGRESS_FILENAME
        self.active_workout_path = self.data_dir / ACTIVE_WORKOUT_FILENAME
        self.clock = clock
        self.lock = threading.RLock()

    def init(self) -> None:
        """Create the data directory if needed."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    # -------------------------------------------------------------------
    # File primitives
    # -------------------------------------------------------------------

    def _read_json(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupt data file {path}: {e}") from e
        except OSError as e:
            raise StoreError(f"Cannot read {path}: {e}") from e

    def _write_json(self, path: Path, data: Any) -> None:
        self.init()
        tmp: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.data_dir, prefix=path.name + ".", suffix=".tmp", delete=False
            ) as f:
                tmp = f.name
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except OSError as e:
            if tmp is not None and os.path.exists(tmp):
                os.unlink(tmp)
            raise StoreError(f"Cannot write {path}: {e}") from e

    def _load_list(self, path: Path, decode: Callable[[dict], T], what: str) -> list[T]:
        raw = self._read_json(path)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise StoreError(f"{path} must contain a JSON list")

        items: list[T] = []
        for index, entry in enumerate(raw):
            try:
                items.append(decode(entry))
            except ValidationError as e:
                logger.warning("Skipping invalid %s #%d in %s: %s", what, index, path, e)
        return items

    # -------------------------------------------------------------------
    # Session templates
    # -------------------------------------------------------------------

    def load_session_templates(self) -> list[SessionTemplate]:
        """Load all templates in stored order."""
        return self._load_list(self.templates_path, dict_to_session_template, "template")

    def _write_templates(self, templates: list[SessionTemplate]) -> None:
        self._write_json(self.templates_path, [session_template_to_dict(t) for t in templates])

    @_locked
    def save_session_template(self, template: SessionTemplate) -> SessionTemplate:
        """
        Create or update a template (upsert by id).

        A template without an id is created with a fresh id and both
        timestamps set to now.  One with an id replaces the stored record of
        the same id, or is appended if none exists; ``updated_at`` is always
        refreshed.

        Returns:
            The stored template
        """
        templates = self.load_session_templates()
        stored = stamp_template(template, self.clock())

        for i, existing in enumerate(templates):
            if existing.id == stored.id:
                templates[i] = stored
                break
        else:
            templates.append(stored)

        self._write_templates(templates)
        logger.info("Session template saved: %s", stored.name)
        return stored

    @_locked
    def save_session_templates(self, new_templates: list[SessionTemplate]) -> list[SessionTemplate]:
        """Save several templates with a single write (CSV import)."""
        templates = self.load_session_templates()
        now = self.clock()
        stored = [stamp_template(t, now) for t in new_templates]
        by_id = {t.id: i for i, t in enumerate(templates)}
        for t in stored:
            if t.id in by_id:
                templates[by_id[t.id]] = t
            else:
                templates.append(t)
        self._write_templates(templates)
        logger.info("Saved %d session templates", len(stored))
        return stored

    def get_session_template(self, template_id: str) -> SessionTemplate | None:
        for t in self.load_session_templates():
            if t.id == template_id:
                return t
        return None

    def require_session_template(self, template_id: str) -> SessionTemplate:
        """
        Raises:
            NotFoundError: If no template has this id
        """
        template = self.get_session_template(template_id)
        if template is None:
            raise NotFoundError(f"Session template not found: {template_id}")
        return template

    @_locked
    def delete_session_template(self, template_id: str) -> bool:
        """
        Delete a template.  Instances scheduled from it keep their snapshot.

        Returns:
            True if a template was removed
        """
        templates = self.load_session_templates()
        kept = [t for t in templates if t.id != template_id]
        if len(kept) == len(templates):
            return False
        self._write_templates(kept)
        logger.info("Session template deleted: %s", template_id)
        return True

    # -------------------------------------------------------------------
    # Session instances
    # -------------------------------------------------------------------

    def load_session_instances(self) -> list[SessionInstance]:
        return self._load_list(self.instances_path, dict_to_session_instance, "instance")

    def _write_instances(self, instances: list[SessionInstance]) -> None:
        self._write_json(self.instances_path, [session_instance_to_dict(s) for s in instances])

    @_locked
    def save_session_instance(self, instance: SessionInstance) -> SessionInstance:
        """
        Create or replace an instance by id.

        An instance without an id gets one plus ``scheduled_at = now``.
        """
        if instance.id is None:
            instance = replace(
                instance, id=generate_id(), scheduled_at=instance.scheduled_at or self.clock()
            )

        instances = self.load_session_instances()
        for i, existing in enumerate(instances):
            if existing.id == instance.id:
                instances[i] = instance
                break
        else:
            instances.append(instance)

        self._write_instances(instances)
        logger.info("Session instance saved: %s (%s)", instance.date, instance.status)
        return instance

    def create_session_instance_from_template(
        self, template: SessionTemplate, date: str, start_time: str | None = None
    ) -> SessionInstance:
        """Schedule ``template`` on ``date`` with a frozen snapshot of it."""
        instance = build_session_instance(template, date, self.clock(), start_time)
        return self.save_session_instance(instance)

    def get_session_instance(self, instance_id: str) -> SessionInstance | None:
        for s in self.load_session_instances():
            if s.id == instance_id:
                return s
        return None

    def require_session_instance(self, instance_id: str) -> SessionInstance:
        """
        Raises:
            NotFoundError: If no instance has this id
        """
        instance = self.get_session_instance(instance_id)
        if instance is None:
            raise NotFoundError(f"Session not found: {instance_id}")
        return instance

    def get_session_instances_for_date(self, date: str) -> list[SessionInstance]:
        return [s for s in self.load_session_instances() if s.date == date]

    def get_session_instances_for_date_range(self, start_date: str, end_date: str) -> list[SessionInstance]:
        """Instances dated within [start_date, end_date], sorted by date and start time."""
        found = [s for s in self.load_session_instances() if start_date <= s.date <= end_date]
        found.sort(key=lambda s: (s.date, s.start_time or ""))
        return found

    @_locked
    def delete_session_instance(self, instance_id: str) -> bool:
        instances = self.load_session_instances()
        kept = [s for s in instances if s.id != instance_id]
        if len(kept) == len(instances):
            return False
        self._write_instances(kept)
        logger.info("Session instance deleted: %s", instance_id)
        self.release_active_workout_state(instance_id)
        return True

    @_locked
    def update_session_status(self, instance_id: str, status: SessionStatus) -> SessionInstance:
        """
        Apply a lifecycle transition to a stored instance.

        Raises:
            NotFoundError: If the instance does not exist
            InvalidTransitionError: If the move is not allowed
        """
        instance = self.require_session_instance(instance_id)
        updated = transition_status(instance, status, self.clock())
        if updated is instance:
            return instance
        return self.save_session_instance(updated)

    @_locked
    def skip_session_instance(self, instance_id: str) -> SessionInstance:
        skipped = self.update_session_status(instance_id, "skipped")
        self.release_active_workout_state(instance_id)
        return skipped

    @_locked
    def reschedule_session_instance(
        self, instance_id: str, date: str, start_time: str | None = None
    ) -> SessionInstance:
        """Move an instance to a new date; it becomes scheduled again."""
        instance = self.require_session_instance(instance_id)
        moved = self.save_session_instance(reschedule(instance, date, start_time))
        self.release_active_workout_state(instance_id)
        return moved

    @_locked
    def start_workout_session(self, instance: SessionInstance) -> ActiveWorkoutState:
        """Mark an instance in progress and write a fresh active-workout record."""
        if instance.id is None:
            raise NotFoundError("Cannot start a session instance that was never saved")
        self.update_session_status(instance.id, "in_progress")
        state = ActiveWorkoutState(session_id=instance.id, started_at=self.clock())
        self.save_active_workout_state(state)
        return state

    @_locked
    def complete_workout_session(self, instance_id: str) -> SessionInstance:
        """Mark an instance completed and clear the active-workout record."""
        instance = self.update_session_status(instance_id, "completed")
        self.clear_active_workout_state()
        logger.info("Workout session completed: %s", instance_id)
        return instance

    # -------------------------------------------------------------------
    # Workout progress
    # -------------------------------------------------------------------

    def load_all_workout_progress(self) -> list[WorkoutProgress]:
        return self._load_list(self.progress_path, dict_to_workout_progress, "progress record")

    @_locked
    def save_workout_progress(self, progress: WorkoutProgress) -> WorkoutProgress:
        """
        Upsert the record for (session_id, exercise_id).

        ``started_at`` is stamped on records that do not have it yet.
        """
        if progress.started_at is None:
            progress = replace(progress, started_at=self.clock())

        records = self.load_all_workout_progress()
        for i, existing in enumerate(records):
            if existing.session_id == progress.session_id and existing.exercise_id == progress.exercise_id:
                records[i] = progress
                break
        else:
            records.append(progress)

        self._write_json(self.progress_path, [workout_progress_to_dict(p) for p in records])
        logger.debug("Progress saved: %s/%s", progress.session_id, progress.exercise_id)
        return progress

    def get_workout_progress(self, session_id: str) -> list[WorkoutProgress]:
        return [p for p in self.load_all_workout_progress() if p.session_id == session_id]

    def get_exercise_progress(self, session_id: str, exercise_id: str) -> WorkoutProgress | None:
        for p in self.load_all_workout_progress():
            if p.session_id == session_id and p.exercise_id == exercise_id:
                return p
        return None

    @_locked
    def mark_set_completed(
        self,
        session_id: str,
        exercise_id: str,
        set_number: int,
        **values: Any,
    ) -> WorkoutProgress:
        """
        Complete one set, creating the progress record if needed.

        Keyword values (reps, weight, time_seconds, steps, rest_timer_used)
        are recorded on the set.
        """
        now = self.clock()
        progress = self.get_exercise_progress(session_id, exercise_id)
        if progress is None:
            progress = set_rules.new_workout_progress(session_id, exercise_id, now)
        updated = set_rules.mark_set_completed(progress, set_number, now, **values)
        return self.save_workout_progress(updated)

    @_locked
    def mark_exercise_completed(self, session_id: str, exercise_id: str) -> WorkoutProgress:
        """
        Stamp ``completed_at`` on an exercise's progress.

        Raises:
            NotFoundError: If no progress exists for the exercise
        """
        progress = self.get_exercise_progress(session_id, exercise_id)
        if progress is None:
            raise NotFoundError(f"Exercise progress not found: {session_id}/{exercise_id}")
        return self.save_workout_progress(replace(progress, completed_at=self.clock()))

    # -------------------------------------------------------------------
    # Active workout
    # -------------------------------------------------------------------

    @_locked
    def save_active_workout_state(self, state: ActiveWorkoutState) -> None:
        self._write_json(self.active_workout_path, active_workout_to_dict(state))
        logger.debug("Active workout state saved: %s", state.session_id)

    def load_active_workout_state(self) -> ActiveWorkoutState | None:
        """
        Load the resume record.

        An invalid record is discarded (with a warning) and None returned.
        """
        raw = self._read_json(self.active_workout_path)
        if raw is None:
            return None
        try:
            return dict_to_active_workout(raw)
        except ValidationError as e:
            logger.warning("Discarding invalid active workout record: %s", e)
            return None

    @_locked
    def clear_active_workout_state(self) -> None:
        self.active_workout_path.unlink(missing_ok=True)

    @_locked
    def release_active_workout_state(self, session_id: str) -> bool:
        """
        Clear the active-workout record if it belongs to ``session_id``.

        Called whenever an instance is skipped, moved or deleted so the
        record never points at a session that cannot be resumed.

        Returns:
            True if a record was cleared
        """
        active = self.load_active_workout_state()
        if active is None or active.session_id != session_id:
            return False
        self.clear_active_workout_state()
        logger.info("Active workout released: %s", session_id)
        return True
