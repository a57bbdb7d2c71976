"""Persistence backends.

Two interchangeable backends expose the same three stores (materials,
completed-task keys, settings):

* ``local``: a JSON key-value file standing in for browser local storage.
* ``sqlite``: a relational store, see ``study_scheduler.db``.

Writes never raise; they log the failure and return a ``StorageResult``
whose ``ErrorState`` carries a user-facing message. Reads log and fall back
to an empty value. Writes load existing data through ``_read``/``_fetch``,
which raise, so data that fails to load is never overwritten.
"""
import json
import logging
import sqlite3
from dataclasses import dataclass, fields, replace
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from study_scheduler.config import Settings
from study_scheduler.db import MATERIAL_COLUMNS, get_connection, init_db
from study_scheduler.models import (
    MATERIAL_TYPES, ErrorState, LearningMaterial, ReminderSetting, StorageResult,
    completion_key, material_from_dict, material_to_dict, to_date,
)

log = logging.getLogger(__name__)

MATERIALS_KEY = "learning-scheduler-materials"
SETTINGS_KEY = "learning-scheduler-settings"
COMPLETED_TASKS_KEY = "learning-scheduler-completed-tasks"

SAVE_FAILED = "Something went wrong while saving your data. Please try again."
NOT_FOUND = "Learning material not found."
DUPLICATE_ID = "A learning material with this id already exists."

STORAGE_ERRORS = (OSError, ValueError, TypeError, KeyError, sqlite3.Error)


def handle_storage_error(error: Exception) -> ErrorState:
    log.error("Storage error: %s", error, exc_info=True)
    return ErrorState(has_error=True, message=SAVE_FAILED, type="storage")


def failure(message: str, kind: str = "storage") -> StorageResult:
    return StorageResult(success=False, error=ErrorState(has_error=True, message=message, type=kind))


OK = StorageResult(success=True)


def _timestamp() -> str:
    return datetime.now().isoformat(timespec="seconds")


def apply_updates(material: LearningMaterial, updates: dict) -> LearningMaterial:
    """Merge partial fields into a copy of ``material``.

    ``updated_at`` is refreshed unless the caller supplies one.

    Raises KeyError for fields the material doesn't have; ids are immutable.
    """
    allowed = {f.name for f in fields(material)} - {"id"}
    unknown = sorted(set(updates) - allowed)
    if unknown:
        raise KeyError(", ".join(unknown))
    return replace(material, **{"updated_at": _timestamp(), **updates})


def reminder_to_dict(setting: ReminderSetting) -> dict:
    return {
        "reminder_enabled": setting.enabled,
        "reminder_time": setting.time,
        "reminder_days": list(setting.days_of_week),
    }


def reminder_from_dict(data: dict) -> ReminderSetting:
    default = ReminderSetting()
    return ReminderSetting(
        enabled=bool(data.get("reminder_enabled", default.enabled)),
        time=data.get("reminder_time", default.time),
        days_of_week=list(data.get("reminder_days", default.days_of_week)),
    )


class MaterialStorage(Protocol):
    def get_all(self) -> list[LearningMaterial]: ...
    def get_by_id(self, material_id: str) -> Optional[LearningMaterial]: ...
    def add(self, material: LearningMaterial) -> StorageResult: ...
    def upsert(self, material: LearningMaterial) -> StorageResult: ...
    def update(self, material_id: str, **updates) -> StorageResult: ...
    def delete(self, material_id: str) -> StorageResult: ...
    def clear(self) -> StorageResult: ...


class CompletedTaskStorage(Protocol):
    def get_all(self) -> set[str]: ...
    def mark_completed(self, material_id: str, day) -> StorageResult: ...
    def mark_incomplete(self, material_id: str, day) -> StorageResult: ...
    def is_completed(self, material_id: str, day) -> bool: ...
    def clear(self) -> StorageResult: ...


class SettingsStorage(Protocol):
    def get_reminder_settings(self) -> ReminderSetting: ...
    def save_reminder_settings(self, setting: ReminderSetting) -> StorageResult: ...
    def get_all(self) -> dict: ...
    def clear(self) -> StorageResult: ...


@dataclass
class Backend:
    kind: str
    materials: MaterialStorage
    completed_tasks: CompletedTaskStorage
    settings: SettingsStorage


# ---------------------------------------------------------------- local file


class KeyValueFile:
    """String keys to string values, persisted as one JSON object on disk."""

    def __init__(self, path: str):
        self.path = Path(path)

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        return json.loads(self.path.read_text(encoding="utf-8") or "{}")

    def _save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


class LocalMaterialStorage:
    def __init__(self, store: KeyValueFile):
        self.store = store

    def _write(self, materials: list) -> None:
        self.store.set_item(MATERIALS_KEY, json.dumps([material_to_dict(m) for m in materials], ensure_ascii=False))

    def _read(self) -> list[LearningMaterial]:
        raw = self.store.get_item(MATERIALS_KEY)
        return [material_from_dict(d) for d in json.loads(raw)] if raw else []

    def get_all(self) -> list[LearningMaterial]:
        try:
            return self._read()
        except STORAGE_ERRORS as e:
            handle_storage_error(e)
            return []

    def get_by_id(self, material_id: str) -> Optional[LearningMaterial]:
        return next((m for m in self.get_all() if m.id == material_id), None)

    def add(self, material: LearningMaterial) -> StorageResult:
        try:
            materials = self._read()
            if any(m.id == material.id for m in materials):
                return failure(DUPLICATE_ID, "conflict")
            materials.append(material)
            self._write(materials)
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def upsert(self, material: LearningMaterial) -> StorageResult:
        try:
            materials = self._read()
            index = next((i for i, m in enumerate(materials) if m.id == material.id), None)
            if index is None:
                materials.append(material)
            else:
                materials[index] = material
            self._write(materials)
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def update(self, material_id: str, **updates) -> StorageResult:
        try:
            materials = self._read()
            index = next((i for i, m in enumerate(materials) if m.id == material_id), None)
            if index is None:
                return failure(NOT_FOUND)
            try:
                materials[index] = apply_updates(materials[index], updates)
            except KeyError as e:
                return failure(f"Unknown field(s): {e.args[0]}", "validation")
            self._write(materials)
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def delete(self, material_id: str) -> StorageResult:
        try:
            self._write([m for m in self._read() if m.id != material_id])
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def clear(self) -> StorageResult:
        try:
            self.store.remove_item(MATERIALS_KEY)
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))


class LocalCompletedTaskStorage:
    def __init__(self, store: KeyValueFile):
        self.store = store

    def _read(self) -> set[str]:
        raw = self.store.get_item(COMPLETED_TASKS_KEY)
        return set(json.loads(raw)) if raw else set()

    def get_all(self) -> set[str]:
        try:
            return self._read()
        except STORAGE_ERRORS as e:
            handle_storage_error(e)
            return set()

    def _write(self, keys: set) -> None:
        self.store.set_item(COMPLETED_TASKS_KEY, json.dumps(sorted(keys)))

    def mark_completed(self, material_id: str, day) -> StorageResult:
        try:
            keys = self._read()
            keys.add(completion_key(material_id, day))
            self._write(keys)
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def mark_incomplete(self, material_id: str, day) -> StorageResult:
        try:
            keys = self._read()
            keys.discard(completion_key(material_id, day))
            self._write(keys)
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def is_completed(self, material_id: str, day) -> bool:
        return completion_key(material_id, day) in self.get_all()

    def clear(self) -> StorageResult:
        try:
            self.store.remove_item(COMPLETED_TASKS_KEY)
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))


class LocalSettingsStorage:
    def __init__(self, store: KeyValueFile):
        self.store = store

    def _read(self) -> dict:
        raw = self.store.get_item(SETTINGS_KEY)
        return json.loads(raw) if raw else {}

    def get_all(self) -> dict:
        try:
            return self._read()
        except STORAGE_ERRORS as e:
            handle_storage_error(e)
            return {}

    def get_reminder_settings(self) -> ReminderSetting:
        return reminder_from_dict(self.get_all())

    def save_reminder_settings(self, setting: ReminderSetting) -> StorageResult:
        try:
            current = self._read()
            current.update(reminder_to_dict(setting))
            self.store.set_item(SETTINGS_KEY, json.dumps(current))
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def clear(self) -> StorageResult:
        try:
            self.store.remove_item(SETTINGS_KEY)
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))


# ---------------------------------------------------------------- sqlite


def _material_to_row(material: LearningMaterial) -> dict:
    data = material_to_dict(material)
    row = {column: data.get(column) for column in MATERIAL_COLUMNS}
    for column in ("sections", "tasks"):
        if row[column] is not None:
            row[column] = json.dumps(row[column], ensure_ascii=False)
    return row


def _row_to_material(row: sqlite3.Row) -> LearningMaterial:
    # columns of the other material types are NULL; explicit NULLs of this type are kept
    cls = MATERIAL_TYPES.get(row["type"])
    names = {f.name for f in fields(cls)} | {"type"} if cls else set(row.keys())
    data = {key: row[key] for key in row.keys() if key in names}
    for column in ("sections", "tasks"):
        if data.get(column) is not None:
            data[column] = json.loads(data[column])
    return material_from_dict(data)


class SqliteMaterialStorage:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def get_all(self) -> list[LearningMaterial]:
        try:
            conn = get_connection(self.db_path)
            rows = conn.execute("SELECT * FROM materials ORDER BY rowid").fetchall()
            conn.close()
            return [_row_to_material(r) for r in rows]
        except STORAGE_ERRORS as e:
            handle_storage_error(e)
            return []

    def _fetch(self, material_id: str) -> Optional[LearningMaterial]:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT * FROM materials WHERE id = ?", (material_id,)).fetchone()
        conn.close()
        return _row_to_material(row) if row else None

    def get_by_id(self, material_id: str) -> Optional[LearningMaterial]:
        try:
            return self._fetch(material_id)
        except STORAGE_ERRORS as e:
            handle_storage_error(e)
            return None

    def _insert(self, material: LearningMaterial, verb: str) -> None:
        row = _material_to_row(material)
        placeholders = ", ".join("?" for _ in MATERIAL_COLUMNS)
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                f"{verb} INTO materials ({', '.join(MATERIAL_COLUMNS)}) VALUES ({placeholders})",
                tuple(row[c] for c in MATERIAL_COLUMNS),
            )
            conn.commit()
        finally:
            conn.close()

    def add(self, material: LearningMaterial) -> StorageResult:
        try:
            self._insert(material, "INSERT")
            return OK
        except sqlite3.IntegrityError:
            return failure(DUPLICATE_ID, "conflict")
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def upsert(self, material: LearningMaterial) -> StorageResult:
        try:
            self._insert(material, "INSERT OR REPLACE")
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def update(self, material_id: str, **updates) -> StorageResult:
        try:
            existing = self._fetch(material_id)
            if existing is None:
                return failure(NOT_FOUND)
            try:
                updated = apply_updates(existing, updates)
            except KeyError as e:
                return failure(f"Unknown field(s): {e.args[0]}", "validation")
            row = _material_to_row(updated)
            columns = [c for c in MATERIAL_COLUMNS if c != "id"]
            conn = get_connection(self.db_path)
            conn.execute(
                f"UPDATE materials SET {', '.join(f'{c} = ?' for c in columns)} WHERE id = ?",
                tuple(row[c] for c in columns) + (material_id,),
            )
            conn.commit()
            conn.close()
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def delete(self, material_id: str) -> StorageResult:
        try:
            conn = get_connection(self.db_path)
            conn.execute("DELETE FROM materials WHERE id = ?", (material_id,))
            conn.commit()
            conn.close()
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def clear(self) -> StorageResult:
        try:
            conn = get_connection(self.db_path)
            conn.execute("DELETE FROM materials")
            conn.commit()
            conn.close()
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))


class SqliteCompletedTaskStorage:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def get_all(self) -> set[str]:
        try:
            conn = get_connection(self.db_path)
            rows = conn.execute("SELECT material_id, task_date FROM completed_tasks").fetchall()
            conn.close()
            return {completion_key(r["material_id"], r["task_date"]) for r in rows}
        except STORAGE_ERRORS as e:
            handle_storage_error(e)
            return set()

    def _execute(self, sql: str, params: tuple = ()) -> StorageResult:
        try:
            conn = get_connection(self.db_path)
            conn.execute(sql, params)
            conn.commit()
            conn.close()
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def mark_completed(self, material_id: str, day) -> StorageResult:
        day = to_date(day).isoformat()
        return self._execute(
            "INSERT OR IGNORE INTO completed_tasks (material_id, task_date) VALUES (?, ?)",
            (material_id, day),
        )

    def mark_incomplete(self, material_id: str, day) -> StorageResult:
        day = to_date(day).isoformat()
        return self._execute(
            "DELETE FROM completed_tasks WHERE material_id = ? AND task_date = ?",
            (material_id, day),
        )

    def is_completed(self, material_id: str, day) -> bool:
        day = to_date(day).isoformat()
        try:
            conn = get_connection(self.db_path)
            row = conn.execute(
                "SELECT id FROM completed_tasks WHERE material_id = ? AND task_date = ?",
                (material_id, day),
            ).fetchone()
            conn.close()
            return row is not None
        except STORAGE_ERRORS as e:
            handle_storage_error(e)
            return False

    def clear(self) -> StorageResult:
        return self._execute("DELETE FROM completed_tasks")


class SqliteSettingsStorage:
    """Settings as JSON-encoded values in the ``user_settings`` key/value table."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def get_all(self) -> dict:
        try:
            conn = get_connection(self.db_path)
            rows = conn.execute("SELECT key, value FROM user_settings").fetchall()
            conn.close()
            return {r["key"]: json.loads(r["value"]) for r in rows}
        except STORAGE_ERRORS as e:
            handle_storage_error(e)
            return {}

    def get_reminder_settings(self) -> ReminderSetting:
        return reminder_from_dict(self.get_all())

    def save_reminder_settings(self, setting: ReminderSetting) -> StorageResult:
        try:
            conn = get_connection(self.db_path)
            for key, value in reminder_to_dict(setting).items():
                encoded = json.dumps(value)
                conn.execute(
                    "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
                    (key, encoded, encoded),
                )
            conn.commit()
            conn.close()
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))

    def clear(self) -> StorageResult:
        try:
            conn = get_connection(self.db_path)
            conn.execute("DELETE FROM user_settings")
            conn.commit()
            conn.close()
            return OK
        except STORAGE_ERRORS as e:
            return StorageResult(success=False, error=handle_storage_error(e))


def local_backend(path: str) -> Backend:
    store = KeyValueFile(path)
    return Backend(
        kind="local",
        materials=LocalMaterialStorage(store),
        completed_tasks=LocalCompletedTaskStorage(store),
        settings=LocalSettingsStorage(store),
    )


def sqlite_backend(db_path: str) -> Backend:
    init_db(db_path)
    return Backend(
        kind="sqlite",
        materials=SqliteMaterialStorage(db_path),
        completed_tasks=SqliteCompletedTaskStorage(db_path),
        settings=SqliteSettingsStorage(db_path),
    )


def open_backend(settings: Settings) -> Backend:
    if settings.backend == "sqlite":
        return sqlite_backend(settings.db_path)
    return local_backend(settings.local_store_path)
