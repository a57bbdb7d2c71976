"""Backup, restore and migration between storage backends."""
import json
import logging
from datetime import datetime
from typing import Callable

from study_scheduler.models import StorageResult, material_from_dict, material_to_dict, split_completion_key
from study_scheduler.storage import Backend, handle_storage_error, reminder_from_dict

log = logging.getLogger(__name__)


def export_all_data(backend: Backend, now: Callable[[], datetime] = datetime.now) -> str:
    data = {
        "materials": [material_to_dict(m) for m in backend.materials.get_all()],
        "completedTasks": sorted(backend.completed_tasks.get_all()),
        "settings": backend.settings.get_all(),
        "exportedAt": now().isoformat(timespec="seconds"),
    }
    return json.dumps(data, ensure_ascii=False, indent=2)


def _first_failure(results: list[StorageResult]) -> StorageResult:
    return next((r for r in results if not r.success), StorageResult(success=True))


def import_all_data(backend: Backend, json_string: str) -> StorageResult:
    """Replace everything in ``backend`` with the contents of an export."""
    try:
        data = json.loads(json_string)
        materials = [material_from_dict(d) for d in data.get("materials") or []]
        keys = [split_completion_key(k) for k in data.get("completedTasks") or []]
        settings = data.get("settings")
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        return StorageResult(success=False, error=handle_storage_error(e))

    results = [
        backend.materials.clear(),
        backend.completed_tasks.clear(),
        backend.settings.clear(),
    ]
    results += [backend.materials.add(m) for m in materials]
    results += [backend.completed_tasks.mark_completed(material_id, day) for material_id, day in keys]
    if settings:
        results.append(backend.settings.save_reminder_settings(reminder_from_dict(settings)))
    log.info("Imported %d materials and %d completed tasks", len(materials), len(keys))
    return _first_failure(results)


def migrate(source: Backend, target: Backend) -> dict:
    """Copy materials, completion keys and reminder settings from ``source`` to ``target``.

    Materials are upserted by id, so running a migration twice is harmless.
    """
    materials = source.materials.get_all()
    keys = sorted(source.completed_tasks.get_all())
    log.info("Migrating %d materials and %d completed tasks from %s to %s",
             len(materials), len(keys), source.kind, target.kind)

    if not materials and not keys:
        return {"success": True, "message": "Nothing to migrate."}

    for material in materials:
        result = target.materials.upsert(material)
        if not result.success:
            log.error("Failed to migrate material %s", material.title)
            return {"success": False, "message": f"Failed to migrate {material.title}.", "details": result.error}
        log.debug("Migrated %s", material.title)

    for key in keys:
        material_id, day = split_completion_key(key)
        result = target.completed_tasks.mark_completed(material_id, day)
        if not result.success:
            log.error("Failed to migrate completed task %s", key)
            return {"success": False, "message": f"Failed to migrate completed task {key}.", "details": result.error}

    result = target.settings.save_reminder_settings(source.settings.get_reminder_settings())
    if not result.success:
        log.error("Failed to migrate reminder settings")
        return {"success": False, "message": "Failed to migrate reminder settings.", "details": result.error}

    return {
        "success": True,
        "message": "Migration complete.",
        "details": {"materials": len(materials), "completed_tasks": len(keys)},
    }
