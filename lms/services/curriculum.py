# services/curriculum.py
"""
Pure operations on a course's nested ``modules`` array.

Every function takes the current list and returns a new one; the caller writes
the whole array back (see repos.courses.write_modules). Orders are always
renumbered to 0..n-1 after a removal or a reorder.
"""
import copy
import uuid
from typing import Any, Dict, Iterator, List, Optional, Tuple

from errors import NotFoundError
from services import drive_links

Modules = List[Dict[str, Any]]


def _by_order(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(items, key=lambda i: i.get("order", 0))


def _renumber(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    for index, item in enumerate(items):
        item["order"] = index
    return items


def _find(items: List[Dict[str, Any]], item_id: str, what: str) -> Dict[str, Any]:
    for item in items:
        if item.get("id") == item_id:
            return item
    raise NotFoundError(f"{what} not found")


def _reorder(items: List[Dict[str, Any]], ids: List[str], what: str) -> List[Dict[str, Any]]:
    current = [i["id"] for i in items]
    if len(ids) != len(current) or set(ids) != set(current):
        raise ValueError(f"{what} order must list every {what.lower()} id exactly once")
    by_id = {i["id"]: i for i in items}
    return _renumber([by_id[i] for i in ids])


def sorted_modules(modules: Modules) -> Modules:
    """Modules and their lessons in display order."""
    out = []
    for module in _by_order(copy.deepcopy(modules or [])):
        module["lessons"] = _by_order(module.get("lessons", []))
        out.append(module)
    return out


def iter_lessons(modules: Modules) -> Iterator[Tuple[Dict[str, Any], Dict[str, Any]]]:
    for module in sorted_modules(modules):
        for lesson in module["lessons"]:
            yield module, lesson


def lesson_ids(modules: Modules) -> List[str]:
    return [lesson["id"] for _, lesson in iter_lessons(modules)]


def find_lesson(modules: Modules, lesson_id: str) -> Optional[Dict[str, Any]]:
    for _, lesson in iter_lessons(modules):
        if lesson["id"] == lesson_id:
            return lesson
    return None

# ---------------------------
# Modules
# ---------------------------

def add_module(modules: Modules, *, title: str, description: str = "") -> Tuple[Modules, Dict[str, Any]]:
    out = sorted_modules(modules)
    module = {
        "id": str(uuid.uuid4()),
        "title": title,
        "description": description,
        "order": len(out),
        "lessons": [],
    }
    out.append(module)
    return out, module


def update_module(modules: Modules, module_id: str, patch: Dict[str, Any]) -> Modules:
    out = sorted_modules(modules)
    module = _find(out, module_id, "Module")
    for key in ("title", "description"):
        if patch.get(key) is not None:
            module[key] = patch[key]
    return out


def remove_module(modules: Modules, module_id: str) -> Modules:
    out = sorted_modules(modules)
    _find(out, module_id, "Module")
    return _renumber([m for m in out if m["id"] != module_id])


def reorder_modules(modules: Modules, module_ids: List[str]) -> Modules:
    return _reorder(sorted_modules(modules), module_ids, "Module")

# ---------------------------
# Lessons
# ---------------------------

def add_lesson(modules: Modules, module_id: str, data: Dict[str, Any]) -> Tuple[Modules, Dict[str, Any]]:
    out = sorted_modules(modules)
    module = _find(out, module_id, "Module")
    lesson = {
        "id": str(uuid.uuid4()),
        "title": data["title"],
        "type": data.get("type", "text"),
        "content": data.get("content", ""),
        "duration": int(data.get("duration", 0) or 0),
        "video_url": data.get("video_url"),
        "order": len(module["lessons"]),
        "materials": [],
    }
    module["lessons"].append(lesson)
    return out, lesson


def update_lesson(modules: Modules, module_id: str, lesson_id: str, patch: Dict[str, Any]) -> Modules:
    out = sorted_modules(modules)
    lesson = _find(_find(out, module_id, "Module")["lessons"], lesson_id, "Lesson")
    for key in ("title", "type", "content", "duration", "video_url"):
        if patch.get(key) is not None:
            lesson[key] = patch[key]
    return out


def remove_lesson(modules: Modules, module_id: str, lesson_id: str) -> Modules:
    out = sorted_modules(modules)
    module = _find(out, module_id, "Module")
    _find(module["lessons"], lesson_id, "Lesson")
    module["lessons"] = _renumber([l for l in module["lessons"] if l["id"] != lesson_id])
    return out


def reorder_lessons(modules: Modules, module_id: str, lesson_ids_in_order: List[str]) -> Modules:
    out = sorted_modules(modules)
    module = _find(out, module_id, "Module")
    module["lessons"] = _reorder(module["lessons"], lesson_ids_in_order, "Lesson")
    return out

# ---------------------------
# Materials
# ---------------------------

def build_material(*, title: str, url: str, type: Optional[str] = None) -> Dict[str, Any]:
    drive = drive_links.is_drive_url(url)
    return {
        "id": str(uuid.uuid4()),
        "title": title,
        "type": type or drive_links.detect_type(url),
        "url": url,
        "drive_file_id": drive_links.extract_file_id(url) if drive else None,
        "preview_url": drive_links.preview_url(url) if drive else None,
    }


def add_material(modules: Modules, module_id: str, lesson_id: str, material: Dict[str, Any]) -> Modules:
    out = sorted_modules(modules)
    lesson = _find(_find(out, module_id, "Module")["lessons"], lesson_id, "Lesson")
    lesson.setdefault("materials", []).append(material)
    return out


def remove_material(modules: Modules, module_id: str, lesson_id: str, material_id: str) -> Modules:
    out = sorted_modules(modules)
    lesson = _find(_find(out, module_id, "Module")["lessons"], lesson_id, "Lesson")
    materials = lesson.get("materials", [])
    _find(materials, material_id, "Material")
    lesson["materials"] = [m for m in materials if m["id"] != material_id]
    return out
