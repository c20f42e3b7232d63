# services/task_service.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Tuple

from core.schedule import flatten_work_units
from domain.models import Category, Subtask, Task, TaskRef, WorkUnit, new_id
from storage.repos import StateStore

logger = logging.getLogger(__name__)


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class TaskService:
    """
    The ordered task queue: top-level tasks with one level of subtasks,
    the current selection, and categories. Every mutation is saved.
    """

    def __init__(self, store: StateStore):
        self.store = store
        self.tasks: List[Task] = []
        self.categories: List[Category] = []
        self.selected_id: Optional[str] = None
        self._load()

    # ---- persistence ----
    def _load(self) -> None:
        data = self.store.load("tasks")
        for raw in data.get("items") or []:
            try:
                self.tasks.append(Task.from_dict(raw))
            except (AttributeError, KeyError, TypeError, ValueError):
                logger.warning("Skipping unreadable task %r", raw)
        self.selected_id = data.get("selected_id")

        for raw in self.store.load("categories"):
            try:
                self.categories.append(
                    Category(id=str(raw["id"]), name=str(raw["name"]), color=str(raw["color"]))
                )
            except (KeyError, TypeError):
                logger.warning("Skipping unreadable category %r", raw)

    def _save(self) -> None:
        self.store.save(
            "tasks",
            {"items": [t.to_dict() for t in self.tasks], "selected_id": self.selected_id},
        )

    def _save_categories(self) -> None:
        self.store.save(
            "categories",
            [{"id": c.id, "name": c.name, "color": c.color} for c in self.categories],
        )

    # ---- lookup ----
    def list_tasks(self) -> List[Task]:
        return list(self.tasks)

    def get_task(self, task_id: str) -> Optional[Task]:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def find(self, item_id: str) -> Tuple[Optional[Task], Optional[Subtask]]:
        """Returns (task, None) for a task, (parent, subtask) for a subtask."""
        for t in self.tasks:
            if t.id == item_id:
                return t, None
            for s in t.subtasks:
                if s.id == item_id:
                    return t, s
        return None, None

    def selected(self) -> Tuple[Optional[Task], Optional[Subtask]]:
        if not self.selected_id:
            return None, None
        return self.find(self.selected_id)

    def active_context(self) -> Tuple[Optional[TaskRef], Optional[str]]:
        """Selected item and the color it inherits from its task."""
        task, sub = self.selected()
        if task is None:
            return None, None
        item = sub or task
        return TaskRef(id=item.id, name=item.name), task.color

    def work_units(self) -> List[WorkUnit]:
        return flatten_work_units(self.tasks)

    # ---- create ----
    def add_task(
        self,
        name: str,
        estimated: Any = 1,
        category_id: Optional[str] = None,
        color: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> str:
        name = (name or "").strip()
        if not name:
            raise ValueError("Task name cannot be empty.")
        est = _to_int(estimated)
        est = 1 if est is None else max(0, est)

        if parent_id:
            parent, sub = self.find(parent_id)
            if parent is None or sub is not None:
                raise ValueError("Subtasks can only be added to a top-level task.")
            item = Subtask(id=new_id(), name=name, estimated=est)
            parent.subtasks.append(item)
            parent.expanded = True
            parent.recalculate()
        else:
            item = Task(id=new_id(), name=name, estimated=est, category_id=category_id, color=color)
            if not self.tasks:
                self.selected_id = item.id
            self.tasks.append(item)

        self._save()
        logger.info("Added %s %r", "subtask" if parent_id else "task", name)
        return item.id

    def add_subtasks(self, parent_id: str, items: Iterable[Tuple[str, Any]]) -> List[str]:
        return [self.add_task(name, est, parent_id=parent_id) for name, est in items]

    # ---- edit ----
    def rename(self, item_id: str, name: str) -> None:
        name = (name or "").strip()
        if not name:
            raise ValueError("Name cannot be empty.")
        task, sub = self.find(item_id)
        if task is None:
            raise ValueError("Task not found.")
        (sub or task).name = name
        self._save()

    def set_estimated(self, item_id: str, value: Any) -> None:
        """Non-numeric input keeps the previous estimate; negatives clamp to 0."""
        est = _to_int(value)
        task, sub = self.find(item_id)
        if task is None or est is None:
            return
        (sub or task).estimated = max(0, est)
        task.recalculate()
        self._save()

    def set_completed(self, item_id: str, value: Any) -> None:
        done = _to_int(value)
        task, sub = self.find(item_id)
        if task is None or done is None:
            return
        (sub or task).completed = max(0, done)
        task.recalculate()
        self._save()

    def set_checked(self, item_id: str, checked: bool = True) -> bool:
        """Returns True when the item went from open to done."""
        task, sub = self.find(item_id)
        if task is None:
            return False
        item = sub or task
        was = item.checked
        item.checked = bool(checked)
        self._save()
        return item.checked and not was

    def set_color(self, task_id: str, color: Optional[str]) -> None:
        task = self.get_task(task_id)
        if task is None:
            return
        task.color = color or None
        self._save()

    def set_category(self, task_id: str, category_id: Optional[str]) -> None:
        task = self.get_task(task_id)
        if task is None:
            return
        task.category_id = category_id
        self._save()

    def toggle_expansion(self, task_id: str) -> None:
        task = self.get_task(task_id)
        if task is None:
            return
        task.expanded = not task.expanded
        self._save()

    def select(self, item_id: Optional[str]) -> None:
        if item_id is not None and self.find(item_id)[0] is None:
            return
        self.selected_id = item_id
        self._save()

    # ---- structure ----
    def delete(self, item_id: str) -> None:
        task, sub = self.find(item_id)
        if task is None:
            return
        if sub is None:
            self.tasks.remove(task)
            removed = {task.id} | {s.id for s in task.subtasks}
        else:
            task.subtasks.remove(sub)
            task.recalculate()
            removed = {sub.id}
        if self.selected_id in removed:
            self.selected_id = None
        self._save()
        logger.info("Deleted %s", item_id)

    def move_task(self, from_id: str, to_id: str) -> None:
        """Move a task so it sits where the drop target is; unknown target => end."""
        moved = self.get_task(from_id)
        if moved is None:
            return
        self.tasks.remove(moved)
        target = self.get_task(to_id)
        if target is None:
            self.tasks.append(moved)
        else:
            self.tasks.insert(self.tasks.index(target), moved)
        self._save()

    def move_subtask(
        self,
        from_parent_id: str,
        to_parent_id: str,
        subtask_id: str,
        target_subtask_id: Optional[str] = None,
    ) -> None:
        src = self.get_task(from_parent_id)
        dst = self.get_task(to_parent_id)
        if src is None or dst is None:
            return
        moved = next((s for s in src.subtasks if s.id == subtask_id), None)
        if moved is None:
            return
        src.subtasks.remove(moved)
        target = next((s for s in dst.subtasks if s.id == target_subtask_id), None)
        if target is None:
            dst.subtasks.append(moved)
        else:
            dst.subtasks.insert(dst.subtasks.index(target), moved)
        src.recalculate()
        dst.recalculate()
        self._save()

    def split_task(self, task_id: str, split_at: Any) -> Optional[str]:
        """
        Split one task into two: the first keeps `split_at` units of the
        estimate, a new "(Part 2)" task right after it takes the rest.
        Returns the new task id, or None if the split point is invalid.
        """
        task = self.get_task(task_id)
        at = _to_int(split_at)
        if task is None or at is None or task.subtasks:
            return None
        if at <= task.completed or at >= task.estimated:
            return None

        part2 = Task(
            id=new_id(),
            name=f"{task.name} (Part 2)",
            estimated=task.estimated - at,
            completed=0,
            color=task.color,
            category_id=task.category_id,
        )
        task.estimated = at
        self.tasks.insert(self.tasks.index(task) + 1, part2)
        self._save()
        return part2.id

    # ---- timer hooks ----
    def _next_open_leaf(self, after_id: str) -> Optional[str]:
        leaves: List[Tuple[str, int, int, bool]] = []
        for t in self.tasks:
            if t.subtasks:
                leaves.extend((s.id, s.completed, s.estimated, s.checked or t.checked) for s in t.subtasks)
            else:
                leaves.append((t.id, t.completed, t.estimated, t.checked))
        ids = [leaf[0] for leaf in leaves]
        if after_id not in ids:
            return None
        for item_id, completed, estimated, checked in leaves[ids.index(after_id) + 1:]:
            if not checked and completed < estimated:
                return item_id
        return None

    def credit_work_unit(self) -> None:
        """
        Count a finished work unit against the selection. Once the selection
        reaches its estimate, move it to the next unfinished item.
        """
        task, sub = self.selected()
        if task is None:
            return
        item = sub or task
        item.completed += 1
        task.recalculate()
        if item.completed >= item.estimated:
            nxt = self._next_open_leaf(item.id)
            if nxt:
                self.selected_id = nxt
        self._save()

    def clear_completed(self) -> None:
        self.tasks = [t for t in self.tasks if not t.checked]
        for t in self.tasks:
            t.subtasks = [s for s in t.subtasks if not s.checked]
            t.recalculate()
        if self.selected_id and self.find(self.selected_id)[0] is None:
            self.selected_id = None
        self._save()

    def replace_all(self, tasks: List[Task], categories: List[Category]) -> None:
        self.tasks = list(tasks)
        self.categories = list(categories)
        if self.selected_id and self.find(self.selected_id)[0] is None:
            self.selected_id = None
        self._save()
        self._save_categories()

    # ---- categories ----
    def add_category(self, name: str, color: Optional[str] = None) -> str:
        name = (name or "").strip()
        if not name:
            raise ValueError("Category name cannot be empty.")
        cat = Category(id=new_id(), name=name, color=color or "#777777")
        self.categories.append(cat)
        self._save_categories()
        return cat.id

    def update_category(self, category: Category) -> None:
        self.categories = [category if c.id == category.id else c for c in self.categories]
        self._save_categories()

    def delete_category(self, category_id: str) -> None:
        self.categories = [c for c in self.categories if c.id != category_id]
        for t in self.tasks:
            if t.category_id == category_id:
                t.category_id = None
        self._save_categories()
        self._save()

    def reset(self) -> None:
        self.tasks = []
        self.categories = []
        self.selected_id = None
