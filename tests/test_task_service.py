import pytest

from services.task_service import TaskService


def test_add_task_selects_first_and_persists(store, task_service):
    a = task_service.add_task("Write report", 3)
    task_service.add_task("Email", "oops")

    assert task_service.selected_id == a
    assert [t.name for t in task_service.list_tasks()] == ["Write report", "Email"]
    assert task_service.list_tasks()[1].estimated == 1

    reloaded = TaskService(store)
    assert [t.id for t in reloaded.list_tasks()] == [t.id for t in task_service.list_tasks()]
    assert reloaded.selected_id == a


def test_add_task_rejects_empty_name(task_service):
    with pytest.raises(ValueError):
        task_service.add_task("   ")


def test_subtasks_are_one_level_deep(task_service):
    parent = task_service.add_task("Parent")
    subs = task_service.add_subtasks(parent, [("One", 2), ("Two", 3)])
    task = task_service.get_task(parent)
    assert task.estimated == 5
    assert task_service.find(subs[0]) == (task, task.subtasks[0])

    with pytest.raises(ValueError):
        task_service.add_task("Grandchild", parent_id=subs[0])


def test_numeric_edits_ignore_garbage(task_service):
    t = task_service.add_task("A", 4)
    task_service.set_estimated(t, "many")
    assert task_service.get_task(t).estimated == 4
    task_service.set_estimated(t, -2)
    assert task_service.get_task(t).estimated == 0
    task_service.set_completed(t, 2)
    assert task_service.get_task(t).completed == 2


def test_set_checked_reports_transition(task_service):
    t = task_service.add_task("A")
    assert task_service.set_checked(t, True)
    assert not task_service.set_checked(t, True)


def test_delete_clears_selection(task_service):
    a = task_service.add_task("A")
    sub = task_service.add_task("Sub", parent_id=a)
    task_service.select(sub)
    task_service.delete(a)
    assert task_service.list_tasks() == []
    assert task_service.selected_id is None


def test_move_task_and_subtask(task_service):
    a = task_service.add_task("A")
    b = task_service.add_task("B")
    c = task_service.add_task("C")
    task_service.move_task(c, a)
    assert [t.name for t in task_service.list_tasks()] == ["C", "A", "B"]

    s1 = task_service.add_task("s1", 2, parent_id=a)
    task_service.move_subtask(a, b, s1)
    assert task_service.get_task(a).subtasks == []
    assert [s.id for s in task_service.get_task(b).subtasks] == [s1]
    assert task_service.get_task(b).estimated == 2


def test_split_task(task_service):
    t = task_service.add_task("Essay", 5)
    task_service.set_completed(t, 1)
    assert task_service.split_task(t, 1) is None
    assert task_service.split_task(t, 5) is None

    new_id = task_service.split_task(t, 3)
    tasks = task_service.list_tasks()
    assert [x.name for x in tasks] == ["Essay", "Essay (Part 2)"]
    assert tasks[0].estimated == 3
    assert tasks[1].id == new_id
    assert tasks[1].estimated == 2


def test_credit_work_unit_advances_to_next_open_item(task_service):
    a = task_service.add_task("A", 1)
    b = task_service.add_task("B", 2)
    task_service.credit_work_unit()
    assert task_service.get_task(a).completed == 1
    assert task_service.selected_id == b

    task_service.credit_work_unit()
    assert task_service.selected_id == b


def test_active_context_uses_task_color(task_service):
    a = task_service.add_task("A", color="#123456")
    sub = task_service.add_task("Sub", parent_id=a)
    task_service.select(sub)
    ref, color = task_service.active_context()
    assert ref.id == sub and ref.name == "Sub"
    assert color == "#123456"


def test_clear_completed(task_service):
    a = task_service.add_task("A")
    b = task_service.add_task("B")
    s = task_service.add_task("s", parent_id=b)
    task_service.set_checked(a)
    task_service.set_checked(s)
    task_service.clear_completed()
    assert [t.id for t in task_service.list_tasks()] == [b]
    assert task_service.get_task(b).subtasks == []
    assert task_service.selected_id is None


def test_categories(store, task_service):
    cat = task_service.add_category("Deep", "#333")
    t = task_service.add_task("A", category_id=cat)
    with pytest.raises(ValueError):
        task_service.add_category("")
    task_service.delete_category(cat)
    assert task_service.categories == []
    assert task_service.get_task(t).category_id is None
    assert TaskService(store).categories == []
