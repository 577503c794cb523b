import threading

import pytest

from repositories.record_store import JsonFileStore
from repositories.student_repository import StudentRepository
from services import import_service
from services.session import FitnessSession, MSG_SAVE_ERROR, parse_measurement


@pytest.fixture
def seeded(repository, make_record):
    """2025年度に G3B（3人）と G3A（1人）を登録したリポジトリ"""
    for slot, name in enumerate(["Taro Yamada", "Hanako Suzuki", "Jiro Yamada"], 1):
        repository.write_record("2025", "G3B", slot, make_record(en_name=name))
    repository.write_record("2025", "G3A", 1, make_record(en_name="Aoi Aoi", class_section="G3A"))
    return repository


@pytest.fixture
def session(seeded):
    session = FitnessSession(seeded)
    session.select_class("2025", "G3B")
    return session


@pytest.mark.parametrize("raw,expected", [("", 0), (None, 0), (" 12 ", 12), ("9.3", 9.3), ("8.0", 8), (7, 7), (7.5, 7.5)])
def test_parse_measurement(raw, expected):
    value = parse_measurement(raw)
    assert value == expected
    assert type(value) is type(expected)


@pytest.mark.parametrize("raw", ["abc", "nan", "inf", "-inf", float("nan"), float("inf")])
def test_parse_measurement_rejects_non_numbers(raw):
    with pytest.raises(ValueError):
        parse_measurement(raw)


def test_non_finite_entry_leaves_record_unchanged(session):
    session.select_student(0)
    with pytest.raises(ValueError):
        session.edit_trial("situps", "1sttry", "inf")
    assert session.current_student.trial1["situps"] == 0
    assert session.has_unsaved_changes is False


def test_select_class_loads_students_in_slot_order(session):
    assert [record.en_name for record in session.all_records()] == ["Taro Yamada", "Hanako Suzuki", "Jiro Yamada"]
    assert session.current_index is None
    assert session.has_unsaved_changes is False


def test_edit_marks_unsaved_and_rescores(session):
    session.select_student(0)
    session.edit_trial("situps", "1sttry", "26")

    assert session.has_unsaved_changes is True
    assert session.dirty_slots == {1}
    assert session.current_score_card().scores["situps"] == 10


def test_edit_rejects_unknown_field(session):
    session.select_student(0)
    with pytest.raises(KeyError):
        session.edit_trial("swimming", "1sttry", "1")


def test_save_current_writes_only_trials(session, store):
    session.select_student(1)
    session.edit_trial("longjump", "2ndtry", "150")

    assert session.save_current() is True
    assert store.get("2025/G3B/student2/2ndtry/longjump") == 150
    assert store.get("2025/G3B/student2/enname") == "Hanako Suzuki"
    assert session.has_unsaved_changes is False
    assert session.last_saved_time is not None


def test_save_all_writes_dirty_slots_in_one_update(session, store):
    session.select_student(0)
    session.edit_trial("situps", "1sttry", "10")
    session.students[2][1].trial1["situps"] = 30
    session.dirty_slots.add(3)

    received = []
    store.listen("2025/G3B", received.append)
    assert session.save_all() is True

    assert len(received) == 2
    assert store.get("2025/G3B/student1/1sttry/situps") == 10
    assert store.get("2025/G3B/student3/1sttry/situps") == 30
    assert store.get("2025/G3B/student2/1sttry/situps") == 0
    assert session.has_unsaved_changes is False


def test_moving_to_another_student_autosaves(session, store):
    session.select_student(0)
    session.edit_trial("sidesteps", "1sttry", "40")
    session.next_student()

    assert session.current_index == 1
    assert store.get("2025/G3B/student1/1sttry/sidesteps") == 40
    assert session.has_unsaved_changes is False


def test_navigation_bounds(session):
    session.select_student(2)
    session.next_student()
    assert session.current_index == 2
    session.previous_student()
    assert session.current_index == 1
    session.back_to_list()
    assert session.current_index is None
    with pytest.raises(IndexError):
        session.select_student(3)


def test_switching_class_with_confirmed_discard_drops_edits(session, store):
    session.select_student(0)
    session.edit_trial("situps", "1sttry", "25")

    changed = session.select_class("2025", "G3A", confirm_discard=lambda: True)

    assert changed is True
    assert session.has_unsaved_changes is False
    assert store.get("2025/G3B/student1/1sttry/situps") == 0
    assert [record.en_name for record in session.all_records()] == ["Aoi Aoi"]


def test_switching_class_when_discard_is_declined(session):
    session.select_student(0)
    session.edit_trial("situps", "1sttry", "25")

    assert session.select_class("2025", "G3A", confirm_discard=lambda: False) is False
    assert session.select_class("2025", "G3A") is False
    assert session.class_section == "G3B"
    assert session.has_unsaved_changes is True
    assert session.current_student.trial1["situps"] == 25


def test_switching_class_replaces_the_subscription(session, store):
    assert store.listener_count() == 1
    session.select_class("2025", "G3A")
    assert store.listener_count() == 1

    # 前のクラスへの書き込みは、新しいクラスの表示に影響しない
    store.set("2025/G3B/student1/enname", "Changed")
    assert [record.en_name for record in session.all_records()] == ["Aoi Aoi"]

    session.close()
    assert store.listener_count() == 0


def test_remote_update_keeps_local_edits(session, repository, make_record):
    session.select_student(0)
    session.edit_trial("situps", "1sttry", "25")

    repository.write_record("2025", "G3B", 2, make_record(en_name="Hanako Renamed"))

    names = [record.en_name for record in session.all_records()]
    assert names == ["Taro Yamada", "Hanako Renamed", "Jiro Yamada"]
    assert session.current_student.trial1["situps"] == 25
    assert session.has_unsaved_changes is True


def test_save_failure_sets_error_and_keeps_changes(session, repository, monkeypatch):
    def fail(*args, **kwargs):
        raise IOError("disk full")

    monkeypatch.setattr(repository, "update_trials", fail)
    session.select_student(0)
    session.edit_trial("situps", "1sttry", "25")

    assert session.save_current() is False
    assert session.last_error == MSG_SAVE_ERROR
    assert session.has_unsaved_changes is True
    assert session.is_saving is False


def test_search_filters_visible_students(session):
    session.set_search_term("yamada")
    visible = session.visible_students()
    assert [index for index, _ in visible] == [0, 2]
    assert [record.en_name for _, record in visible] == ["Taro Yamada", "Jiro Yamada"]


def test_on_change_is_called(seeded):
    calls = []
    session = FitnessSession(seeded, on_change=lambda: calls.append(1))
    session.select_class("2025", "G3B")
    assert calls
    before = len(calls)
    session.set_search_term("x")
    assert len(calls) == before + 1


def test_dispatched_snapshots_from_a_previous_class_are_dropped(seeded, make_record):
    pending = []
    session = FitnessSession(seeded, dispatch=pending.append)

    session.select_class("2025", "G3B")
    assert session.all_records() == []  # dispatch されるまでは反映しない
    pending.pop(0)()
    assert len(session.all_records()) == 3

    seeded.write_record("2025", "G3B", 1, make_record(en_name="Late Update"))
    session.select_class("2025", "G3A")

    # 古いクラスの通知が先に処理されても、表示には使われない
    pending.pop(0)()
    assert "Late Update" not in [record.en_name for record in session.all_records()]
    pending.pop(0)()
    assert [record.en_name for record in session.all_records()] == ["Aoi Aoi"]
    assert pending == []


def test_import_on_a_thread_while_saving(tmp_path, make_record):
    store = JsonFileStore(str(tmp_path / "records.json"))
    repository = StudentRepository(store)
    repository.write_record("2025", "G6Z", 1, make_record(en_name="Editor Target", class_section="G6Z"))
    session = FitnessSession(repository)
    session.select_class("2025", "G6Z")
    session.select_student(0)

    roster = [
        make_record(en_name=f"Student {c}-{i}", class_section=f"G{c % 6 + 1}{chr(65 + c)}")
        for c in range(20) for i in range(15)
    ]
    errors = []

    def run_import():
        try:
            import_service.run(repository, roster, "2025", lambda message: None)
        except Exception as e:  # スレッド内の例外はテスト本体に渡す
            errors.append(e)

    worker = threading.Thread(target=run_import)
    worker.start()
    results = []
    for value in range(1, 61):
        session.edit_trial("situps", "1sttry", str(value))
        results.append(session.save_current())
    worker.join()

    assert errors == []
    assert all(results)
    assert session.last_error is None
    assert store.get("2025/G6Z/student1/1sttry/situps") == 60
    imported = sum(len(store.get(f"2025/{section}")) for section in repository.list_class_sections())
    assert imported == len(roster)
    assert list(tmp_path.glob("*.tmp")) == []
