import pytest

import config
from models.student import (
    StudentRecord, empty_trial, parse_roster_text, load_students_from_csv,
    group_by_class, roster_to_csv, filter_students,
)


def test_parse_roster_text_reads_all_complete_rows(roster_text):
    students = parse_roster_text(roster_text)

    assert [s.en_name for s in students] == ["Taro Yamada", "Hanako Suzuki", "Ken Ito"]
    taro = students[0]
    assert taro.jp_name == "山田太郎"
    assert taro.first_name == "Taro"
    assert taro.gender == "Boy"
    assert taro.grade == "3"
    assert taro.class_section == "G3B"
    assert taro.teacher == "Ms. Sato"
    assert taro.trial1 == empty_trial()
    assert taro.trial2 == empty_trial()


def test_header_order_does_not_matter():
    text = (
        "teacher,class,grade,gender,firstname,jpname,enname\n"
        "Ms. Sato,G2A,2,Girl,Aoi,青井葵,Aoi Aoi\n"
    )
    [student] = parse_roster_text(text)
    assert student.en_name == "Aoi Aoi"
    assert student.class_section == "G2A"
    assert student.teacher == "Ms. Sato"


def test_values_and_headers_are_trimmed():
    text = (
        " enname , jpname,firstname ,gender,grade,class,teacher\n"
        "  Taro Yamada ,山田太郎, Taro,Boy , 3,G3B ,Ms. Sato  \n"
    )
    [student] = parse_roster_text(text)
    assert student.en_name == "Taro Yamada"
    assert student.first_name == "Taro"
    assert student.gender == "Boy"
    assert student.class_section == "G3B"
    assert student.teacher == "Ms. Sato"


def test_rows_with_missing_required_fields_are_dropped():
    text = (
        "enname,jpname,firstname,gender,grade,class,teacher\n"
        "Taro Yamada,山田太郎,Taro,Boy,3,G3B\n"           # teacher がない（列不足）
        "Jiro Yamada,山田次郎,Jiro,Boy,3,G3B,\n"          # teacher が空
        "Hanako Suzuki,鈴木花子,Hanako,Girl,3,G3B,Ms. Sato\n"
    )
    students = parse_roster_text(text)
    assert [s.en_name for s in students] == ["Hanako Suzuki"]


def test_extra_columns_are_ignored():
    text = (
        "enname,jpname,firstname,gender,grade,class,teacher\n"
        "Taro Yamada,山田太郎,Taro,Boy,3,G3B,Ms. Sato,extra\n"
    )
    [student] = parse_roster_text(text)
    assert student.teacher == "Ms. Sato"


def test_windows_line_endings():
    text = "enname,jpname,firstname,gender,grade,class,teacher\r\nKen Ito,伊藤健,Ken,Boy,1,G1A,Mr. Tanaka\r\n"
    [student] = parse_roster_text(text)
    assert student.teacher == "Mr. Tanaka"


@pytest.mark.parametrize("text", ["", "   \n", "enname,jpname,firstname,gender,grade,class,teacher\n"])
def test_empty_or_header_only_input_yields_no_students(text):
    assert parse_roster_text(text) == []


def test_numeric_looking_values_stay_text():
    text = "enname,jpname,firstname,gender,grade,class,teacher\n007,007,007,Boy,03,G3B,007\n"
    [student] = parse_roster_text(text)
    assert student.grade == "03"
    assert student.en_name == "007"


def test_load_students_from_csv(tmp_path, roster_text):
    csv_path = tmp_path / "roster.csv"
    csv_path.write_text(roster_text, encoding="utf-8-sig")
    students = load_students_from_csv(str(csv_path))
    assert len(students) == 3
    assert students[0].en_name == "Taro Yamada"


def test_load_students_from_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_students_from_csv(str(tmp_path / "missing.csv"))


def test_load_students_from_non_utf8_file(tmp_path):
    csv_path = tmp_path / "roster.csv"
    csv_path.write_bytes("enname,jpname\nTaro,山田\n".encode("shift_jis"))
    with pytest.raises(ValueError):
        load_students_from_csv(str(csv_path))


def test_group_by_class_keeps_first_seen_order(roster_text):
    students = parse_roster_text(roster_text)
    students.append(StudentRecord("Mika Mori", "森美香", "Mika", "Girl", "3", "G3B", "Ms. Sato"))
    grouped = group_by_class(students)

    assert list(grouped) == ["G3B", "G1A"]
    assert [s.en_name for s in grouped["G3B"]] == ["Taro Yamada", "Hanako Suzuki", "Mika Mori"]


def test_roster_csv_round_trip(roster_text):
    students = parse_roster_text(roster_text)
    text = roster_to_csv(students)

    assert text.splitlines()[0] == ",".join(config.ROSTER_FIELDS)
    again = parse_roster_text(text)
    assert [s.roster_row() for s in again] == [s.roster_row() for s in students]


def test_filter_students_matches_either_name_case_insensitively(roster_text):
    students = parse_roster_text(roster_text)
    assert [s.en_name for s in filter_students(students, "YAMADA")] == ["Taro Yamada"]
    assert [s.en_name for s in filter_students(students, "花子")] == ["Hanako Suzuki"]
    assert len(filter_students(students, "")) == 3
    assert filter_students(students, "zzz") == []


def test_from_dict_fills_missing_trials():
    record = StudentRecord.from_dict({
        "enname": "Taro Yamada", "jpname": "山田太郎", "firstname": "Taro", "gender": "Boy",
        "grade": "3", "class": "G3B", "teacher": "Ms. Sato",
        "1sttry": {"situps": 12},
    })
    assert record.trial1["situps"] == 12
    assert record.trial1["longjump"] == 0
    assert record.trial2["longjump"] is None


def test_to_dict_uses_storage_keys(make_record):
    data = make_record().to_dict()
    assert set(data) == set(config.ROSTER_FIELDS) | {"1sttry", "2ndtry"}
    assert data["class"] == "G3B"


def test_copy_is_independent(make_record):
    record = make_record(trial1={"situps": 10})
    duplicate = record.copy()
    duplicate.trial1["situps"] = 20
    assert record.trial1["situps"] == 10
    assert duplicate != record


def test_trial_rejects_unknown_key(make_record):
    with pytest.raises(KeyError):
        make_record().trial("3rdtry")


def test_quotes_in_values_are_written_as_is(make_record):
    student = make_record(en_name='Taro "TJ" Yamada')
    text = roster_to_csv([student])

    assert 'Taro "TJ" Yamada,' in text.splitlines()[1]
    assert parse_roster_text(text)[0].en_name == 'Taro "TJ" Yamada'


@pytest.mark.parametrize("en_name", ["Yamada, Taro", "Taro\nYamada"])
def test_values_that_would_split_a_column_cannot_be_exported(make_record, en_name):
    with pytest.raises(ValueError):
        roster_to_csv([make_record(en_name=en_name)])


def test_headers_that_match_after_trimming_use_the_first_column():
    text = (
        "enname, enname,jpname,firstname,gender,grade,class,teacher\n"
        "Taro Yamada,Other Name,山田太郎,Taro,Boy,3,G3B,Ms. Sato\n"
    )
    students = parse_roster_text(text)

    assert len(students) == 1
    assert students[0].en_name == "Taro Yamada"
    assert students[0].jp_name == "山田太郎"
