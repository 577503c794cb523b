import math

import pytest

import config
from models.scoring_tables import SCORING_TABLES, GRADE_THRESHOLDS
from models.student import StudentRecord
from services.scoring_service import (
    calculate_score, determine_grade, grip_strength_value, score_student,
    truncate_one_decimal, unit_for_component,
)

TABLE_KEYS = [(component, gender) for component, genders in SCORING_TABLES.items() for gender in genders]


@pytest.mark.parametrize("component,gender", TABLE_KEYS)
def test_every_integer_in_table_domain_maps_to_exactly_one_score(component, gender):
    ranges = SCORING_TABLES[component][gender]
    low = int(min(r.min for r in ranges))
    high = int(max(r.max for r in ranges if not math.isinf(r.max)))
    for value in range(low, high + 1):
        matches = [r for r in ranges if r.min <= value <= r.max]
        assert len(matches) == 1, f"{component}/{gender}: {value}"
        assert 1 <= matches[0].score <= 10
        assert calculate_score(component, gender, value) == matches[0].score


@pytest.mark.parametrize("component,gender", TABLE_KEYS)
def test_values_below_table_score_zero(component, gender):
    assert calculate_score(component, gender, 0) == 0
    assert calculate_score(component, gender, -5) == 0


def test_grip_strength_above_table_scores_zero():
    assert calculate_score("gripStrength", "Boy", 100) == 10
    assert calculate_score("gripStrength", "Boy", 101) == 0


def test_sprint_is_truncated_not_rounded():
    assert truncate_one_decimal(8.06) == 8.0
    assert truncate_one_decimal(8.19) == 8.1
    assert calculate_score("50msprint", "Boy", 8.06) == 10
    assert calculate_score("50msprint", "Boy", 8.19) == 9
    assert calculate_score("50msprint", "Girl", 8.39) == 10
    assert calculate_score("50msprint", "Boy", 13.5) == 1


def test_unset_sprint_scores_zero():
    assert calculate_score("50msprint", "Boy", 0) == 0


@pytest.mark.parametrize("component", config.SINGLE_TRY_COMPONENTS)
def test_single_try_components_ignore_second_trial(component):
    first = calculate_score(component, "Boy", 12, None)
    assert calculate_score(component, "Boy", 12, 70) == first
    assert calculate_score(component, "Boy", 12, 1) == first


def test_best_of_two_uses_the_larger_trial():
    assert calculate_score("longjump", "Boy", 100, 200) == 10
    assert calculate_score("longjump", "Boy", 200, 100) == 10
    assert calculate_score("softballthrowing", "Girl", 5, 22) == 9


def test_missing_second_trial_falls_back_to_first():
    assert calculate_score("sidesteps", "Girl", 44, None) == 9
    assert calculate_score("sidesteps", "Girl", None, 44) == 9


@pytest.mark.parametrize("first,second", [(None, None), ("", ""), ("abc", None), (float("nan"), None)])
def test_missing_or_invalid_values_score_zero(first, second):
    assert calculate_score("longjump", "Boy", first, second) == 0


def test_unknown_component_or_gender_scores_zero():
    assert calculate_score("swimming", "Boy", 10) == 0
    assert calculate_score("situps", "Other", 10) == 0


def test_numeric_strings_are_accepted():
    assert calculate_score("situps", "Boy", "26") == 10


def test_grip_strength_uses_max_of_four_values():
    trial1 = {"gripstrR": 10, "gripstrL": 12}
    trial2 = {"gripstrR": 11, "gripstrL": 9}
    assert grip_strength_value(trial1, trial2)["max"] == 12

    # どの1つを最大値にしても、その値で採点される
    for target in [(trial1, "gripstrR"), (trial1, "gripstrL"), (trial2, "gripstrR"), (trial2, "gripstrL")]:
        t1, t2 = dict(trial1), dict(trial2)
        trial = t1 if target[0] is trial1 else t2
        trial[target[1]] = 24
        value = grip_strength_value(t1, t2)["max"]
        assert value == 24
        assert calculate_score("gripStrength", "Boy", value) == 9


def test_grip_strength_second_trial_falls_back_to_first():
    grip = grip_strength_value({"gripstrR": 15, "gripstrL": 14}, {"gripstrR": None, "gripstrL": None})
    assert grip["R2"] == 15
    assert grip["L2"] == 14
    assert grip["max"] == 15


def test_determine_grade_example():
    assert GRADE_THRESHOLDS["G2"] == [47, 41, 34, 27, 26]
    assert determine_grade(45, "G2") == "B"
    assert determine_grade(47, "G2B") == "A"
    assert determine_grade(26, "G2") == "E"
    assert determine_grade(0, "G2") == "E"


@pytest.mark.parametrize("grade_level", list(GRADE_THRESHOLDS))
def test_determine_grade_is_monotonic(grade_level):
    letters = [determine_grade(total, grade_level) for total in range(0, 81)]
    for lower, higher in zip(letters, letters[1:]):
        assert higher <= lower  # 'A' < 'B' < ... なので、点が上がると文字は小さくなる


def test_determine_grade_unknown_level_defaults_to_e():
    assert determine_grade(80, "K1A") == "E"
    assert determine_grade(80, "") == "E"


def test_score_student_totals_eight_components():
    student = StudentRecord.from_dict({
        "enname": "Taro Yamada", "jpname": "山田太郎", "firstname": "Taro", "gender": "Boy",
        "grade": "3", "class": "G3A", "teacher": "Ms. Sato",
        "1sttry": {"gripstrR": 20, "gripstrL": 18, "situps": 18, "seatedtoetouch": 30, "sidesteps": 40,
                   "20mshuttleruns": 50, "50msprint": 9.0, "longjump": 150, "softballthrowing": 25},
        "2ndtry": {"gripstrR": 22, "situps": 40, "seatedtoetouch": 35, "sidesteps": 38,
                   "20mshuttleruns": 90, "50msprint": 7.0, "longjump": 160, "softballthrowing": 20},
    })
    card = score_student(student)

    assert list(card.scores) == list(config.COMPONENT_ORDER)
    assert card.scores["gripStrength"] == 8
    assert card.scores["situps"] == 7
    assert card.scores["20mshuttleruns"] == 7
    assert card.scores["50msprint"] == 7
    assert card.total == 8 + 7 * 7
    assert card.grade == "A"
    assert card.grip_values["L2"] == 18


def test_score_student_with_zeroed_trials(make_record):
    card = score_student(make_record())
    assert card.total == 0
    assert card.grade == "E"


def test_units():
    assert unit_for_component("50msprint") == "seconds"
    assert unit_for_component("longjump") == "cm"
    assert unit_for_component("seatedtoetouch") == "cm"
    assert unit_for_component("softballthrowing") == "m"
    assert unit_for_component("situps") == "times"
    assert unit_for_component("sidesteps") == "times"
