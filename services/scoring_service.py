# services/scoring_service.py
"""
測定記録から種目ごとの得点（0〜10点）、合計点、総合評価（A〜E）を計算するモジュール。
すべて純粋な関数で、記録が欠けていたり範囲外だったりしても例外は出さず 0 点として扱う。
"""

import logging
import math
from typing import Any, Dict, List, Optional

import config
from models.scoring_tables import (
    SCORING_TABLES, GRADE_THRESHOLDS, GRADE_LETTERS, DEFAULT_GRADE_LETTER, ScoreRange,
)
from models.student import StudentRecord


class ScoreCard:
    """児童一人分の採点結果"""
    def __init__(self, scores: Dict[str, int], grip_values: Dict[str, Any], total: int, grade: str):
        self.scores = scores            # 種目 -> 得点（COMPONENT_ORDER の順）
        self.grip_values = grip_values  # 'R1', 'R2', 'L1', 'L2', 'max'
        self.total = total
        self.grade = grade

    def __repr__(self) -> str:
        return f"ScoreCard(total={self.total}, grade='{self.grade}')"


def to_number(value: Any) -> Optional[float]:
    """記録値を数値に変換する。空欄・None・数値にできない値は None"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else value
    try:
        text = str(value).strip()
        return float(text) if text else None
    except ValueError:
        return None


def truncate_one_decimal(value: float) -> float:
    """小数第1位までにする（四捨五入ではなく0方向への切り捨て）"""
    return math.trunc(value * 10) / 10


def lookup_score(ranges: List[ScoreRange], value: float) -> int:
    """value を含む最初の範囲の得点を返す。該当なしは 0"""
    for score_range in ranges:
        if score_range.min <= value <= score_range.max:
            return score_range.score
    return 0


def calculate_score(component: str, gender: str, first_try: Any, second_try: Any = None) -> int:
    """
    1種目の得点を計算する。

    - 上体起こし・50m走・20mシャトルランは1回目の記録だけを使う。
    - 50m走は小数第1位で切り捨ててから得点表を引く。
    - それ以外は1回目と2回目の良い方（大きい方）を使い、2回目が未測定なら1回目で代用する。
    - 握力は grip_strength_value() で求めた1つの値を first_try として渡す。
    """
    ranges = SCORING_TABLES.get(component, {}).get(gender)
    if not ranges:
        return 0

    first = to_number(first_try)

    if component in config.SINGLE_TRY_COMPONENTS:
        value = first
    else:
        second = to_number(second_try)
        candidates = [v for v in (first, second) if v is not None]
        value = max(candidates) if candidates else None

    if value is None:
        return 0
    if component == config.SPRINT_COMPONENT:
        value = truncate_one_decimal(value)
    return lookup_score(ranges, value)


def grip_strength_value(trial1: Dict[str, Any], trial2: Dict[str, Any]) -> Dict[str, Any]:
    """
    握力の左右・2回分の値と、その最大値を返す。
    2回目が未測定の場合は1回目の値で代用する。
    採点は左右別々ではなく、4つの値の最大値1つで行う。
    """
    right1 = trial1.get("gripstrR")
    left1 = trial1.get("gripstrL")
    right2 = trial2.get("gripstrR")
    left2 = trial2.get("gripstrL")
    if right2 is None:
        right2 = right1
    if left2 is None:
        left2 = left1

    numbers = [n for n in map(to_number, (right1, right2, left1, left2)) if n is not None]
    return {
        "R1": right1,
        "R2": right2,
        "L1": left1,
        "L2": left2,
        "max": max(numbers) if numbers else 0,
    }


def determine_grade(total_score: int, grade_level: str) -> str:
    """
    合計点と学年（"G1A" のようなクラス名でも可）から総合評価 A〜E を返す。
    基準表を上から順に見て、最初に満たした基準の文字を返す。どれも満たさなければ 'E'。
    """
    thresholds = GRADE_THRESHOLDS.get(str(grade_level)[:2])
    if thresholds is None:
        logging.warning(f"学年 '{grade_level}' の評価基準が見つかりません。評価を '{DEFAULT_GRADE_LETTER}' とします。")
        return DEFAULT_GRADE_LETTER

    for letter, threshold in zip(GRADE_LETTERS, thresholds):
        if total_score >= threshold:
            return letter
    return DEFAULT_GRADE_LETTER


def score_student(student: StudentRecord) -> ScoreCard:
    """児童一人分の全種目を採点し、合計点と総合評価をまとめて返す"""
    grip = grip_strength_value(student.trial1, student.trial2)
    scores: Dict[str, int] = {}
    for component in config.COMPONENT_ORDER:
        if component == config.GRIP_STRENGTH:
            scores[component] = calculate_score(component, student.gender, grip["max"])
        else:
            scores[component] = calculate_score(
                component, student.gender,
                student.trial1.get(component), student.trial2.get(component),
            )

    total = sum(scores.values())
    return ScoreCard(scores, grip, total, determine_grade(total, student.class_section))


def unit_for_component(component: str) -> str:
    """種目の単位を返す"""
    return config.COMPONENT_UNITS.get(component, config.DEFAULT_UNIT)
