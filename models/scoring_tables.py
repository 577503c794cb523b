# models/scoring_tables.py
"""
新体力テストの得点表と総合評価の基準表。
値はすべて得点表どおりのリテラルで、ロジックは services/scoring_service.py 側に置く。
"""

import math
from typing import Dict, List, NamedTuple


class ScoreRange(NamedTuple):
    """記録が [min, max] の範囲（両端を含む）に入れば score 点"""
    min: float
    max: float
    score: int


INF = math.inf

# (種目, 性別) -> 得点範囲のリスト（上から順に判定する）
SCORING_TABLES: Dict[str, Dict[str, List[ScoreRange]]] = {
    "gripStrength": {
        "Boy": [
            ScoreRange(26, 100, 10),
            ScoreRange(23, 25, 9),
            ScoreRange(20, 22, 8),
            ScoreRange(17, 19, 7),
            ScoreRange(14, 16, 6),
            ScoreRange(11, 13, 5),
            ScoreRange(9, 10, 4),
            ScoreRange(7, 8, 3),
            ScoreRange(5, 6, 2),
            ScoreRange(4, 4, 1),
        ],
        "Girl": [
            ScoreRange(25, 100, 10),
            ScoreRange(22, 24, 9),
            ScoreRange(19, 21, 8),
            ScoreRange(16, 18, 7),
            ScoreRange(13, 15, 6),
            ScoreRange(11, 12, 5),
            ScoreRange(9, 10, 4),
            ScoreRange(7, 8, 3),
            ScoreRange(4, 6, 2),
            ScoreRange(3, 3, 1),
        ],
    },
    "situps": {
        "Boy": [
            ScoreRange(26, INF, 10),
            ScoreRange(23, 25, 9),
            ScoreRange(20, 22, 8),
            ScoreRange(18, 19, 7),
            ScoreRange(15, 17, 6),
            ScoreRange(12, 14, 5),
            ScoreRange(10, 11, 4),
            ScoreRange(6, 9, 3),
            ScoreRange(3, 5, 2),
            ScoreRange(2, 2, 1),
        ],
        "Girl": [
            ScoreRange(23, INF, 10),
            ScoreRange(20, 22, 9),
            ScoreRange(18, 19, 8),
            ScoreRange(16, 17, 7),
            ScoreRange(14, 15, 6),
            ScoreRange(12, 13, 5),
            ScoreRange(10, 11, 4),
            ScoreRange(6, 9, 3),
            ScoreRange(3, 5, 2),
            ScoreRange(2, 2, 1),
        ],
    },
    "seatedtoetouch": {
        "Boy": [
            ScoreRange(49, INF, 10),
            ScoreRange(43, 48, 9),
            ScoreRange(38, 42, 8),
            ScoreRange(34, 37, 7),
            ScoreRange(30, 33, 6),
            ScoreRange(27, 29, 5),
            ScoreRange(23, 26, 4),
            ScoreRange(19, 22, 3),
            ScoreRange(15, 18, 2),
            ScoreRange(14, 14, 1),
        ],
        "Girl": [
            ScoreRange(52, INF, 10),
            ScoreRange(46, 51, 9),
            ScoreRange(41, 45, 8),
            ScoreRange(37, 40, 7),
            ScoreRange(33, 36, 6),
            ScoreRange(29, 32, 5),
            ScoreRange(24, 28, 4),
            ScoreRange(21, 23, 3),
            ScoreRange(18, 20, 2),
            ScoreRange(17, 17, 1),
        ],
    },
    "sidesteps": {
        "Boy": [
            ScoreRange(50, INF, 10),
            ScoreRange(46, 49, 9),
            ScoreRange(42, 45, 8),
            ScoreRange(38, 41, 7),
            ScoreRange(34, 37, 6),
            ScoreRange(30, 33, 5),
            ScoreRange(26, 29, 4),
            ScoreRange(22, 25, 3),
            ScoreRange(18, 21, 2),
            ScoreRange(1, 17, 1),
        ],
        "Girl": [
            ScoreRange(47, INF, 10),
            ScoreRange(43, 46, 9),
            ScoreRange(40, 42, 8),
            ScoreRange(36, 39, 7),
            ScoreRange(32, 35, 6),
            ScoreRange(28, 31, 5),
            ScoreRange(25, 27, 4),
            ScoreRange(21, 24, 3),
            ScoreRange(17, 20, 2),
            ScoreRange(1, 16, 1),
        ],
    },
    "20mshuttleruns": {
        "Boy": [
            ScoreRange(80, INF, 10),
            ScoreRange(69, 79, 9),
            ScoreRange(57, 68, 8),
            ScoreRange(45, 56, 7),
            ScoreRange(33, 44, 6),
            ScoreRange(23, 32, 5),
            ScoreRange(15, 22, 4),
            ScoreRange(10, 14, 3),
            ScoreRange(8, 9, 2),
            ScoreRange(1, 7, 1),
        ],
        "Girl": [
            ScoreRange(64, INF, 10),
            ScoreRange(54, 63, 9),
            ScoreRange(44, 53, 8),
            ScoreRange(35, 43, 7),
            ScoreRange(26, 34, 6),
            ScoreRange(19, 25, 5),
            ScoreRange(14, 18, 4),
            ScoreRange(10, 13, 3),
            ScoreRange(8, 9, 2),
            ScoreRange(1, 7, 1),
        ],
    },
    # タイムは小さいほど良いが、範囲は昇順の min/max で表す
    "50msprint": {
        "Boy": [
            ScoreRange(1, 8.0, 10),
            ScoreRange(8.1, 8.4, 9),
            ScoreRange(8.5, 8.8, 8),
            ScoreRange(8.9, 9.3, 7),
            ScoreRange(9.4, 9.9, 6),
            ScoreRange(10.0, 10.6, 5),
            ScoreRange(10.7, 11.4, 4),
            ScoreRange(11.5, 12.2, 3),
            ScoreRange(12.3, 13.0, 2),
            ScoreRange(13.1, INF, 1),
        ],
        "Girl": [
            ScoreRange(1, 8.3, 10),
            ScoreRange(8.4, 8.7, 9),
            ScoreRange(8.8, 9.1, 8),
            ScoreRange(9.2, 9.6, 7),
            ScoreRange(9.7, 10.2, 6),
            ScoreRange(10.3, 10.9, 5),
            ScoreRange(11.0, 11.6, 4),
            ScoreRange(11.7, 12.4, 3),
            ScoreRange(12.5, 13.2, 2),
            ScoreRange(13.3, INF, 1),
        ],
    },
    "longjump": {
        "Boy": [
            ScoreRange(192, INF, 10),
            ScoreRange(180, 191, 9),
            ScoreRange(168, 179, 8),
            ScoreRange(156, 167, 7),
            ScoreRange(143, 155, 6),
            ScoreRange(130, 142, 5),
            ScoreRange(117, 129, 4),
            ScoreRange(105, 116, 3),
            ScoreRange(93, 104, 2),
            ScoreRange(1, 92, 1),
        ],
        "Girl": [
            ScoreRange(181, INF, 10),
            ScoreRange(170, 180, 9),
            ScoreRange(160, 169, 8),
            ScoreRange(147, 159, 7),
            ScoreRange(134, 146, 6),
            ScoreRange(121, 133, 5),
            ScoreRange(109, 120, 4),
            ScoreRange(98, 108, 3),
            ScoreRange(85, 97, 2),
            ScoreRange(1, 84, 1),
        ],
    },
    "softballthrowing": {
        "Boy": [
            ScoreRange(40, INF, 10),
            ScoreRange(35, 39, 9),
            ScoreRange(30, 34, 8),
            ScoreRange(24, 29, 7),
            ScoreRange(18, 23, 6),
            ScoreRange(13, 17, 5),
            ScoreRange(10, 12, 4),
            ScoreRange(7, 9, 3),
            ScoreRange(4, 6, 2),
            ScoreRange(1, 3, 1),
        ],
        "Girl": [
            ScoreRange(25, INF, 10),
            ScoreRange(21, 24, 9),
            ScoreRange(17, 20, 8),
            ScoreRange(14, 16, 7),
            ScoreRange(11, 13, 6),
            ScoreRange(8, 10, 5),
            ScoreRange(6, 7, 4),
            ScoreRange(4, 5, 3),
            ScoreRange(2, 3, 2),
            ScoreRange(1, 1, 1),
        ],
    },
}

# 学年 -> A, B, C, D, E の下限点（降順）
GRADE_THRESHOLDS: Dict[str, List[int]] = {
    "G1": [39, 33, 27, 22, 2],
    "G2": [47, 41, 34, 27, 26],
    "G3": [53, 46, 39, 32, 31],
    "G4": [59, 52, 45, 38, 37],
    "G5": [65, 58, 50, 42, 41],
    "G6": [71, 63, 55, 46, 45],
}

GRADE_LETTERS = "ABCDE"
DEFAULT_GRADE_LETTER = "E"
