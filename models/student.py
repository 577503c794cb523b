# models/student.py
"""
アプリケーションのデータモデル（StudentRecordクラス）と、
名簿CSVの読み込み・書き出しロジックを定義するモジュール。
"""

import csv   # quoting 定数（QUOTE_NONE）と csv.Error の参照に使用
import io
import copy
from collections import OrderedDict
from typing import Any, Dict, List, Optional

import pandas as pd  # CSVの読み込みと書き出しに使用
import config


def empty_trial() -> Dict[str, Any]:
    """全項目を 0 で初期化した試技データを返す"""
    return {field: 0 for field in config.TRIAL_FIELDS}


class StudentRecord:
    """
    児童一人分のデータを保持するクラス（データモデル）。
    名簿の7項目と、1回目・2回目の測定記録（trial1, trial2）を持つ。
    得点はここには保存せず、常に測定記録から計算し直す。
    """
    def __init__(self, en_name: str, jp_name: str, first_name: str, gender: str,
                 grade: str, class_section: str, teacher: str,
                 trial1: Optional[Dict[str, Any]] = None,
                 trial2: Optional[Dict[str, Any]] = None):
        self.en_name: str = en_name
        self.jp_name: str = jp_name
        self.first_name: str = first_name
        self.gender: str = gender
        self.grade: str = grade
        self.class_section: str = class_section   # 例: "G3B"
        self.teacher: str = teacher
        # 測定記録（例: {'situps': 18, '50msprint': 9.2, ...}）
        self.trial1: Dict[str, Any] = trial1 if trial1 is not None else empty_trial()
        self.trial2: Dict[str, Any] = trial2 if trial2 is not None else empty_trial()

    @classmethod
    def from_roster_row(cls, row: Dict[str, str]) -> "StudentRecord":
        """名簿CSVの1行（列名 -> 値）から、測定記録が0埋めのレコードを作る"""
        return cls(
            en_name=row["enname"],
            jp_name=row["jpname"],
            first_name=row["firstname"],
            gender=row["gender"],
            grade=row["grade"],
            class_section=row["class"],
            teacher=row["teacher"],
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StudentRecord":
        """
        データベースから読み出した辞書をレコードに変換する。
        1回目は欠けた項目を 0 で補う。2回目で欠けた項目は None（未測定）のまま残し、
        採点時に1回目の値で代用できるようにする。
        """
        trial1 = empty_trial()
        trial1.update(data.get(config.FIRST_TRY) or {})
        trial2 = {field: None for field in config.TRIAL_FIELDS}
        trial2.update(data.get(config.SECOND_TRY) or {})
        return cls(
            en_name=str(data.get("enname", "")),
            jp_name=str(data.get("jpname", "")),
            first_name=str(data.get("firstname", "")),
            gender=str(data.get("gender", "")),
            grade=str(data.get("grade", "")),
            class_section=str(data.get("class", "")),
            teacher=str(data.get("teacher", "")),
            trial1=trial1,
            trial2=trial2,
        )

    def to_dict(self) -> Dict[str, Any]:
        """データベースに書き込む形の辞書を返す"""
        data: Dict[str, Any] = self.roster_row()
        data[config.FIRST_TRY] = copy.deepcopy(self.trial1)
        data[config.SECOND_TRY] = copy.deepcopy(self.trial2)
        return data

    def roster_row(self) -> Dict[str, str]:
        """名簿CSVの7項目だけを取り出す"""
        return {
            "enname": self.en_name,
            "jpname": self.jp_name,
            "firstname": self.first_name,
            "gender": self.gender,
            "grade": self.grade,
            "class": self.class_section,
            "teacher": self.teacher,
        }

    def trial(self, try_key: str) -> Dict[str, Any]:
        """'1sttry' / '2ndtry' から対応する試技データを返す"""
        if try_key == config.FIRST_TRY:
            return self.trial1
        if try_key == config.SECOND_TRY:
            return self.trial2
        raise KeyError(f"不明な試技キーです: {try_key}")

    def copy(self) -> "StudentRecord":
        return StudentRecord.from_dict(self.to_dict())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StudentRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"StudentRecord(class='{self.class_section}', enname='{self.en_name}')"


def parse_roster_text(raw_text: str) -> List[StudentRecord]:
    """
    名簿CSVのテキストを解析し、StudentRecordのリストを返す。

    - 1行目はヘッダー（enname, jpname, firstname, gender, grade, class, teacher）。列の順序は問わない。
    - 各値は前後の空白を取り除く。
    - 列が足りない行は残りを空文字で補い、列が多い行は余分を捨てる。
    - 必須7項目のどれかが空の行はエラーにせず、黙って除外する。
    - 空のテキストやヘッダーだけのテキストは空のリストになる。

    カンマのエスケープ（引用符）には対応しない。
    """
    if not raw_text or not raw_text.strip():
        return []

    try:
        df = pd.read_csv(
            io.StringIO(raw_text),
            dtype=str,                  # 数字だけの列も文字列のまま扱う
            keep_default_na=False,      # 空欄を NaN ではなく空文字として読む
            quoting=csv.QUOTE_NONE,     # 引用符を特別扱いしない
            engine="python",
            # 先頭列をインデックスとみなさない。ヘッダーより多い列は捨てられる
            index_col=False,
        )
    except pd.errors.EmptyDataError:
        return []

    df.columns = [str(c).strip() for c in df.columns]
    # 前後の空白を除くと同じ名前になる列は、最初の列だけを使う
    df = df.loc[:, ~df.columns.duplicated()]
    df = df.fillna("")

    students: List[StudentRecord] = []
    for _, row in df.iterrows():
        values = {field: str(row[field]).strip() if field in df.columns else "" for field in config.ROSTER_FIELDS}
        # 必須項目が1つでも空ならスキップ
        if not all(values.values()):
            continue
        students.append(StudentRecord.from_roster_row(values))
    return students


def load_students_from_csv(csv_path: str) -> List[StudentRecord]:
    """
    名簿CSVファイルを読み込み、StudentRecordのリストを返す。

    Raises:
        FileNotFoundError: ファイルが存在しない場合。
        ValueError: 文字コードが不正など、ファイルとして読めない場合。
    """
    try:
        with open(csv_path, encoding=config.CSV_ENCODING) as f:
            raw_text = f.read()
    except FileNotFoundError:
        raise FileNotFoundError(f"指定されたCSVファイルが見つかりません: {csv_path}")
    except UnicodeDecodeError:
        raise ValueError("CSVファイルの文字コードエラーです。\nファイルがUTF-8形式で保存されているか確認してください。")

    return parse_roster_text(raw_text)


def group_by_class(students: List[StudentRecord]) -> "OrderedDict[str, List[StudentRecord]]":
    """
    クラスごとに児童をまとめる。クラスは最初に現れた順、クラス内は入力順を保つ。
    クラス内の並び順がそのまま保存時のスロット番号（1, 2, 3...）になる。
    """
    by_class: "OrderedDict[str, List[StudentRecord]]" = OrderedDict()
    for student in students:
        by_class.setdefault(student.class_section, []).append(student)
    return by_class


def roster_to_csv(students: List[StudentRecord]) -> str:
    """
    名簿をインポートと同じ7列のCSVテキストにする。
    読み込み側と同じく引用符は使わず、値をカンマでつなぐだけにする。

    Raises:
        ValueError: 値にカンマや改行が含まれていて、1列として書き出せない場合。
    """
    df = pd.DataFrame([s.roster_row() for s in students], columns=list(config.ROSTER_FIELDS))
    try:
        return df.to_csv(index=False, lineterminator="\n", quoting=csv.QUOTE_NONE)
    except csv.Error as e:
        raise ValueError(f"カンマや改行を含む値は名簿CSVに書き出せません。\n詳細: {e}")


def filter_students(students: List[StudentRecord], search_term: str) -> List[StudentRecord]:
    """英語名・日本語名の部分一致（大文字小文字を区別しない）で絞り込む"""
    term = search_term.lower()
    return [s for s in students if term in s.en_name.lower() or term in s.jp_name.lower()]
