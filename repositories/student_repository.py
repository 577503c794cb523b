# repositories/student_repository.py
"""
児童レコードの永続化（読み書き）に特化したリポジトリモジュール。
ストア上のパス構成（{年度}/{クラス}/student{N}）はこのクラスの中だけで扱う。
"""

import re
from typing import Any, Callable, Dict, List, Tuple

import config
from models.student import StudentRecord
from repositories.record_store import RecordStore, Subscription

# (スロット番号, レコード) のリスト
SlotRecords = List[Tuple[int, StudentRecord]]


def slot_key(slot: int) -> str:
    """スロット番号からストア上のキーを作る（3 -> 'student3'）"""
    return f"{config.STUDENT_KEY_PREFIX}{slot}"


def slot_number(key: str) -> int:
    """キー末尾の数字を取り出す（'student12' -> 12）。数字がなければ 0"""
    match = re.search(r"\d+$", str(key))
    return int(match.group()) if match else 0


def _values_of(data: Any) -> List[str]:
    """dict でも list でも保存されうる一覧を、値のリストにする"""
    if isinstance(data, dict):
        return [str(v) for v in data.values() if v is not None]
    if isinstance(data, list):
        return [str(v) for v in data if v is not None]
    return []


class StudentRepository:
    """
    ストアへの全ての読み書きアクセスを管理するクラス。
    ストア側で発生した例外（IOError, PermissionError など）はそのまま呼び出し元へ送出する。
    """
    def __init__(self, store: RecordStore):
        self.store = store

    @staticmethod
    def class_path(school_year: str, class_section: str) -> str:
        return f"{school_year}/{class_section}"

    @classmethod
    def student_path(cls, school_year: str, class_section: str, slot: int) -> str:
        return f"{cls.class_path(school_year, class_section)}/{slot_key(slot)}"

    @staticmethod
    def records_from_snapshot(data: Any) -> SlotRecords:
        """
        クラス1つ分のスナップショットをレコードのリストに変換する。
        ストアには順序がないため、キー末尾の数字で並べ替える（文字列順だと 1, 10, 11, 2... になる）。
        """
        if not isinstance(data, dict):
            return []
        entries = [(slot_number(key), value) for key, value in data.items() if isinstance(value, dict)]
        entries.sort(key=lambda entry: entry[0])
        return [(slot, StudentRecord.from_dict(value)) for slot, value in entries]

    # --- 読み込み ---

    def snapshot_records(self, school_year: str, class_section: str) -> SlotRecords:
        """クラスの全児童を、スロット番号順に返す"""
        return self.records_from_snapshot(self.store.get(self.class_path(school_year, class_section)))

    def subscribe(self, school_year: str, class_section: str,
                  callback: Callable[[SlotRecords], None]) -> Subscription:
        """
        クラスのデータを監視する。登録直後と、データが変わるたびに callback が呼ばれる。
        選択クラスを切り替えるときは、必ず前の Subscription を unsubscribe() してから呼ぶこと。
        """
        return self.store.listen(
            self.class_path(school_year, class_section),
            lambda data: callback(self.records_from_snapshot(data)),
        )

    def snapshot_all(self, school_year: str) -> List[StudentRecord]:
        """登録済みの全クラスの児童を、クラス一覧の順・スロット番号順に返す"""
        students: List[StudentRecord] = []
        for class_section in self.list_class_sections():
            students.extend(record for _, record in self.snapshot_records(school_year, class_section))
        return students

    def list_school_years(self) -> List[str]:
        return _values_of(self.store.get(config.PATH_SCHOOL_YEARS))

    def list_class_sections(self) -> List[str]:
        return _values_of(self.store.get(config.PATH_CLASS_SECTIONS))

    # --- 書き込み ---

    def write_record(self, school_year: str, class_section: str, slot: int, record: StudentRecord):
        """レコードを丸ごと上書きする（インポート時に使用。測定記録も含む）"""
        self.store.set(self.student_path(school_year, class_section, slot), record.to_dict())

    def write_class_records(self, school_year: str, class_section: str, records_by_slot: Dict[int, StudentRecord]):
        """クラス1つ分のレコードを、1回のまとめた書き込みで丸ごと上書きする"""
        if not records_by_slot:
            return
        self.store.update(self.class_path(school_year, class_section), {
            slot_key(slot): record.to_dict() for slot, record in records_by_slot.items()
        })

    def update_trials(self, school_year: str, class_section: str, slot: int,
                      trial1: Dict[str, Any], trial2: Dict[str, Any]):
        """1人分の測定記録（1sttry / 2ndtry）だけを更新する。名簿の項目には触れない"""
        self.store.update(self.student_path(school_year, class_section, slot), {
            config.FIRST_TRY: trial1,
            config.SECOND_TRY: trial2,
        })

    def update_all_trials(self, school_year: str, class_section: str,
                          trials_by_slot: Dict[int, Tuple[Dict[str, Any], Dict[str, Any]]]):
        """複数人の測定記録を、1回のまとめた書き込みで更新する"""
        updates: Dict[str, Any] = {}
        for slot, (trial1, trial2) in trials_by_slot.items():
            base = self.student_path(school_year, class_section, slot)
            updates[f"{base}/{config.FIRST_TRY}"] = trial1
            updates[f"{base}/{config.SECOND_TRY}"] = trial2
        if updates:
            self.store.update("", updates)

    def register_school_year(self, school_year: str):
        """年度一覧に未登録なら追加する"""
        self._append_to_list(config.PATH_SCHOOL_YEARS, school_year)

    def register_class_section(self, class_section: str):
        """クラス一覧に未登録なら追加する"""
        self._append_to_list(config.PATH_CLASS_SECTIONS, class_section)

    def _append_to_list(self, path: str, value: str):
        data = self.store.get(path)
        if value in _values_of(data):
            return
        if isinstance(data, dict):
            # 既存の辞書形式を保ったまま、使われていない数字キーで追加する
            index = len(data)
            while str(index) in data:
                index += 1
            self.store.set(f"{path}/{index}", value)
        else:
            self.store.set(path, _values_of(data) + [value])
