# services/session.py
"""
記録入力画面の状態（選択中の年度・クラス、編集中のデータ、未保存フラグなど）を
1つのオブジェクトにまとめて管理するモジュール。
UI（ViewModel）はこのクラスのメソッドを呼ぶだけで、状態を直接書き換えない。
"""

import copy
import math
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import config
from models.student import StudentRecord, filter_students
from repositories.record_store import Subscription
from repositories.student_repository import StudentRepository, SlotRecords
from services.scoring_service import ScoreCard, score_student

MSG_SAVE_ERROR = "Error saving student data. Please try again."


def parse_measurement(raw_value: Any) -> Any:
    """
    入力欄の値を記録値に変換する。空欄は 0。
    整数になる値は int、それ以外は float で保持する。

    Raises:
        ValueError: 数値として解釈できない場合。
    """
    if isinstance(raw_value, (int, float)) and not isinstance(raw_value, bool):
        number = float(raw_value)
    else:
        text = str(raw_value).strip() if raw_value is not None else ""
        if not text:
            return 0
        try:
            number = float(text)
        except ValueError:
            raise ValueError(f"数値を入力してください: '{raw_value}'")
    # "nan" や "inf" は float() を通るが、記録としては保存できない
    if not math.isfinite(number):
        raise ValueError(f"数値を入力してください: '{raw_value}'")
    return int(number) if number.is_integer() else number


class FitnessSession:
    """
    1つのクラスを対象にした入力作業の状態。

    クラスの切り替え時は、前のクラスの監視を必ず解除してから新しいクラスの監視を始める。
    これにより、前のクラスから遅れて届いた通知が新しいクラスのデータを上書きすることはない。

    dispatch を渡すと、ストアからの通知はそれを通して処理される。
    画面では master.after を渡し、別スレッドの書き込みによる通知も画面のスレッドで反映する。
    """
    def __init__(self, repository: StudentRepository, on_change: Optional[Callable[[], None]] = None,
                 dispatch: Optional[Callable[[Callable[[], None]], None]] = None):
        self.repository = repository
        self.on_change = on_change  # 状態が変わったときに呼ばれる（UIの再描画用）
        self._dispatch = dispatch

        self.school_year: Optional[str] = None
        self.class_section: Optional[str] = None
        self.students: SlotRecords = []
        self.current_index: Optional[int] = None
        self.has_unsaved_changes: bool = False
        self.dirty_slots: Set[int] = set()
        self.is_saving: bool = False
        self.last_saved_time: Optional[datetime] = None
        self.search_term: str = ""
        self.last_error: Optional[str] = None

        self._subscription: Optional[Subscription] = None
        self._awaiting_first_snapshot: bool = False
        # 監視を張り直すたびに増える番号。古い監視から遅れて届いた通知を見分ける
        self._generation: int = 0

    # --- クラスの選択 ---

    def select_class(self, school_year: str, class_section: str,
                     confirm_discard: Optional[Callable[[], bool]] = None) -> bool:
        """
        表示するクラスを切り替える。

        未保存の変更がある場合は confirm_discard() で確認し、False なら何もせず False を返す。
        破棄を承認した場合、変更は前のクラスに書き込まれずに捨てられる。
        """
        if (school_year, class_section) == (self.school_year, self.class_section) and self._subscription:
            return True

        if self.has_unsaved_changes:
            if confirm_discard is None or not confirm_discard():
                return False
            logging.info(f"未保存の変更を破棄しました: {self.school_year}/{self.class_section}")

        # 前のクラスの監視を先に解除する
        self._detach()
        self.has_unsaved_changes = False
        self.dirty_slots = set()

        self.school_year = school_year
        self.class_section = class_section
        self._awaiting_first_snapshot = True
        generation = self._generation
        self._subscription = self.repository.subscribe(
            school_year, class_section, lambda records: self._receive(generation, records)
        )
        return True

    def close(self):
        """監視を解除する。画面を閉じるときに呼ぶ"""
        self._detach()

    def _detach(self):
        self._generation += 1
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _receive(self, generation: int, records: SlotRecords):
        """ストアからの通知。dispatch があればそれを通して _on_snapshot を呼ぶ"""
        def deliver():
            # 解除済みの監視から遅れて届いたデータは捨てる
            if generation == self._generation:
                self._on_snapshot(records)

        if self._dispatch is None:
            deliver()
        else:
            self._dispatch(deliver)

    def _on_snapshot(self, records: SlotRecords):
        """
        監視中のクラスのデータが届いたときの処理。
        切り替え直後の最初のデータでは表示状態をリセットする。
        それ以降（保存や他の端末からの更新）は、編集中でないスロットだけを差し替える。
        """
        if self._awaiting_first_snapshot:
            self._awaiting_first_snapshot = False
            self.students = records
            self.current_index = None
            self.has_unsaved_changes = False
            self.dirty_slots = set()
            self.last_saved_time = None
            self.search_term = ""
        else:
            local = dict(self.students)
            self.students = [
                (slot, local[slot] if slot in self.dirty_slots and slot in local else record)
                for slot, record in records
            ]
            if self.current_index is not None and self.current_index >= len(self.students):
                self.current_index = None
        self._notify()

    # --- 児童の選択と移動 ---

    def select_student(self, index: int):
        """一覧から児童を選ぶ。別の児童を編集中で未保存なら、先に保存する"""
        if not 0 <= index < len(self.students):
            raise IndexError(f"児童の番号が範囲外です: {index}")
        if self.has_unsaved_changes and self.current_index is not None:
            self.save_current()
        self.current_index = index
        self._notify()

    def back_to_list(self):
        if self.has_unsaved_changes and self.current_index is not None:
            self.save_current()
        self.current_index = None
        self._notify()

    def next_student(self):
        if self.current_index is not None and self.current_index < len(self.students) - 1:
            self.select_student(self.current_index + 1)

    def previous_student(self):
        if self.current_index is not None and self.current_index > 0:
            self.select_student(self.current_index - 1)

    @property
    def current_student(self) -> Optional[StudentRecord]:
        if self.current_index is None or self.current_index >= len(self.students):
            return None
        return self.students[self.current_index][1]

    @property
    def current_slot(self) -> Optional[int]:
        if self.current_index is None or self.current_index >= len(self.students):
            return None
        return self.students[self.current_index][0]

    # --- 編集 ---

    def edit_trial(self, field: str, try_key: str, raw_value: Any):
        """選択中の児童の記録を1項目だけ書き換える（まだ保存はしない）"""
        student = self.current_student
        if student is None:
            return
        if field not in config.TRIAL_FIELDS:
            raise KeyError(f"不明な測定項目です: {field}")
        student.trial(try_key)[field] = parse_measurement(raw_value)
        self.dirty_slots.add(self.current_slot)
        self.has_unsaved_changes = True
        self._notify()

    def current_score_card(self) -> Optional[ScoreCard]:
        """選択中の児童の得点を、現在の入力値からその場で計算する"""
        student = self.current_student
        return score_student(student) if student is not None else None

    def visible_students(self) -> List[Tuple[int, StudentRecord]]:
        """
        検索語で絞り込んだ (一覧上の番号, レコード) のリスト。
        番号は select_student() にそのまま渡せる。
        """
        matched = {id(s) for s in filter_students([r for _, r in self.students], self.search_term)}
        return [(i, record) for i, (_, record) in enumerate(self.students) if id(record) in matched]

    def set_search_term(self, term: str):
        self.search_term = term
        self._notify()

    def all_records(self) -> List[StudentRecord]:
        """スロット番号順の全レコード（成績票の出力順）"""
        return [record for _, record in self.students]

    # --- 保存 ---

    def save_current(self) -> bool:
        """選択中の児童の記録（1sttry / 2ndtry）だけを保存する"""
        student = self.current_student
        if not self.has_unsaved_changes or student is None:
            return True
        slot = self.current_slot
        return self._save(lambda: self.repository.update_trials(
            self.school_year, self.class_section, slot,
            copy.deepcopy(student.trial1), copy.deepcopy(student.trial2),
        ), {slot})

    def save_all(self) -> bool:
        """変更のあった全員分の記録を、1回のまとめた書き込みで保存する"""
        if not self.has_unsaved_changes:
            return True
        records = dict(self.students)
        slots = {slot for slot in self.dirty_slots if slot in records}
        trials: Dict[int, tuple] = {
            slot: (copy.deepcopy(records[slot].trial1), copy.deepcopy(records[slot].trial2))
            for slot in slots
        }
        return self._save(lambda: self.repository.update_all_trials(
            self.school_year, self.class_section, trials,
        ), slots)

    def _save(self, write: Callable[[], None], slots: Set[int]) -> bool:
        """
        書き込みを実行する。失敗してもリトライはせず、ログに記録して
        ユーザー向けの共通メッセージを last_error に設定する。
        """
        self.is_saving = True
        self.last_error = None
        try:
            write()
        except Exception:
            logging.exception(f"記録の保存に失敗しました: {self.school_year}/{self.class_section} {sorted(slots)}")
            self.last_error = MSG_SAVE_ERROR
            return False
        finally:
            self.is_saving = False

        self.dirty_slots -= slots
        self.has_unsaved_changes = bool(self.dirty_slots)
        self.last_saved_time = datetime.now()
        self._notify()
        return True

    def _notify(self):
        if self.on_change is not None:
            self.on_change()
