# ui/viewmodel.py

import tkinter as tk
from tkinter import filedialog, messagebox  # ファイル選択ダイアログとメッセージボックス機能
import threading  # 重い処理をバックグラウンドで実行し、UIのフリーズを防ぐ
import os
from datetime import datetime
from typing import Callable, List

from repositories.student_repository import StudentRepository
from services import task_runner
from services.export_service import EXPORT_ZIP, EXPORT_XLSX
from services.session import FitnessSession

MSG_CONFIRM_DISCARD = "You have unsaved changes that will be lost. Are you sure you want to switch?"


class AppViewModel:
    """
    UIの状態(State)と操作(Logic)を管理するクラス (ViewModel)。
    - View (view.py): 見た目の定義。ViewModelへの操作を指示する。
    - ViewModel (このファイル): Viewからの指示を受け、FitnessSession と task_runner を呼び出す。
    - Model (services/, repositories/): 採点、入力状態、データ永続化、成績票の作成。
    """
    def __init__(self, master, repository: StudentRepository):
        self.master = master
        self.repository = repository
        # 入力作業の状態はすべてセッションが持つ。ここではUI部品と同期する変数だけを持つ
        # ストアからの通知は取り込みスレッドから届くこともあるため、画面のスレッドに回してから反映する
        self.session = FitnessSession(
            repository, on_change=self._schedule_refresh,
            dispatch=lambda deliver: master.after(0, deliver),
        )
        self._refresh_listeners: List[Callable[[], None]] = []

        # --- UIの状態を保持するプロパティ (Tkinter Variable) ---
        self.school_year = tk.StringVar(master=master, value=str(datetime.now().year))
        self.class_section = tk.StringVar(master=master)
        self.search_term = tk.StringVar(master=master)
        self.status_text_log = tk.StringVar(master=master)
        self.progress_value = tk.DoubleVar(master=master, value=0.0)
        self.csv_path = tk.StringVar(master=master)

        # バックグラウンド処理が実行中かどうか。二重実行の防止や、安全な終了処理に使われる
        self.is_running = tk.BooleanVar(master=master, value=False)

        self.school_years: List[str] = []
        self.class_sections: List[str] = []

    # --- 画面更新の通知 ---

    def add_refresh_listener(self, callback: Callable[[], None]):
        self._refresh_listeners.append(callback)

    def _schedule_refresh(self):
        # セッションの変更通知はバックグラウンドスレッドから届くこともあるため、
        # 画面の更新は必ずメインスレッドで行う
        self.master.after(0, self._refresh)

    def _refresh(self):
        for callback in self._refresh_listeners:
            callback()

    # --- 起動・終了 ---

    def load_selectors(self):
        """年度とクラスの選択肢を読み込み、初期のクラスを表示する"""
        try:
            self.school_years = self.repository.list_school_years()
            self.class_sections = self.repository.list_class_sections()
        except (IOError, PermissionError) as e:
            messagebox.showerror("エラー", f"データの読み込みに失敗しました。\n\n理由:\n{e}")
            return
        if not self.class_section.get() and self.class_sections:
            self.class_section.set(self.class_sections[0])
        if self.class_section.get():
            self.session.select_class(self.school_year.get(), self.class_section.get())
        self._refresh()

    def request_quit(self):
        """ウィンドウの「×」ボタンが押されたときに呼ばれる、安全な終了処理。"""
        if self.is_running.get():
            if not messagebox.askyesno("確認", "処理を実行中です。本当にアプリケーションを終了しますか？\n(ファイルが破損する可能性があります)"):
                return
        elif self.session.has_unsaved_changes:
            if not messagebox.askyesno("確認", "未保存の変更があります。保存せずに終了しますか？"):
                return
        self.session.close()
        self.master.destroy()

    # --- 年度・クラスの切り替え ---

    def change_selection(self):
        """年度・クラスのコンボボックスが変更されたときのコマンド"""
        year, section = self.school_year.get(), self.class_section.get()
        if not year or not section:
            return
        changed = self.session.select_class(
            year, section,
            confirm_discard=lambda: messagebox.askyesno("確認", MSG_CONFIRM_DISCARD),
        )
        if not changed:
            # 「いいえ」が押された場合は、表示を元の選択に戻す
            self.school_year.set(self.session.school_year or "")
            self.class_section.set(self.session.class_section or "")
        self.search_term.set(self.session.search_term)
        self._refresh()

    # --- 一覧と編集 ---

    def apply_search(self, *args):
        self.session.set_search_term(self.search_term.get())

    def select_student(self, index: int):
        self.session.select_student(index)
        self._show_save_error()

    def back_to_list(self):
        self.session.back_to_list()
        self._show_save_error()

    def next_student(self):
        self.session.next_student()
        self._show_save_error()

    def previous_student(self):
        self.session.previous_student()
        self._show_save_error()

    def edit_trial(self, field: str, try_key: str, raw_value: str) -> bool:
        """入力欄の値をセッションに反映する。数値にできない場合は False"""
        try:
            self.session.edit_trial(field, try_key, raw_value)
        except ValueError:
            return False
        return True

    def save_current(self):
        # 取り込み中は保存ボタンを無効にしている。キー操作などで呼ばれた場合もここで止める
        if self.is_running.get():
            return
        self.session.save_current()
        self._show_save_error()

    def save_all(self):
        if self.is_running.get():
            return
        self.session.save_all()
        self._show_save_error()

    def _show_save_error(self):
        if self.session.last_error:
            messagebox.showerror("エラー", self.session.last_error)
            self.session.last_error = None

    # --- 取り込み ---

    def select_csv_file(self):
        """「名簿CSVを取り込む...」ボタンのコマンド"""
        path = filedialog.askopenfilename(
            title="名簿CSVファイルを選択",
            filetypes=[("CSVファイル", "*.csv"), ("すべてのファイル", "*.*")]
        )
        if path:
            self.csv_path.set(path)
            self.start_import()

    def process_dropped_files(self, dropped_paths: list):
        """ドラッグ＆ドロップ（またはコマンドライン引数）で渡された最初のCSVを取り込む"""
        for path in dropped_paths:
            clean_path = path.strip()
            if os.path.exists(clean_path) and clean_path.lower().endswith(".csv"):
                self.csv_path.set(clean_path)
                self.start_import()
                return

    def start_import(self):
        if self.is_running.get():
            return
        if not self.csv_path.get() or not os.path.exists(self.csv_path.get()):
            messagebox.showerror("入力エラー", "有効なCSVファイルが指定されていません。")
            return
        year = self.school_year.get() or str(datetime.now().year)
        self._start_background(
            lambda status, progress: task_runner.run_import(
                self.repository, self.csv_path.get(), year, status, progress
            ),
            on_done=self.load_selectors,
        )

    # --- 書き出し ---

    def export_zip(self):
        self._start_export(EXPORT_ZIP)

    def export_workbook(self):
        self._start_export(EXPORT_XLSX)

    def _start_export(self, mode: str):
        if self.is_running.get():
            return
        students = [record.copy() for record in self.session.all_records()]
        if not students:
            messagebox.showerror("入力エラー", "出力する児童がいません。学年・クラスを選択してください。")
            return
        output_dir = filedialog.askdirectory(title="保存先のフォルダを選択")
        if not output_dir:
            return
        class_section = self.session.class_section
        self._start_background(
            lambda status, progress: task_runner.run_export(
                mode, students, class_section, output_dir, status, progress
            )
        )

    def export_roster(self, all_classes: bool = False):
        """名簿CSVを書き出す。all_classes=True なら登録済みの全クラス"""
        if self.is_running.get():
            return
        output_dir = filedialog.askdirectory(title="保存先のフォルダを選択")
        if not output_dir:
            return
        year = self.school_year.get()
        section = "" if all_classes else self.class_section.get()
        self._start_background(
            lambda status, progress: task_runner.run_roster_export(
                self.repository, year, section, output_dir, status, progress
            )
        )

    # --- バックグラウンド実行 ---

    def _start_background(self, task, on_done=None):
        self.is_running.set(True)
        self.status_text_log.set("")
        self.progress_value.set(0)
        thread = threading.Thread(target=self._run_in_thread, args=(task, on_done), daemon=True)
        thread.start()

    def _run_in_thread(self, task, on_done):
        """バックグラウンドスレッドで実行される実処理"""
        def status_callback(message: str):
            self.status_text_log.set(self.status_text_log.get() + message + "\n")

        def progress_callback(value: int):
            self.progress_value.set(float(value))

        success, final_message = task(status_callback, progress_callback)

        def finish():
            if success:
                messagebox.showinfo("完了", final_message)
            else:
                messagebox.showerror("エラー", final_message)
            self.is_running.set(False)
            if on_done is not None:
                on_done()

        self.master.after(0, finish)
