# ui/view.py

import tkinter as tk
from tkinter import ttk
from tkinterdnd2 import DND_FILES  # ドラッグ＆ドロップ機能のためにインポート
import os
import sys

import config
from services.scoring_service import unit_for_component
# このViewのロジックを担当するViewModelをインポート
from .viewmodel import AppViewModel

LIST_COLUMNS = (("no", "No.", 50), ("enname", "English Name", 180), ("jpname", "Japanese Name", 160),
                ("gender", "Gender", 70), ("class", "Class", 70))


def _same_number(text: str, value) -> bool:
    """入力欄の文字列と記録値が同じ数値を表すか（"8." と 8 は同じとみなす）"""
    try:
        return float(text or 0) == float(value or 0)
    except (TypeError, ValueError):
        return False


class AppView(ttk.Frame):
    """
    アプリケーションの見た目(View)を定義・構築するクラス。
    ロジック（どう動くか）はすべてViewModelに委譲する。
    """
    def __init__(self, master: tk.Tk, viewmodel: AppViewModel):
        super().__init__(master)
        self.vm = viewmodel

        # ttkthemesがあればモダンなテーマを適用し、なければ標準のスタイルのまま動作させる
        try:
            from ttkthemes import ThemedStyle
            style = ThemedStyle(self)
            style.set_theme("arc")
        except ImportError:
            pass

        # 入力欄の StringVar: (測定項目, 試技キー) -> StringVar
        self.entry_vars = {}
        self.score_labels = {}
        self._loading_form = False

        self._setup_widgets()
        self._bind_viewmodel_to_view()
        self._setup_dnd()
        self._handle_command_line_args()

    def _setup_widgets(self):
        """UIの部品（ウィジェット）を生成し、画面に配置する。"""
        main_frame = ttk.Frame(self, padding="10")
        main_frame.pack(fill=tk.BOTH, expand=True)

        # --- 年度・クラスの選択と各種ボタン ---
        top = ttk.Frame(main_frame)
        top.pack(fill=tk.X, pady=(0, 8))
        ttk.Label(top, text="School Year").pack(side=tk.LEFT)
        self.year_combo = ttk.Combobox(top, textvariable=self.vm.school_year, width=8, state="readonly")
        self.year_combo.pack(side=tk.LEFT, padx=(4, 12))
        ttk.Label(top, text="Grade").pack(side=tk.LEFT)
        self.class_combo = ttk.Combobox(top, textvariable=self.vm.class_section, width=8, state="readonly")
        self.class_combo.pack(side=tk.LEFT, padx=(4, 12))
        self.year_combo.bind("<<ComboboxSelected>>", lambda e: self.vm.change_selection())
        self.class_combo.bind("<<ComboboxSelected>>", lambda e: self.vm.change_selection())

        self.action_buttons = [
            ttk.Button(top, text="Export to Zip", command=self.vm.export_zip),
            ttk.Button(top, text="Export to Excel", command=self.vm.export_workbook),
            ttk.Button(top, text="Download CSV", command=self.vm.export_roster),
            ttk.Button(top, text="Download CSV (All Grades)", command=lambda: self.vm.export_roster(all_classes=True)),
            ttk.Button(top, text="Upload CSV...", command=self.vm.select_csv_file),
        ]
        for button in self.action_buttons:
            button.pack(side=tk.LEFT, padx=2)
        self.save_all_button = ttk.Button(top, text="Save All Changes", command=self.vm.save_all)
        self.save_all_button.pack(side=tk.RIGHT, padx=2)

        # --- 児童一覧（左）と記録入力（右） ---
        body = ttk.PanedWindow(main_frame, orient=tk.HORIZONTAL)
        body.pack(fill=tk.BOTH, expand=True)

        list_frame = ttk.Frame(body, padding=(0, 0, 8, 0))
        search_entry = ttk.Entry(list_frame, textvariable=self.vm.search_term)
        search_entry.pack(fill=tk.X, pady=(0, 4))
        self.tree = ttk.Treeview(list_frame, columns=[c[0] for c in LIST_COLUMNS], show="headings", selectmode="browse")
        for key, heading, width in LIST_COLUMNS:
            self.tree.heading(key, text=heading)
            self.tree.column(key, width=width, anchor=tk.W)
        self.tree.pack(fill=tk.BOTH, expand=True)
        self.tree.bind("<<TreeviewSelect>>", self._on_tree_select)
        body.add(list_frame, weight=1)

        self.form_frame = ttk.LabelFrame(body, text="No Student Selected", padding=10)
        self._build_form(self.form_frame)
        body.add(self.form_frame, weight=1)

        # --- 処理状況 ---
        progress_bar = ttk.Progressbar(main_frame, orient="horizontal", mode="determinate", variable=self.vm.progress_value)
        progress_bar.pack(fill=tk.X, pady=(8, 4))
        status_lf = ttk.LabelFrame(main_frame, text="処理状況", padding=(10, 5))
        status_lf.pack(fill=tk.X)
        self.status_text = tk.Text(status_lf, height=6, wrap=tk.WORD, relief="sunken", borderwidth=1,
                                   font=("Meiryo UI", 9) if os.name == 'nt' else ("TkDefaultFont", 9))
        self.status_text.pack(fill=tk.X)
        self.status_text.insert(tk.END, "名簿CSVはウィンドウ内のどこにでもドラッグ＆ドロップできます。\n")
        self.status_text.config(state=tk.DISABLED)

    def _build_form(self, parent):
        """種目ごとの入力欄と得点表示を並べる"""
        ttk.Label(parent, text="Component").grid(row=0, column=0, sticky="w")
        ttk.Label(parent, text="Record").grid(row=0, column=1, columnspan=4, sticky="w")
        ttk.Label(parent, text="Score").grid(row=0, column=5)

        row = 1
        for component, label in config.COMPONENT_ORDER.items():
            if component == config.GRIP_STRENGTH:
                for side, field in (("R", "gripstrR"), ("L", "gripstrL")):
                    ttk.Label(parent, text=f"{label} {side}").grid(row=row, column=0, sticky="w")
                    self._add_entry(parent, row, 1, field, config.FIRST_TRY, config.GRIP_UNIT)
                    self._add_entry(parent, row, 3, field, config.SECOND_TRY, config.GRIP_UNIT)
                    row += 1
                self.grip_max_label = ttk.Label(parent, text="Avg: 0 kg")
                self.grip_max_label.grid(row=row, column=1, columnspan=4, sticky="w")
                self.score_labels[component] = ttk.Label(parent, text="0")
                self.score_labels[component].grid(row=row - 2, column=5, rowspan=3)
            else:
                unit = unit_for_component(component)
                ttk.Label(parent, text=label).grid(row=row, column=0, sticky="w")
                self._add_entry(parent, row, 1, component, config.FIRST_TRY, unit)
                if component not in config.SINGLE_TRY_COMPONENTS:
                    self._add_entry(parent, row, 3, component, config.SECOND_TRY, unit)
                self.score_labels[component] = ttk.Label(parent, text="0")
                self.score_labels[component].grid(row=row, column=5)
            row += 1

        ttk.Label(parent, text="Total Score").grid(row=row, column=0, sticky="w", pady=(8, 0))
        self.total_label = ttk.Label(parent, text="0")
        self.total_label.grid(row=row, column=5, pady=(8, 0))
        ttk.Label(parent, text="Grade").grid(row=row + 1, column=0, sticky="w")
        self.grade_label = ttk.Label(parent, text="")
        self.grade_label.grid(row=row + 1, column=5)

        nav = ttk.Frame(parent)
        nav.grid(row=row + 2, column=0, columnspan=6, pady=(10, 0), sticky="ew")
        ttk.Button(nav, text="← Back to List", command=self.vm.back_to_list).pack(side=tk.LEFT)
        ttk.Button(nav, text="<", width=3, command=self.vm.previous_student).pack(side=tk.LEFT, padx=4)
        ttk.Button(nav, text=">", width=3, command=self.vm.next_student).pack(side=tk.LEFT)
        self.save_button = ttk.Button(nav, text="Save", command=self.vm.save_current)
        self.save_button.pack(side=tk.RIGHT)
        self.saved_label = ttk.Label(nav, text="")
        self.saved_label.pack(side=tk.RIGHT, padx=8)

    def _add_entry(self, parent, row: int, column: int, field: str, try_key: str, unit: str):
        var = tk.StringVar(master=parent)
        entry = ttk.Entry(parent, textvariable=var, width=7, justify=tk.CENTER)
        entry.grid(row=row, column=column, padx=2, pady=1)
        ttk.Label(parent, text=unit).grid(row=row, column=column + 1, sticky="w")
        var.trace_add("write", lambda *args: self._on_entry_change(field, try_key, var))
        self.entry_vars[(field, try_key)] = var

    def _bind_viewmodel_to_view(self):
        """ViewModelの状態変更を監視し、対応するViewの更新処理を呼び出す設定。"""
        self.vm.add_refresh_listener(self.refresh)
        self.vm.is_running.trace_add('write', self._toggle_buttons_state)
        self.vm.status_text_log.trace_add('write', self._update_status_log)
        self.vm.search_term.trace_add('write', self.vm.apply_search)
        # 左右の矢印キーで前後の児童に移動する（入力欄にフォーカスがあるときは除く）
        toplevel = self.winfo_toplevel()
        toplevel.bind("<Left>", lambda e: None if isinstance(e.widget, ttk.Entry) else self.vm.previous_student())
        toplevel.bind("<Right>", lambda e: None if isinstance(e.widget, ttk.Entry) else self.vm.next_student())

    def _setup_dnd(self):
        """ドラッグ＆ドロップの有効化とイベントのバインド"""
        toplevel = self.winfo_toplevel()
        toplevel.drop_target_register(DND_FILES)
        toplevel.dnd_bind('<<Drop>>', self._on_file_drop)

    def _on_file_drop(self, event):
        """複数ファイルは '{パス1} {パス2}' の形式で届くため、分解してからViewModelに渡す"""
        filepaths_str = event.data.strip()
        if filepaths_str.startswith('{') and filepaths_str.endswith('}'):
            paths = [p.strip() for p in filepaths_str[1:-1].split('} {')]
        else:
            paths = filepaths_str.split()
        self.vm.process_dropped_files(paths)

    def _handle_command_line_args(self):
        args = sys.argv[1:]
        if args:
            self.vm.process_dropped_files(args)

    # --- ViewModelからの通知で実行されるUI更新メソッド ---

    def refresh(self):
        """セッションの状態を一覧・入力欄・ボタンに反映する"""
        session = self.vm.session
        self.year_combo.config(values=self.vm.school_years)
        self.class_combo.config(values=self.vm.class_sections)

        self.tree.delete(*self.tree.get_children())
        for index, student in session.visible_students():
            self.tree.insert("", tk.END, iid=str(index), values=(
                index + 1, student.en_name, student.jp_name, student.gender, student.class_section,
            ))
        if session.current_index is not None and self.tree.exists(str(session.current_index)):
            self.tree.selection_set(str(session.current_index))

        self._refresh_form()
        self._toggle_buttons_state()

    def _refresh_form(self):
        session = self.vm.session
        student = session.current_student
        if student is None:
            self.form_frame.config(text="No Student Selected")
            return

        self.form_frame.config(text=f"{session.current_index + 1} {student.en_name} ({student.jp_name})")
        self._loading_form = True
        try:
            for (field, try_key), var in self.entry_vars.items():
                value = student.trial(try_key).get(field)
                if value is None:
                    value = student.trial1.get(field)
                if not _same_number(var.get(), value):
                    var.set("" if value is None else str(value))
        finally:
            self._loading_form = False
        self._refresh_scores()

        if session.has_unsaved_changes:
            self.saved_label.config(text="* Unsaved changes")
        elif session.last_saved_time:
            self.saved_label.config(text=f"Last saved: {session.last_saved_time:%H:%M:%S}")
        else:
            self.saved_label.config(text="")

    def _refresh_scores(self):
        card = self.vm.session.current_score_card()
        if card is None:
            return
        for component, label in self.score_labels.items():
            label.config(text=str(card.scores[component]))
        self.grip_max_label.config(text=f"Avg: {card.grip_values['max']} {config.GRIP_UNIT}")
        self.total_label.config(text=str(card.total))
        self.grade_label.config(text=card.grade)

    def _on_entry_change(self, field: str, try_key: str, var: tk.StringVar):
        if self._loading_form:
            return
        # 数値にできない入力の途中（"-" など）では記録を書き換えない
        self.vm.edit_trial(field, try_key, var.get())

    def _on_tree_select(self, event):
        selection = self.tree.selection()
        if selection and int(selection[0]) != self.vm.session.current_index:
            self.vm.select_student(int(selection[0]))

    def _toggle_buttons_state(self, *args):
        """処理中フラグ(is_running)に応じて、ボタンの有効/無効を切り替える（保存ボタンも含む）"""
        running = self.vm.is_running.get()
        state = tk.DISABLED if running else tk.NORMAL
        for button in self.action_buttons:
            button.config(state=state)
        session = self.vm.session
        can_save = session.has_unsaved_changes and not session.is_saving and not running
        self.save_all_button.config(state=tk.NORMAL if can_save else tk.DISABLED)
        self.save_button.config(state=tk.DISABLED if running else tk.NORMAL)

    def _update_status_log(self, *args):
        self.status_text.config(state=tk.NORMAL)
        self.status_text.delete(1.0, tk.END)
        self.status_text.insert(tk.END, self.vm.status_text_log.get())
        self.status_text.see(tk.END)
        self.status_text.config(state=tk.DISABLED)
