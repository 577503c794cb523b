# repositories/excel_repository.py
"""
成績票（Excelファイル）の作成と書き出しに特化したリポジトリモジュール。
openpyxlライブラリの具体的な操作をこのクラス内にカプセル化（閉じ込める）する。

成績票のレイアウトは固定で、1人分のシートを描く write_student_sheet() を
「1人1ファイル（zip）」と「1ファイルに全員分のシート」の両方の出力で共用する。
"""

import io
import os
import re
import errno
import zipfile
from typing import Any, List, Optional

from openpyxl import Workbook
from openpyxl.worksheet.worksheet import Worksheet
from openpyxl.styles import Font, Alignment, Border, Side

import config
from models.student import StudentRecord
from services.scoring_service import ScoreCard, score_student, unit_for_component
from utils import apply_fixed_column_widths, sheet_title


class ExportError(Exception):
    """成績票の作成・保存に失敗したことを表す例外。メッセージはそのままユーザーに表示できる"""


# --- スタイル定義 ---
THIN = Side(style="thin")
HEADER_FONT = Font(size=config.HEADER_FONT_SIZE)
HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center")
HEADER_BORDER = Border(bottom=Side(style="thick"))
DATA_FONT = Font(size=config.DATA_FONT_SIZE)
DATA_ALIGNMENT = Alignment(horizontal="center", vertical="center", wrap_text=True)
LEFT_ALIGNMENT = Alignment(horizontal="left", vertical="center", wrap_text=True)
DATA_BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)

LAST_COLUMN = 10  # J列

# 成績票の行番号（固定レイアウト）
ROW_TITLE = 1
ROW_HEADER = 2
ROW_COLUMN_HEADER = 4
ROW_GRIP_RIGHT, ROW_GRIP_LEFT, ROW_GRIP_MAX = 5, 6, 7
ROW_TOTAL = 15
ROW_GRADE = 16


class ExcelReportRepository:
    """
    成績票ワークブックへの全ての書き込みを管理するクラス。
    ワークブックはメモリ上で組み立て、bytes として返すかファイルに保存する。
    """

    # --- 1人分のシート（共通処理）---

    def write_student_sheet(self, ws: Worksheet, student: StudentRecord, ordinal: int,
                            card: Optional[ScoreCard] = None):
        """
        空のワークシートに1人分の成績票を描く。
        ordinal は出力順の番号（氏名欄に "1 Taro Yamada" のように表示される）。
        """
        if card is None:
            card = score_student(student)

        self._write_header_block(ws, student, ordinal)

        # 3行目は空行、4行目が列見出し
        self._write_row(ws, ROW_COLUMN_HEADER, ["Component", "", "Record", "", "", "", "", "", "", "Score"])
        ws.merge_cells(start_row=ROW_COLUMN_HEADER, start_column=1, end_row=ROW_COLUMN_HEADER, end_column=2)
        ws.merge_cells(start_row=ROW_COLUMN_HEADER, start_column=3, end_row=ROW_COLUMN_HEADER, end_column=9)

        row = ROW_GRIP_RIGHT
        for component, label in config.COMPONENT_ORDER.items():
            score = card.scores[component]
            if component == config.GRIP_STRENGTH:
                row = self._write_grip_rows(ws, row, label, card)
            elif component in config.SINGLE_TRY_COMPONENTS:
                self._write_single_try_row(ws, row, component, label, student.trial1.get(component), score)
                row += 1
            else:
                first = student.trial1.get(component)
                second = student.trial2.get(component)
                if second is None:
                    second = first
                self._write_two_try_row(ws, row, component, label, first, second, score)
                row += 1

        # 合計点と総合評価
        self._write_row(ws, ROW_TOTAL, ["Total Score", "", "", "", "", "", "", "", "", card.total])
        ws.merge_cells(start_row=ROW_TOTAL, start_column=1, end_row=ROW_TOTAL, end_column=9)
        self._write_row(ws, ROW_GRADE, ["Grade", "", "", "", "", "", "", "", "", card.grade])
        ws.merge_cells(start_row=ROW_GRADE, start_column=1, end_row=ROW_GRADE, end_column=9)

        apply_fixed_column_widths(ws, config.REPORT_COLUMN_WIDTHS)

    # --- 出力形式ごとの処理 ---

    def build_individual_archive(self, students: List[StudentRecord]) -> bytes:
        """1人1ファイルの成績票を作り、zip にまとめた bytes を返す"""
        _require_students(students)
        buffer = io.BytesIO()
        try:
            with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
                for ordinal, student in enumerate(students, 1):
                    wb = Workbook()
                    ws = wb.active
                    ws.title = sheet_title(config.REPORT_SHEET_TEMPLATE.format(grade=grade_label(student.class_section)))
                    self.write_student_sheet(ws, student, ordinal)
                    entry_name = config.ARCHIVE_ENTRY_TEMPLATE.format(ordinal=ordinal, enname=safe_file_name(student.en_name))
                    archive.writestr(entry_name, self.workbook_to_bytes(wb))
        except ExportError:
            raise
        except Exception as e:
            raise ExportError(f"成績票（zip）の作成中にエラーが発生しました。\n詳細: {e}") from e
        return buffer.getvalue()

    def build_single_workbook(self, students: List[StudentRecord]) -> bytes:
        """全員分を1つのワークブックに、1人1シートでまとめた bytes を返す"""
        _require_students(students)
        try:
            wb = Workbook()
            wb.remove(wb.active)  # 既定の空シートは使わない
            for ordinal, student in enumerate(students, 1):
                ws = wb.create_sheet(sheet_title(f"{ordinal} {student.en_name}"))
                self.write_student_sheet(ws, student, ordinal)
            return self.workbook_to_bytes(wb)
        except ExportError:
            raise
        except Exception as e:
            raise ExportError(f"成績票（Excel）の作成中にエラーが発生しました。\n詳細: {e}") from e

    @staticmethod
    def workbook_to_bytes(wb: Workbook) -> bytes:
        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    @staticmethod
    def save_bytes(data: bytes, file_path: str):
        """
        作成したファイルを保存する。
        書き込み権限がない（他のアプリで開かれている）、ディスクの空き容量がない
        といった保存時の問題をここで検知し、ExportError として送出する。
        """
        try:
            with open(file_path, "wb") as f:
                f.write(data)
        except PermissionError:
            raise ExportError(f"ファイルの保存に失敗しました。\nファイルが他のプログラムで開かれていないか、書き込み権限があるか確認してください。\nファイル: {file_path}")
        except OSError as e:
            if e.errno == errno.ENOSPC:
                raise ExportError(f"ディスクの空き容量が不足しているため、ファイルを保存できません。\nファイル: {file_path}")
            raise ExportError(f"ファイルの保存中にOSエラーが発生しました。\nファイル: {os.path.basename(file_path)}\n詳細: {e}")

    # --- 以下、内部でのみ使用されるプライベートメソッド群 ---

    def _write_header_block(self, ws: Worksheet, student: StudentRecord, ordinal: int):
        """タイトル行（1行目）と、学年・クラス・氏名の行（2行目）"""
        self._header_cell(ws, f"A{ROW_TITLE}", config.REPORT_TITLE)
        ws.merge_cells(start_row=ROW_TITLE, start_column=1, end_row=ROW_TITLE, end_column=LAST_COLUMN)

        r = ROW_HEADER
        self._header_cell(ws, f"A{r}", "Grade")
        self._header_cell(ws, f"B{r}", grade_label(student.class_section))
        self._header_cell(ws, f"C{r}", "Class")
        self._header_cell(ws, f"D{r}", None)
        self._header_cell(ws, f"E{r}", section_letter(student.class_section))
        self._header_cell(ws, f"F{r}", "Name")
        self._header_cell(ws, f"G{r}", None)
        self._header_cell(ws, f"H{r}", f"{ordinal} {student.en_name}")
        ws.merge_cells(f"C{r}:D{r}")
        ws.merge_cells(f"F{r}:G{r}")
        ws.merge_cells(f"H{r}:J{r}")

    def _write_grip_rows(self, ws: Worksheet, row: int, label: str, card: ScoreCard) -> int:
        """握力の3行（右・左・最大値）を書き、次の行番号を返す"""
        grip = card.grip_values
        score = card.scores[config.GRIP_STRENGTH]
        kg = config.GRIP_UNIT
        self._write_row(ws, row, [label, "", "R", "1:", grip["R1"], kg, "2:", grip["R2"], kg, score])
        self._write_row(ws, row + 1, [label, "", "L", "1:", grip["L1"], kg, "2:", grip["L2"], kg, score])
        self._write_row(ws, row + 2, ["", "", "Avg: ", grip["max"], "", "", "", "", kg, ""])
        ws.merge_cells(start_row=row, start_column=1, end_row=row + 2, end_column=2)
        ws.merge_cells(start_row=row + 2, start_column=4, end_row=row + 2, end_column=8)
        ws.merge_cells(start_row=row, start_column=10, end_row=row + 2, end_column=10)
        return row + 3

    def _write_single_try_row(self, ws: Worksheet, row: int, component: str, label: str, value: Any, score: int):
        """1回の記録だけを表示する種目の行"""
        unit = unit_for_component(component)
        if component == config.SPRINT_COMPONENT:
            # 50m走は記録を C:G、単位を H:I（左揃え）に表示する
            self._write_row(ws, row, [label, "", value, "", "", "", "", unit, "", score])
            ws.merge_cells(start_row=row, start_column=3, end_row=row, end_column=7)
            ws.merge_cells(start_row=row, start_column=8, end_row=row, end_column=9)
            ws.cell(row=row, column=8).alignment = LEFT_ALIGNMENT
        else:
            self._write_row(ws, row, [label, "", value, "", "", "", "", "", unit, score])
            ws.merge_cells(start_row=row, start_column=3, end_row=row, end_column=8)
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=2)

    def _write_two_try_row(self, ws: Worksheet, row: int, component: str, label: str,
                           first: Any, second: Any, score: int):
        """1回目・2回目の記録を並べて表示する種目の行"""
        unit = unit_for_component(component)
        self._write_row(ws, row, [label, "", "", "1:", first, unit, "2:", second, unit, score])
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=2)

    def _write_row(self, ws: Worksheet, row: int, values: List[Any]):
        """1行分の値を書き込み、データ用のスタイルを適用する（F列・I列は左揃え）"""
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.font = DATA_FONT
            cell.border = DATA_BORDER
            cell.alignment = LEFT_ALIGNMENT if col in config.LEFT_ALIGNED_COLUMNS else DATA_ALIGNMENT

    @staticmethod
    def _header_cell(ws: Worksheet, coordinate: str, value: Any):
        cell = ws[coordinate]
        cell.value = value
        cell.font = HEADER_FONT
        cell.alignment = HEADER_ALIGNMENT
        cell.border = HEADER_BORDER


def _require_students(students: List[StudentRecord]):
    if not students:
        raise ExportError("出力する児童がいません。学年・クラスの選択を確認してください。")


def grade_label(class_section: str) -> str:
    """クラス名から学年の数字部分を取り出す（'G3B' -> '3'）"""
    return class_section[1:-1]


def section_letter(class_section: str) -> str:
    """クラス名から組の文字を取り出す（'G3B' -> 'B'）"""
    return class_section[-1:] if class_section else ""


def safe_file_name(name: str) -> str:
    """ファイル名に使えない文字を '_' に置き換える"""
    return re.sub(r'[\\/:*?"<>|]', "_", name).strip() or "student"


def archive_file_name(class_section: str) -> str:
    return config.ARCHIVE_NAME_TEMPLATE.format(class_section=class_section)


def workbook_file_name(class_section: str) -> str:
    return config.WORKBOOK_NAME_TEMPLATE.format(class_section=class_section)

