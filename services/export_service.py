# services/export_service.py
"""
成績票と名簿CSVをファイルとして書き出すサービス。
レイアウトの描画は ExcelReportRepository に任せ、ここではファイル名と保存先を決める。
"""

import os
from typing import List

import config
from models.student import StudentRecord, roster_to_csv
from repositories.excel_repository import (
    ExcelReportRepository, ExportError, archive_file_name, workbook_file_name,
)

EXPORT_ZIP = "zip"
EXPORT_XLSX = "xlsx"


def export_reports(repository: ExcelReportRepository, students: List[StudentRecord], class_section: str,
                   mode: str, output_dir: str, status_callback) -> str:
    """
    成績票を書き出し、保存したファイルのパスを返す。

    mode が "zip" なら1人1ファイルを zip にまとめ（Grade_{クラス}_Reports.zip）、
    "xlsx" なら全員分を1つのワークブックにまとめる（Grade_{クラス}_Reports.xlsx）。
    """
    if mode == EXPORT_ZIP:
        status_callback(f"処理中: {len(students)}人分の成績票を zip にまとめています...")
        data = repository.build_individual_archive(students)
        file_name = archive_file_name(class_section)
    elif mode == EXPORT_XLSX:
        status_callback(f"処理中: {len(students)}人分の成績票をワークブックにまとめています...")
        data = repository.build_single_workbook(students)
        file_name = workbook_file_name(class_section)
    else:
        raise ExportError(f"不明な出力形式です: {mode}")

    path = os.path.join(output_dir, file_name)
    repository.save_bytes(data, path)
    status_callback(f"-> {file_name} の保存完了。")
    return path


def roster_file_name(school_year: str, class_section: str) -> str:
    """クラス未選択（全クラス）の場合は students_{年度}_all_grades.csv"""
    if class_section:
        return config.ROSTER_NAME_TEMPLATE.format(school_year=school_year, class_section=class_section)
    return config.ROSTER_NAME_ALL_CLASSES.format(school_year=school_year)


def export_roster(students: List[StudentRecord], school_year: str, class_section: str,
                  output_dir: str, status_callback) -> str:
    """名簿をインポートと同じ7列のCSVで書き出し、保存したファイルのパスを返す"""
    file_name = roster_file_name(school_year, class_section)
    path = os.path.join(output_dir, file_name)
    status_callback(f"処理中: 名簿CSV（{len(students)}人）を書き出しています...")
    data = roster_to_csv(students).encode(config.CSV_ENCODING)
    ExcelReportRepository.save_bytes(data, path)
    status_callback(f"-> {file_name} の保存完了。")
    return path
