# services/task_runner.py
"""
アプリケーションのメインロジックを統括するモジュール。
UIからの要求に応じて、名簿の取り込み・成績票の書き出しの一連の流れを管理する。

各関数は (成功/失敗, UIへ表示する最終メッセージ) のタプルを返し、
処理中に発生したエラーはここで一元的に捕捉してログファイルに記録する。
"""

import logging
from typing import List, Tuple

from models.student import StudentRecord, load_students_from_csv
from repositories.excel_repository import ExcelReportRepository, ExportError
from repositories.student_repository import StudentRepository
from . import import_service, export_service

MSG_IMPORT_OK = "Successfully uploaded student data!"
MSG_IMPORT_UPLOAD_ERROR = "Error uploading data. Please try again."
MSG_IMPORT_FILE_ERROR = "Error processing file. Please check the format and try again."


def run_import(repository: StudentRepository, csv_path: str, school_year: str,
               status_callback, progress_callback) -> Tuple[bool, str]:
    """
    名簿CSVを読み込み、児童をデータベースに登録する。
    不完全な行は個別に報告せず除外し、最後にまとめて結果を1つだけ返す。
    """
    try:
        # --- ステップ1: 名簿の読み込み ---
        status_callback("ステップ1/2: 名簿CSVを読み込み中...")
        try:
            students = load_students_from_csv(csv_path)
        except (FileNotFoundError, ValueError) as e:
            status_callback(f"\n❌ エラーが発生しました:\n{e}")
            logging.exception(f"名簿CSVの読み込みに失敗しました: {e}")
            return (False, MSG_IMPORT_FILE_ERROR)
        progress_callback(30)

        # --- ステップ2: データベースへの登録 ---
        status_callback(f"ステップ2/2: {len(students)}人をデータベースに登録中...")
        count = import_service.run(repository, students, school_year, status_callback)
        progress_callback(100)

        logging.info(f"名簿を取り込みました: {csv_path} -> {school_year} ({count}人)")
        status_callback(f"\n✅ {MSG_IMPORT_OK}")
        return (True, MSG_IMPORT_OK)

    except (KeyError, IOError, PermissionError) as e:
        status_callback(f"\n❌ エラーが発生しました:\n{e}")
        logging.exception(f"名簿の登録中にハンドリング済みのエラーが発生しました: {e}")
        return (False, MSG_IMPORT_UPLOAD_ERROR)

    except Exception as e:
        status_callback(f"\n❌ 致命的なエラー: 予期せぬエラーが発生しました: {e}")
        logging.exception("名簿の登録中に予期せぬエラーが発生しました。")
        return (False, MSG_IMPORT_UPLOAD_ERROR)

    finally:
        progress_callback(0)


def run_export(mode: str, students: List[StudentRecord], class_section: str, output_dir: str,
               status_callback, progress_callback) -> Tuple[bool, str]:
    """
    成績票を書き出す。mode は "zip"（1人1ファイル）または "xlsx"（1ファイルに全員分）。
    失敗した場合も黙って終わらせず、理由をメッセージとして返す。
    """
    try:
        status_callback("成績票を作成中...")
        progress_callback(10)
        path = export_service.export_reports(
            ExcelReportRepository(), students, class_section, mode, output_dir, status_callback
        )
        progress_callback(100)

        final_message = f"成績票の書き出しが完了しました。\nファイル: {path}"
        logging.info(f"成績票を書き出しました: {path} ({len(students)}人)")
        status_callback(f"\n✅ {final_message}")
        return (True, final_message)

    except ExportError as e:
        status_callback(f"\n❌ エラーが発生しました:\n{e}")
        logging.exception(f"成績票の書き出し中にハンドリング済みのエラーが発生しました: {e}")
        return (False, f"成績票を書き出せませんでした。\n\n理由:\n{e}")

    except Exception as e:
        status_callback(f"\n❌ 致命的なエラー: 予期せぬエラーが発生しました: {e}")
        logging.exception("成績票の書き出し中に予期せぬエラーが発生しました。")
        return (False, f"重大なエラーが発生しました。\n詳細はステータス欄やログファイルを確認してください。\n\n詳細情報: {e}")

    finally:
        progress_callback(0)


def run_roster_export(repository: StudentRepository, school_year: str, class_section: str, output_dir: str,
                      status_callback, progress_callback) -> Tuple[bool, str]:
    """
    名簿をCSVで書き出す。class_section が空なら登録済みの全クラスが対象。
    """
    try:
        status_callback("名簿を読み込み中...")
        if class_section:
            students = [record for _, record in repository.snapshot_records(school_year, class_section)]
        else:
            students = repository.snapshot_all(school_year)
        progress_callback(50)

        path = export_service.export_roster(students, school_year, class_section, output_dir, status_callback)
        progress_callback(100)

        final_message = f"名簿の書き出しが完了しました。\nファイル: {path}"
        logging.info(f"名簿を書き出しました: {path} ({len(students)}人)")
        status_callback(f"\n✅ {final_message}")
        return (True, final_message)

    except (ExportError, KeyError, ValueError, IOError, PermissionError) as e:
        status_callback(f"\n❌ エラーが発生しました:\n{e}")
        logging.exception(f"名簿の書き出し中にハンドリング済みのエラーが発生しました: {e}")
        return (False, f"名簿を書き出せませんでした。\n\n理由:\n{e}")

    except Exception as e:
        status_callback(f"\n❌ 致命的なエラー: 予期せぬエラーが発生しました: {e}")
        logging.exception("名簿の書き出し中に予期せぬエラーが発生しました。")
        return (False, f"重大なエラーが発生しました。\n詳細はステータス欄やログファイルを確認してください。\n\n詳細情報: {e}")

    finally:
        progress_callback(0)
