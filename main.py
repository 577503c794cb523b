"""
アプリケーションのエントリーポイント（開始地点）。
このスクリプトを直接実行すると、体力テスト記録ツールのGUIが起動します。
"""
import tkinter as tk
import logging
from tkinterdnd2 import TkinterDnD  # ファイルのドラッグ＆ドロップ機能を提供

import config
from repositories.record_store import JsonFileStore
from repositories.student_repository import StudentRepository
from ui.view import AppView
from ui.viewmodel import AppViewModel


def main():
    # --- 1. ログ機能の初期設定 ---
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        filename=config.LOG_FILE,
        encoding='utf-8',
        filemode='a'
    )
    logging.info("アプリケーションを起動しました。")

    # --- 2. データの読み込み ---
    try:
        store = JsonFileStore(config.DEFAULT_STORE_FILE)
    except IOError:
        logging.exception("データファイルを開けませんでした。")
        raise

    # --- 3. メインウィンドウ、ViewModel、View の作成 ---
    root = TkinterDnD.Tk()
    root.title("Physical Fitness Records")
    root.geometry("1100x720")

    viewmodel = AppViewModel(master=root, repository=StudentRepository(store))
    view = AppView(master=root, viewmodel=viewmodel)
    view.pack(fill=tk.BOTH, expand=True)
    viewmodel.load_selectors()

    # ウィンドウの「×」ボタンは、未保存・処理中の確認を行うメソッドに差し替える
    root.protocol("WM_DELETE_WINDOW", viewmodel.request_quit)

    # --- 4. イベントループ開始 ---
    try:
        root.mainloop()
    except Exception:
        logging.exception("GUIのメインループで予期せぬエラーが発生しました。")
    finally:
        logging.info("アプリケーションを終了しました。")


if __name__ == '__main__':
    main()
