# utils.py

import re
from typing import Dict

from openpyxl.worksheet.worksheet import Worksheet  # 型ヒントのために使用

# Excelのシート名に使えない文字
INVALID_SHEET_CHARS = re.compile(r"[\\/*?:\[\]]")
MAX_SHEET_TITLE_LENGTH = 31


def apply_fixed_column_widths(ws: Worksheet, widths: Dict[str, float]):
    """
    列幅を固定値で設定する。
    成績票は印刷レイアウトが決まっているため、内容に合わせた自動調整は行わない。

    Args:
        ws (Worksheet): 対象のopenpyxlワークシートオブジェクト。
        widths (Dict[str, float]): 列名（'A', 'B', ...）-> 列幅。
    """
    for column_letter, width in widths.items():
        ws.column_dimensions[column_letter].width = width


def sheet_title(name: str) -> str:
    """
    文字列をExcelのシート名として使える形にする。
    使えない文字は '_' に置き換え、31文字を超える分は切り捨てる。
    """
    title = INVALID_SHEET_CHARS.sub("_", str(name)).strip("'")
    return title[:MAX_SHEET_TITLE_LENGTH] or "Sheet"
