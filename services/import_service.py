# services/import_service.py

from typing import List

from models.student import StudentRecord, group_by_class, empty_trial
from repositories.student_repository import StudentRepository


def run(repository: StudentRepository, students: List[StudentRecord], school_year: str, status_callback) -> int:
    """
    名簿の児童をデータベースに登録するサービス。

    児童をクラスごとにまとめ、クラス内の並び順で student1, student2, ... のスロットに
    測定記録を0埋めした状態で書き込みます。既存のスロットは丸ごと上書きされます。
    あわせて、年度とクラスを選択肢の一覧に登録します。

    この関数内では try...except によるエラー捕捉は行いません。
    リポジトリ層で発生したエラーは呼び出し元の task_runner.py まで伝播させ、
    そこで一元的にハンドリングします。

    Args:
        repository (StudentRepository): データ書き込みを担当するリポジトリ。
        students (List[StudentRecord]): 名簿から読み込んだ児童のリスト。
        school_year (str): 登録先の年度（例: "2025"）。
        status_callback (function): UIのステータス表示を更新するためのコールバック関数。

    Returns:
        int: 登録した児童の人数。
    """
    if not students:
        status_callback("警告: 登録できる児童が名簿に見つかりません。")
        return 0

    count = 0
    for class_section, class_students in group_by_class(students).items():
        status_callback(f"処理中: {school_year}/{class_section} ({len(class_students)}人)")
        records_by_slot = {}
        for slot, student in enumerate(class_students, 1):
            # インポート時は測定記録を必ず0で初期化する
            student.trial1 = empty_trial()
            student.trial2 = empty_trial()
            records_by_slot[slot] = student
        # クラスごとに1回の書き込みにまとめる
        repository.write_class_records(school_year, class_section, records_by_slot)
        count += len(records_by_slot)
        repository.register_class_section(class_section)

    repository.register_school_year(school_year)
    status_callback(f"-> {count}人の登録完了。")
    return count
