# repositories/record_store.py
"""
階層型キーバリューストア（"2025/G3B/student1" のようなパスで値を読み書きする）。
変更通知（リスナー）と、複数パスをまとめて反映する update を提供する。

RecordStore はメモリ上だけで動作し、JsonFileStore は書き込みのたびに
JSONファイルへ保存する。

取り込み処理はバックグラウンドスレッドから、保存は画面のスレッドから書き込むため、
読み書きと変更通知はすべて1つのロックの内側で順番に行う。
"""

import os
import copy
import json
import errno
import logging
import tempfile
import itertools
import threading
from typing import Any, Callable, Dict, List, Optional


Listener = Callable[[Any], None]


def split_path(path: str) -> List[str]:
    """'a/b/c' -> ['a', 'b', 'c']。前後の '/' と空の要素は無視する"""
    return [p for p in str(path).split("/") if p]


def _paths_overlap(a: List[str], b: List[str]) -> bool:
    """一方がもう一方の祖先（または同じパス）なら True"""
    n = min(len(a), len(b))
    return a[:n] == b[:n]


class Subscription:
    """
    listen() の戻り値。unsubscribe() を呼ぶと以後コールバックは一切呼ばれない。
    unsubscribe() は何度呼んでもよい。
    """
    def __init__(self, store: "RecordStore", listener_id: int, path: str):
        self._store = store
        self._listener_id = listener_id
        self.path = path
        self.active = True

    def unsubscribe(self):
        if not self.active:
            return
        self.active = False
        self._store._remove_listener(self._listener_id)

    def __repr__(self) -> str:
        return f"Subscription(path='{self.path}', active={self.active})"


class RecordStore:
    """
    メモリ上の階層型ストア。値は dict の入れ子として保持する。
    get() で返す値と set() で受け取る値はコピーするので、呼び出し側が変更しても
    ストアの中身には影響しない。
    """
    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._root: Dict[str, Any] = copy.deepcopy(data) if data else {}
        self._listeners: Dict[int, tuple] = {}
        self._ids = itertools.count(1)
        # リスナーの中から再び読み書きできるように RLock を使う
        self._lock = threading.RLock()

    # --- 読み込み ---

    def get(self, path: str = "") -> Any:
        """パスの値を返す。存在しなければ None"""
        with self._lock:
            node: Any = self._root
            for key in split_path(path):
                if not isinstance(node, dict) or key not in node:
                    return None
                node = node[key]
            return copy.deepcopy(node)

    # --- 書き込み ---

    def set(self, path: str, value: Any):
        """パスの値を丸ごと置き換える。value が None ならそのパスを削除する"""
        keys = split_path(path)
        if not keys:
            raise KeyError("ルートを直接 set することはできません。")
        self._apply([(keys, value)])

    def update(self, path: str, values: Dict[str, Any]):
        """
        path からの相対パス -> 値 の辞書を、まとめて1回の書き込みとして反映する。
        すべてのパスを先に検証してから反映するので、途中で失敗して一部だけが
        書き込まれることはない。リスナーへの通知も反映後に1回だけ行う。
        """
        if not isinstance(values, dict):
            raise TypeError("update には 相対パス -> 値 の辞書を渡してください。")
        base = split_path(path)
        targets = []
        for rel_path, value in values.items():
            keys = base + split_path(rel_path)
            if not keys:
                raise KeyError("ルートを直接 update することはできません。")
            targets.append((keys, value))
        self._apply(targets)

    # --- 変更通知 ---

    def listen(self, path: str, callback: Listener) -> Subscription:
        """
        パスを監視する。登録直後に現在の値で一度呼ばれ、以後そのパス（または祖先・子孫）
        への書き込みのたびに新しい値で呼ばれる。
        """
        with self._lock:
            listener_id = next(self._ids)
            subscription = Subscription(self, listener_id, path)
            self._listeners[listener_id] = (split_path(path), callback, subscription)
            callback(self.get(path))
            return subscription

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    # --- 内部処理 ---

    def _remove_listener(self, listener_id: int):
        with self._lock:
            self._listeners.pop(listener_id, None)

    def _apply(self, targets: List[tuple]):
        """
        書き込みを反映して保存する。保存に失敗したら書き込み前の状態に戻して例外を送出する。
        反映・保存・通知は1つのロックの内側で行うので、別スレッドの書き込みと混ざらない。
        """
        with self._lock:
            backup = copy.deepcopy(self._root)
            try:
                for keys, value in targets:
                    self._assign(keys, value)
                self._commit()
            except Exception:
                self._root = backup
                raise
            self._notify([keys for keys, _ in targets])

    def _assign(self, keys: List[str], value: Any):
        node = self._root
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        if value is None:
            node.pop(keys[-1], None)
        else:
            node[keys[-1]] = copy.deepcopy(value)

    def _commit(self):
        """書き込み後の永続化処理。メモリ上のストアでは何もしない"""

    def _notify(self, changed: List[List[str]]):
        # 通知中に購読が解除・追加されてもよいように、一覧をコピーしてから回す
        for keys, callback, subscription in list(self._listeners.values()):
            if not subscription.active:
                continue
            if any(_paths_overlap(keys, c) for c in changed):
                try:
                    callback(self.get("/".join(keys)))
                except Exception:
                    # 1つのリスナーの失敗で他のリスナーへの通知を止めない
                    logging.exception(f"リスナーの実行中にエラーが発生しました: {subscription}")


class JsonFileStore(RecordStore):
    """
    書き込みのたびに内容をJSONファイルへ保存するストア。
    起動時にファイルがあれば読み込む。
    """
    def __init__(self, file_path: str):
        self.file_path: str = file_path
        data: Dict[str, Any] = {}
        if os.path.exists(file_path):
            try:
                with open(file_path, encoding="utf-8") as f:
                    data = json.load(f) or {}
            except json.JSONDecodeError as e:
                raise IOError(f"データファイルが破損しているため読み込めません。\nファイル: {os.path.basename(file_path)}\n詳細: {e}")
            except OSError as e:
                raise IOError(f"データファイルの読み込み中にエラーが発生しました。\nファイル: {os.path.basename(file_path)}\n詳細: {e}")
        super().__init__(data)

    def _commit(self):
        """
        同じフォルダの一時ファイルに書いてから置き換えることで、書き込み途中のファイルを残さない。
        一時ファイル名は書き込みごとに別の名前にする。
        """
        directory = os.path.dirname(os.path.abspath(self.file_path))
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=directory, suffix=".tmp",
                                             prefix=os.path.basename(self.file_path) + ".",
                                             delete=False) as f:
                tmp_path = f.name
                json.dump(self._root, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.file_path)
        except PermissionError:
            self._remove_tmp(tmp_path)
            raise PermissionError(f"データファイルへの保存に失敗しました。\n書き込み権限があるか確認してください。\nファイル: {self.file_path}")
        except OSError as e:
            self._remove_tmp(tmp_path)
            if e.errno == errno.ENOSPC:
                raise IOError(f"ディスクの空き容量が不足しているため、データを保存できません。\nファイル: {self.file_path}")
            raise IOError(f"データの保存中にOSエラーが発生しました。\n詳細: {e}")

    @staticmethod
    def _remove_tmp(tmp_path: Optional[str]):
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)
