"""Wikiドメインで利用する例外定義"""


class WikiError(Exception):
    """Wiki機能における基底例外"""


class WikiPageNotFoundError(WikiError):
    """ページが存在しない場合の例外"""


class WikiChangeNotFoundError(WikiError):
    """変更提案が存在しない場合の例外"""


class WikiAccessDeniedError(WikiError):
    """権限不足を表す例外"""


class WikiValidationError(WikiError):
    """入力値の検証エラー"""


class WikiInvalidStateTransitionError(WikiError):
    """状態遷移表で許可されていない遷移を要求された場合の例外"""

    def __init__(self, current: str, target: str | None = None, message: str | None = None) -> None:
        self.current = current
        self.target = target
        if message is None:
            if target is None:
                message = f"change in status {current} cannot be processed"
            else:
                message = f"cannot transition change from {current} to {target}"
        super().__init__(message)


class WikiStaleContentError(WikiError):
    """コンテンツハッシュの比較に失敗し書き込みが拒否された場合の例外

    ``apply_content`` の compare-and-swap が負けたことを表す。マージ経路では
    Conflict 状態に変換され、呼び出し元には送出されない。
    """

    def __init__(self, page_id: int, expected_hash: str | None, current_hash: str | None) -> None:
        self.page_id = page_id
        self.expected_hash = expected_hash
        self.current_hash = current_hash
        super().__init__(
            f"page {page_id} content changed (expected {expected_hash}, found {current_hash})"
        )


class WikiOperationError(WikiError):
    """その他の操作エラーを表す例外"""
