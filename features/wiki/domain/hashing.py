"""ページ本文のフィンガープリントを計算するドメインサービス。"""

from __future__ import annotations

import hashlib

from features.wiki.domain.exceptions import WikiValidationError

HASH_LENGTH = 64


class ContentHasher:
    """本文文字列の SHA-256 ダイジェストを計算する。

    空白や改行も含めた完全一致で比較するため、正規化は一切行わない。
    """

    encoding = "utf-8"

    def hash(self, content: str) -> str:
        if not isinstance(content, str):
            raise WikiValidationError("content must be a string")
        try:
            raw = content.encode(self.encoding)
        except UnicodeEncodeError as exc:
            raise WikiValidationError("content contains characters that cannot be encoded") from exc
        return hashlib.sha256(raw).hexdigest()

    def matches(self, content: str, digest: str | None) -> bool:
        """*content* のハッシュが *digest* と一致するか判定する。"""

        if not digest:
            return False
        return self.hash(content) == digest


_default_hasher = ContentHasher()


def compute_content_hash(content: str) -> str:
    return _default_hasher.hash(content)


__all__ = ["ContentHasher", "HASH_LENGTH", "compute_content_hash"]
