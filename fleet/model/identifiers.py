"""
Identifier allocation for paths and drone instances.

Ids are 24-character lowercase hex tokens. Path and drone ids live in
independent spaces; uniqueness is only guaranteed within the collection
passed as ``taken``.
"""

import secrets
from typing import Callable, Container, Optional

ID_LENGTH = 24


def _random_token() -> str:
    return secrets.token_hex(ID_LENGTH // 2)


class IdentifierAllocator:
    """Allocates collision-free ids against an existing collection."""

    def __init__(self, token_factory: Optional[Callable[[], str]] = None, max_attempts: int = 16):
        self._token_factory = token_factory or _random_token
        self.max_attempts = max_attempts

    def allocate(self, taken: Container[str] = ()) -> str:
        """
        Return a new id not present in ``taken``.

        Args:
            taken: Ids already issued in the target collection

        Raises:
            RuntimeError: If no free id was produced after max_attempts
        """
        for _ in range(self.max_attempts):
            candidate = self._token_factory()
            if candidate not in taken:
                return candidate
        raise RuntimeError(
            f"Could not allocate a unique id after {self.max_attempts} attempts"
        )


class SequentialIdentifierAllocator(IdentifierAllocator):
    """Monotonic counter ids, zero-padded to the standard id length."""

    def __init__(self, start: int = 1):
        self._next = start
        super().__init__(token_factory=self._next_token)

    def _next_token(self) -> str:
        value = self._next
        self._next += 1
        return f"{value:0{ID_LENGTH}x}"
