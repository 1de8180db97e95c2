from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class NonceSource(Protocol):
    def next_nonce_hex(self) -> str: ...


__all__ = ["NonceSource"]
