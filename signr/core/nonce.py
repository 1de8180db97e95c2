"""OS-backed nonce source for replay protection of full-form signatures."""

from __future__ import annotations

import secrets

from signr.errors import RngError

NONCE_SIZE = 8


class SystemNonceSource:
    def next_nonce_hex(self) -> str:
        """Return 16 hex characters from the OS CSPRNG; never falls back."""
        try:
            return secrets.token_hex(NONCE_SIZE)
        except (OSError, NotImplementedError) as exc:
            raise RngError("entropy source failed while drawing a nonce") from exc


__all__ = ["NONCE_SIZE", "SystemNonceSource"]
