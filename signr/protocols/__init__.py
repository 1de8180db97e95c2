from signr.protocols.crypto import NonceSource

__all__ = ["NonceSource"]
