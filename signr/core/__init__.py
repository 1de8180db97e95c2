"""Core keychain, namespacing, signing and verification.

Nothing is re-exported here so that ``signr.models`` can import the codec
modules without pulling in the signer. Import submodules directly:
    from signr.core.signer import Signer
"""
