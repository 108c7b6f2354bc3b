"""Wallet custody for mint-relay.

Private keys are sealed with AES-256-GCM under a key derived from the
operator's master passphrase and kept in a JSON store. Plaintext keys exist
only for the duration of a signing operation.
"""
