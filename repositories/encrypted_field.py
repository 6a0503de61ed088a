"""
Encrypted-field persistence rule.

Every write of a protected column goes through `prepare_for_persistence`
so the "already encrypted" guard is one visible branch instead of a
save hook.
"""

from typing import Optional

from infrastructure.field_cipher import FieldCipher, looks_encrypted


def prepare_for_persistence(
    current: Optional[str],
    incoming: Optional[str],
    cipher: FieldCipher,
) -> Optional[str]:
    """
    Decide the value to store for a protected field.

    Args:
        current: Value already stored (envelope) or None for a new row
        incoming: Value supplied by this write, None when the field is untouched
        cipher: Field cipher

    Returns:
        The stored envelope unchanged when nothing new was supplied or the
        incoming value equals it; the incoming value as-is when it already
        has the envelope shape; otherwise a fresh envelope.
    """
    if incoming is None or incoming == current:
        return current
    if looks_encrypted(incoming):
        return incoming
    return cipher.encrypt(incoming)
