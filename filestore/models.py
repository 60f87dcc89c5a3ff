from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class EncryptedBlob(BaseModel):
    """
    Opaque ciphertext stored as an ordinary entry value.

    Produced by vault.blob.encrypt_value; reading the value back requires
    the password it was sealed with.
    """
    kind: Literal["EncryptedBlob"] = "EncryptedBlob"
    ciphertext: bytes

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return "(Encrypted)"
