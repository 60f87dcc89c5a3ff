"""
Password-based value encryption for filestore entries.

Scheme: legacy-aes128-v1 (AES-128, ECB, PKCS7, password-derived key).
Not authenticated; kept for compatibility with existing stores.
"""
