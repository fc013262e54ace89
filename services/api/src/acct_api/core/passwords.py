"""口令哈希与校验。

存储格式：`pbkdf2_sha256$<迭代次数>$<盐(hex)>$<摘要(hex)>`。
迭代次数随哈希一起保存，调整配置后已有口令仍按原迭代次数校验。
"""

import hashlib
import hmac
import secrets

ALGORITHM = "pbkdf2_sha256"
SALT_BYTES = 16


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str, *, iterations: int) -> str:
    """按调用方给定的迭代次数（来自 `auth_password_hash_iterations`）生成加盐哈希。"""
    salt = secrets.token_bytes(SALT_BYTES)
    return "$".join((ALGORITHM, str(iterations), salt.hex(), _derive(password, salt, iterations).hex()))


def verify_password(password: str, password_hash: str) -> bool:
    """校验口令是否匹配；格式不识别时一律视为不匹配。"""
    parts = password_hash.split("$")
    if len(parts) != 4 or parts[0] != ALGORITHM:
        return False
    try:
        iterations = int(parts[1])
        salt = bytes.fromhex(parts[2])
        expected = bytes.fromhex(parts[3])
    except ValueError:
        return False
    if iterations <= 0 or not salt:
        return False
    return hmac.compare_digest(_derive(password, salt, iterations), expected)
