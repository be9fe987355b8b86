"""
Отпечаток содержимого файла для обнаружения изменений.

MD5 (128 бит), не для безопасности, только чтобы дёшево понять,
изменилось ли содержимое между двумя сканированиями.
"""
import hashlib


def fingerprint(data: bytes) -> str:
    """Вычисляет hex-digest содержимого"""
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


def fingerprint_file(path: str) -> str:
    """Читает файл целиком и возвращает его отпечаток"""
    with open(path, "rb") as f:
        return fingerprint(f.read())
