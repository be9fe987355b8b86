"""
Текстовая кодировка PlantUML: raw DEFLATE + собственный base64-алфавит.

    https://plantuml.com/text-encoding
"""
import zlib

PLANTUML_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"


def deflate(data: bytes) -> bytes:
    """DEFLATE без zlib-заголовка и контрольной суммы"""
    compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, -15)
    return compressor.compress(data) + compressor.flush()


def encode64(data: bytes) -> str:
    """Группы по 6 бит -> символы алфавита, хвост дополняется нулями"""
    result = []
    bits = 0
    bits_len = 0
    for byte in data:
        bits = ((bits << 8) | byte) & 0xFFFF
        bits_len += 8
        while bits_len >= 6:
            bits_len -= 6
            result.append(PLANTUML_ALPHABET[(bits >> bits_len) & 0x3F])
    if bits_len > 0:
        result.append(PLANTUML_ALPHABET[(bits << (6 - bits_len)) & 0x3F])
    return "".join(result)


def encode_plantuml(text: str) -> str:
    return encode64(deflate(text.encode("utf-8")))
