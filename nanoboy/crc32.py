"""CRC-32 checksum (IEEE 802.3, reflected polynomial 0xEDB88320)."""

_POLYNOMIAL = 0xEDB88320


def _make_table() -> list[int]:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            crc = (crc >> 1) ^ _POLYNOMIAL if crc & 1 else crc >> 1
        table.append(crc)
    return table


_TABLE = _make_table()


def crc32(data) -> int:
    """Return the CRC-32 of a bytes-like object as an unsigned 32-bit int."""
    crc = 0xFFFFFFFF
    for byte in memoryview(data).cast("B"):
        crc = (crc >> 8) ^ _TABLE[(crc ^ byte) & 0xFF]
    return crc ^ 0xFFFFFFFF