"""Human-readable byte sizes."""

from typing import Tuple


SIZE_UNITS = ['bytes', 'KB', 'MB', 'GB', 'TB']


def convert_size(num_bytes: int, decimals: int = 2) -> Tuple[float, str]:
    """
    Convert a byte count into the largest fitting 1024-based unit.

    Args:
        num_bytes: Size in bytes
        decimals: Number of decimals to keep

    Returns:
        (size, unit) tuple, e.g. (1.5, 'MB')
    """
    if num_bytes <= 0:
        return 0, 'bytes'

    size = float(num_bytes)
    index = 0
    while size >= 1024 and index < len(SIZE_UNITS) - 1:
        size /= 1024
        index += 1

    return round(size, decimals), SIZE_UNITS[index]


def format_size(num_bytes: int, decimals: int = 2) -> str:
    size, unit = convert_size(num_bytes, decimals)
    return f"{size:g} {unit}"
