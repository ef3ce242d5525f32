_BYTE_UNITS = ['Bytes', 'KB', 'MB', 'GB', 'TB', 'PB', 'EB']


def format_bytes(num_bytes: int | float, decimals: int = 2) -> str:
    """
    Format a byte count using binary multiples.

    Examples:
        format_bytes(0) -> '0 Bytes'
        format_bytes(1536) -> '1.5 KB'
    """
    if num_bytes <= 0:
        return '0 Bytes'

    value = float(num_bytes)
    index = 0
    while value >= 1024 and index < len(_BYTE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{round(value, max(decimals, 0)):g} {_BYTE_UNITS[index]}"

def format_percentage(value: float) -> str:
    """Format a percentage with at most two decimals, e.g. '95%' or '87.5%'"""
    return f"{round(value, 2):g}%"

def percentage(part: float, whole: float) -> float:
    """Share of ``part`` in ``whole`` in percent, rounded to two decimals"""
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)
