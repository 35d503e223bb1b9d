from __future__ import annotations
from datetime import datetime, timedelta

GPS_EPOCH = datetime(1980, 1, 6)
WEEK_SECONDS = 604800
DAY_SECONDS = 86400
TICKS = 10_000_000  # 1e-7 s, the resolution of the RINEX F11.7 seconds field

MAXOBSVAL = 9999999999.999  # the maximum observable value to fit the F14.3 RINEX format
MINOBSVAL = -999999999.999


def rinex_string_to_float(s: str) -> float:
    """
    Fortran D or E exponent fixed width field to float.
    A blank field is zero.
    """
    s = s.strip()
    if not s:
        return 0.0

    return float(s.replace('D', 'E').replace('d', 'e'))


def rinex_string_to_int(s: str, default: int = 0) -> int:
    s = s.strip()
    if not s:
        return default

    return int(s)


def fmt_exp(value: float, width: int, decimals: int, exp: str = 'D') -> str:
    """Fortran style Dw.d / Ew.d field"""
    return f'{value:{width}.{decimals}E}'.replace('E', exp)


def gps_to_datetime(week: int, tow: float) -> datetime:
    """
    GPS week and seconds of week to datetime, rounded to 1e-7 s so the result
    prints back to the same F11.7 seconds field.
    """
    ticks = int(round(tow * TICKS))
    days, ticks = divmod(ticks, DAY_SECONDS * TICKS)
    return GPS_EPOCH + timedelta(days=week * 7 + days, microseconds=ticks // 10)


def epoch_fields(week: int, tow: float) -> tuple[int, int, int, int, int, float]:
    """
    year, month, day, hour, minute, seconds of a GPS week / seconds of week

    seconds keep the 1e-7 s resolution datetime can't hold
    """
    ticks = int(round(tow * TICKS))
    days, ticks = divmod(ticks, DAY_SECONDS * TICKS)
    t = GPS_EPOCH + timedelta(days=week * 7 + days)
    hour, ticks = divmod(ticks, 3600 * TICKS)
    minute, ticks = divmod(ticks, 60 * TICKS)

    return t.year, t.month, t.day, hour, minute, ticks / TICKS


def datetime_to_gps(year: int, month: int, day: int,
                    hour: int = 0, minute: int = 0, second: float = 0.0) -> tuple[int, float]:
    """calendar date and time of day to GPS week and seconds of week"""
    days = (datetime(year, month, day) - GPS_EPOCH).days
    if days < 0:
        raise ValueError(f'date before the GPS epoch: {year}-{month}-{day}')

    week, dow = divmod(days, 7)

    return week, dow * DAY_SECONDS + hour * 3600 + minute * 60 + second


def full_year(yy: int) -> int:
    """two digit RINEX 2 year"""
    if yy < 80:
        return yy + 2000
    elif yy < 100:
        return yy + 1900
    return yy
