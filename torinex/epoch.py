"""
Epoch data: observation and navigation records and their canonical ordering
"""

from __future__ import annotations
import enum
import typing as T
from datetime import datetime, timedelta
import numpy as np

from .common import GPS_EPOCH

BO_MAXLINS = 8  # broadcast orbit lines, including the clock line
BO_MAXCOLS = 4

# per system: (lines per record, values after the clock line)
NAV_LAYOUT = {
    'G': (8, 26),
    'E': (8, 25),
    'C': (8, 26),
    'I': (8, 26),
    'R': (4, 12),
    'S': (4, 12),
    'J': (4, 12),
}

GLO_OFFSET = 3 * 3600  # GLONASS time tags are UTC + 3h
BDS_OFFSET = 14  # BDT is GPS time - 14s

MSG_MISMATCH_CODES = 'Mismatch in number of expected and existing code types'


class EpochStatus(enum.IntEnum):
    """result of reading an epoch"""
    ERROR = -1
    EOF = 0
    OK = 1


class SatObsData(T.NamedTuple):
    sys_index: int
    satellite: int
    obs_index: int
    value: float
    lli: int = 0  # loss of lock indicator
    ssi: int = 0  # signal strength

    def key(self) -> tuple[int, int, int]:
        return self.sys_index, self.satellite, self.obs_index


class ObsData(T.NamedTuple):
    """an observation record as given to / returned from callers"""
    system: str
    satellite: int
    obs_type: str
    value: float
    lli: int = 0
    ssi: int = 0


class SatNavData(T.NamedTuple):
    time_tag: float
    system: str
    satellite: int
    orbit: np.ndarray  # BO_MAXLINS x BO_MAXCOLS

    def key(self) -> tuple[float, str, int]:
        return self.time_tag, self.system, self.satellite


def broadcast_orbit(bo: T.Any) -> np.ndarray:
    """normalize coefficients to a BO_MAXLINS x BO_MAXCOLS float array, padding with zeros"""
    a = np.asarray(bo, dtype=float)
    if a.ndim != 2 or a.shape[0] > BO_MAXLINS or a.shape[1] > BO_MAXCOLS:
        raise ValueError(f'broadcast orbit shape {a.shape} exceeds {BO_MAXLINS}x{BO_MAXCOLS}')

    out = np.zeros((BO_MAXLINS, BO_MAXCOLS))
    out[: a.shape[0], : a.shape[1]] = a
    return out


def nav_tag_to_datetime(system: str, tag: float) -> datetime:
    """
    calendar time of a navigation record time tag, in the time system
    RINEX prints for that satellite system
    """
    if system == 'R':
        tag -= GLO_OFFSET
    elif system == 'C':
        tag -= BDS_OFFSET

    return GPS_EPOCH + timedelta(seconds=round(tag, 3))


def datetime_to_nav_tag(system: str, t: datetime) -> float:
    tag = (t - GPS_EPOCH).total_seconds()
    if system == 'R':
        tag += GLO_OFFSET
    elif system == 'C':
        tag += BDS_OFFSET

    return tag


def nav_layout(system: str) -> tuple[int, int]:
    try:
        return NAV_LAYOUT[system]
    except KeyError:
        raise ValueError(f'Satellite system code unknown={system}')


def obs_field(r: SatObsData) -> str:
    """F14.3 value, loss of lock and signal strength digits, blank when zero"""
    lli = str(r.lli) if 0 < r.lli <= 9 else ' '
    ssi = str(r.ssi) if 0 < r.ssi <= 9 else ' '
    return f'{r.value:14.3f}{lli}{ssi}'
