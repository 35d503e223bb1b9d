"""
RINEX 2.10 navigation records: GPS (N), GLONASS (G) and GEO (H) files,
one system per file
"""

from __future__ import annotations
import typing as T
from datetime import datetime, timedelta
import numpy as np

from .epoch import (EpochStatus, SatNavData, BO_MAXLINS, BO_MAXCOLS, nav_layout,
                    nav_tag_to_datetime, datetime_to_nav_tag)
from .common import fmt_exp, full_year, rinex_string_to_float as rfloat

if T.TYPE_CHECKING:
    from .rinexdata import RinexData

Lf = 19  # D19.12


def record_lines(r: SatNavData) -> list[str]:
    nlines, nvals = nav_layout(r.system)
    t = nav_tag_to_datetime(r.system, r.time_tag)
    sec = t.second + t.microsecond / 1e6

    lines = [f'{r.satellite:2d} {t.year % 100:02d} {t.month:2d} {t.day:2d} {t.hour:2d} {t.minute:2d}{sec:5.1f}'
             + ''.join(fmt_exp(v, Lf, 12) for v in r.orbit[0, :3])]

    values = r.orbit[1:nlines].ravel()[:nvals]
    for i in range(0, nvals, BO_MAXCOLS):
        lines.append('   ' + ''.join(fmt_exp(v, Lf, 12) for v in values[i:i + BO_MAXCOLS]))

    return lines


def print_epochs(rnx: RinexData, out: T.TextIO, system: str) -> bool:
    recs = [r for r in rnx.epoch_nav if r.system == system and rnx.is_sat_selected(r.system, r.satellite)]
    for r in recs:
        out.write('\n'.join(record_lines(r)) + '\n')

    return bool(recs)


def _is_record_start(ln: str) -> bool:
    return ln[:2].strip().isdigit()


def read_epoch(rnx: RinexData, f: T.TextIO, system: str) -> EpochStatus:
    while True:
        ln = rnx._readline(f)
        if not ln:
            return EpochStatus.EOF
        if ln.strip():
            break

    bo = np.zeros((BO_MAXLINS, BO_MAXCOLS))
    try:
        nlines, _ = nav_layout(system)
        prn = int(ln[:2])
        t = datetime(full_year(int(ln[3:5])), int(ln[6:8]), int(ln[9:11]),
                     int(ln[12:14]), int(ln[15:17])) + timedelta(seconds=rfloat(ln[17:22]))
        bo[0, :3] = [rfloat(ln[22 + Lf * j:22 + Lf * (j + 1)]) for j in range(3)]
    except ValueError as e:
        rnx.log.warning(f'{e}: {ln.rstrip()}')
        return EpochStatus.ERROR

    status = EpochStatus.OK
    for i in range(1, nlines):
        ln = rnx._readline(f)
        if not ln or _is_record_start(ln):
            if ln:
                rnx._unread(ln)
            rnx.log.error(f'Error Broad.Orb. less than expected: {system}{prn:02d} {t}')
            return EpochStatus.ERROR
        try:
            bo[i, :] = [rfloat(ln[3 + Lf * j:3 + Lf * (j + 1)]) for j in range(BO_MAXCOLS)]
        except ValueError as e:
            rnx.log.warning(f'{e}: {ln.rstrip()}')
            status = EpochStatus.ERROR

    if status == EpochStatus.ERROR:
        return status

    if not rnx.save_nav_data(system, prn, bo, datetime_to_nav_tag(system, t)):
        return EpochStatus.ERROR

    return EpochStatus.OK
