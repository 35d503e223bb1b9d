"""
RINEX 3.04 navigation records, mixed systems
"""

from __future__ import annotations
import typing as T
from datetime import datetime
import numpy as np

from .epoch import (EpochStatus, SatNavData, BO_MAXLINS, BO_MAXCOLS, nav_layout,
                    nav_tag_to_datetime, datetime_to_nav_tag)
from .common import fmt_exp, rinex_string_to_float as rfloat

if T.TYPE_CHECKING:
    from .rinexdata import RinexData

Lf = 19  # E19.12


def record_lines(r: SatNavData) -> list[str]:
    nlines, nvals = nav_layout(r.system)
    t = nav_tag_to_datetime(r.system, r.time_tag)

    lines = [f'{r.system}{r.satellite:02d} {t.year:4d} {t.month:02d} {t.day:02d}'
             f' {t.hour:02d} {t.minute:02d} {t.second:02d}'
             + ''.join(fmt_exp(v, Lf, 12, 'E') for v in r.orbit[0, :3])]

    values = r.orbit[1:nlines].ravel()[:nvals]
    for i in range(0, nvals, BO_MAXCOLS):
        lines.append('    ' + ''.join(fmt_exp(v, Lf, 12, 'E') for v in values[i:i + BO_MAXCOLS]))

    return lines


def print_epochs(rnx: RinexData, out: T.TextIO) -> bool:
    recs = [r for r in rnx.epoch_nav if rnx.is_sat_selected(r.system, r.satellite)]
    for r in recs:
        out.write('\n'.join(record_lines(r)) + '\n')

    return bool(recs)


def _is_record_start(ln: str) -> bool:
    return ln[:1].isalpha() and ln[1:3].strip().isdigit()


def read_epoch(rnx: RinexData, f: T.TextIO) -> EpochStatus:
    while True:
        ln = rnx._readline(f)
        if not ln:
            return EpochStatus.EOF
        if _is_record_start(ln):
            break
        if ln.strip():
            rnx.log.warning(f'Satellite record expected, skipped: {ln.rstrip()}')

    bo = np.zeros((BO_MAXLINS, BO_MAXCOLS))
    system = ln[0]
    try:
        nlines, _ = nav_layout(system)
        prn = int(ln[1:3])
        t = datetime(int(ln[4:8]), int(ln[9:11]), int(ln[12:14]),
                     int(ln[15:17]), int(ln[18:20]), int(ln[21:23]))
        bo[0, :3] = [rfloat(ln[23 + Lf * j:23 + Lf * (j + 1)]) for j in range(3)]
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
            bo[i, :] = [rfloat(ln[4 + Lf * j:4 + Lf * (j + 1)]) for j in range(BO_MAXCOLS)]
        except ValueError as e:
            rnx.log.warning(f'{e}: {ln.rstrip()}')
            status = EpochStatus.ERROR

    if status == EpochStatus.ERROR:
        return status

    if not rnx.save_nav_data(system, prn, bo, datetime_to_nav_tag(system, t)):
        return EpochStatus.ERROR

    return EpochStatus.OK
